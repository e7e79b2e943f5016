"""
Training folder store: CRUD over named folders of labeled training samples.
"""
import base64
import uuid
from typing import List, Optional

from pydantic import ValidationError

from ppe_trainer.core.exceptions import NotFoundError
from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.training import PPELabels, TrainingFolder, TrainingSample
from ppe_trainer.services.quality import (
    classify_image_quality,
    estimate_label_confidence,
    quality_rank,
)
from ppe_trainer.services.storage import KeyValueStore

FOLDERS_KEY = "training_folders"

DEFAULT_FOLDER_NAME = "Entrenamiento General"
DEFAULT_FOLDER_DESCRIPTION = "Carpeta principal para imágenes de entrenamiento EPP"


def recompute_aggregates(folder: TrainingFolder) -> None:
    """Refresh total_images, avg_quality and avg_confidence from the sample list."""
    samples = folder.samples
    folder.total_images = len(samples)
    if not samples:
        folder.avg_quality = 0.0
        folder.avg_confidence = 0.0
        return

    folder.avg_quality = sum(quality_rank(s.quality) for s in samples) / len(samples)
    folder.avg_confidence = sum(s.confidence for s in samples) / len(samples)


def build_sample(
    content: bytes,
    file_name: str,
    labels: PPELabels,
    mime_type: str = "image/jpeg",
    training_session_id: Optional[str] = None,
    size_bytes: Optional[int] = None,
) -> TrainingSample:
    """
    Build a training sample from raw upload bytes.

    Quality and confidence are derived here once and never recomputed.
    ``size_bytes`` is the declared upload size; it defaults to ``len(content)``.
    """
    encoded = base64.b64encode(content).decode("ascii")
    size = len(content) if size_bytes is None else size_bytes

    return TrainingSample(
        id=str(uuid.uuid4()),
        file_name=file_name,
        image_data=encoded,
        image_uri=f"data:{mime_type};base64,{encoded}",
        labels=labels,
        training_session_id=training_session_id,
        quality=classify_image_quality(size),
        confidence=estimate_label_confidence(labels),
    )


class TrainingFolderStore:
    """
    Folder collection persisted under ``training_folders``.

    Each mutating call loads the whole collection, changes it and writes it
    back while holding the store lock.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load(self) -> List[TrainingFolder]:
        raw = self.store.get_json(FOLDERS_KEY, default=[])
        if not isinstance(raw, list):
            logger.warning(f"Unexpected '{FOLDERS_KEY}' payload ({type(raw).__name__}), treating as empty")
            return []

        try:
            return [TrainingFolder.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.warning(f"Invalid folder data under '{FOLDERS_KEY}', treating as empty: {e}")
            return []

    def _save(self, folders: List[TrainingFolder]) -> None:
        self.store.set_json(FOLDERS_KEY, [f.model_dump(mode="json") for f in folders])

    def create_folder(self, name: str, description: str = "") -> TrainingFolder:
        """Create and persist a new empty folder."""
        folder = TrainingFolder(id=str(uuid.uuid4()), name=name, description=description)

        with self.store.lock:
            folders = self._load()
            folders.append(folder)
            self._save(folders)

        logger.info(f"Training folder created: {folder.name} ({folder.id})")
        return folder

    def get_all_folders(self) -> List[TrainingFolder]:
        return self._load()

    def get_folder(self, folder_id: str) -> Optional[TrainingFolder]:
        for folder in self._load():
            if folder.id == folder_id:
                return folder
        return None

    def find_default_folder(self) -> Optional[TrainingFolder]:
        for folder in self._load():
            if folder.name == DEFAULT_FOLDER_NAME:
                return folder
        return None

    def create_default_folder(self) -> TrainingFolder:
        return self.create_folder(DEFAULT_FOLDER_NAME, DEFAULT_FOLDER_DESCRIPTION)

    def get_or_create_default_folder(self) -> TrainingFolder:
        """Return the default folder, creating it on first use."""
        with self.store.lock:
            folder = self.find_default_folder()
            if folder is None:
                folder = self.create_default_folder()
            return folder

    def add_sample(self, folder_id: str, sample: TrainingSample) -> TrainingFolder:
        """
        Append a sample to a folder and recompute its aggregates.

        Raises:
            NotFoundError: if no folder has ``folder_id``
        """
        with self.store.lock:
            folders = self._load()
            target = next((f for f in folders if f.id == folder_id), None)
            if target is None:
                raise NotFoundError(f"Training folder {folder_id} not found")

            target.samples.append(sample)
            recompute_aggregates(target)
            self._save(folders)

        logger.info(f"Sample {sample.file_name} added to folder {target.name}")
        return target

    def save_sample(
        self,
        content: bytes,
        file_name: str,
        labels: PPELabels,
        folder_id: Optional[str] = None,
        training_session_id: Optional[str] = None,
        mime_type: str = "image/jpeg",
        size_bytes: Optional[int] = None,
    ) -> TrainingSample:
        """
        Turn an uploaded file into a sample and store it.

        Without ``folder_id`` the sample goes to the default folder.
        """
        sample = build_sample(
            content,
            file_name,
            labels,
            mime_type=mime_type,
            training_session_id=training_session_id,
            size_bytes=size_bytes,
        )

        with self.store.lock:
            target_id = folder_id or self.get_or_create_default_folder().id
            self.add_sample(target_id, sample)

        return sample

    def delete_sample(self, sample_id: str) -> bool:
        """Remove the first sample with ``sample_id``; False if none matched."""
        with self.store.lock:
            folders = self._load()
            for folder in folders:
                index = next((i for i, s in enumerate(folder.samples) if s.id == sample_id), None)
                if index is None:
                    continue

                del folder.samples[index]
                recompute_aggregates(folder)
                self._save(folders)
                logger.info(f"Training sample deleted: {sample_id}")
                return True

        return False

    def delete_folder(self, folder_id: str) -> bool:
        """Remove a folder together with all of its samples."""
        with self.store.lock:
            folders = self._load()
            remaining = [f for f in folders if f.id != folder_id]
            if len(remaining) == len(folders):
                return False
            self._save(remaining)

        logger.info(f"Training folder deleted: {folder_id}")
        return True

    def clear_all(self) -> None:
        self.store.delete(FOLDERS_KEY)
        logger.info("All training folders removed")
