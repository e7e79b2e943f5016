"""
Photo history: detection snapshots kept for review, newest 50 only.
"""
import base64
import uuid
from typing import List

from pydantic import ValidationError

from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.common import utcnow
from ppe_trainer.models.schemas.detection import DetectionResult, SavedPhoto
from ppe_trainer.services.storage import KeyValueStore

PHOTOS_KEY = "ppe_detection_photos"
MAX_PHOTOS = 50


class PhotoHistoryStore:
    """Append-only photo list capped at the newest 50 entries."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_all_photos(self) -> List[SavedPhoto]:
        raw = self.store.get_json(PHOTOS_KEY, default=[])
        if not isinstance(raw, list):
            logger.warning(f"Unexpected '{PHOTOS_KEY}' payload, treating as empty")
            return []

        try:
            return [SavedPhoto.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.warning(f"Invalid photo data under '{PHOTOS_KEY}', treating as empty: {e}")
            return []

    def save_photo(self, image_bytes: bytes, result: DetectionResult,
                   mime_type: str = "image/jpeg") -> SavedPhoto:
        now = utcnow()
        encoded = base64.b64encode(image_bytes).decode("ascii")
        photo = SavedPhoto(
            id=str(uuid.uuid4()),
            image_uri=f"data:{mime_type};base64,{encoded}",
            timestamp=now,
            detection_result=result.model_dump(mode="json"),
            filename=f"EPP_{now:%Y-%m-%d}_{now:%H-%M-%S}.jpg",
        )

        with self.store.lock:
            photos = self.get_all_photos()
            photos.append(photo)
            photos = photos[-MAX_PHOTOS:]
            self.store.set_json(PHOTOS_KEY, [p.model_dump(mode="json") for p in photos])

        logger.info(f"Photo saved: {photo.filename}")
        return photo

    def delete_photo(self, photo_id: str) -> bool:
        with self.store.lock:
            photos = self.get_all_photos()
            remaining = [p for p in photos if p.id != photo_id]
            if len(remaining) == len(photos):
                return False
            self.store.set_json(PHOTOS_KEY, [p.model_dump(mode="json") for p in remaining])

        logger.info(f"Photo deleted: {photo_id}")
        return True

    def clear_all(self) -> None:
        self.store.delete(PHOTOS_KEY)
        logger.info("All photos removed")
