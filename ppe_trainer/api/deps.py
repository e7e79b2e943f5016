"""
Service wiring and shared request dependencies.
"""
import random
from typing import Callable, Optional

from fastapi import Depends, UploadFile
from sqlalchemy.orm import Session

from ppe_trainer.core.config import settings
from ppe_trainer.core.exceptions import BadRequestError
from ppe_trainer.db.database import SessionLocal
from ppe_trainer.services.capture import CameraFrameSource
from ppe_trainer.services.detection import BaseDetector, ChatCompletionDetector
from ppe_trainer.services.export import TrainingDataExporter
from ppe_trainer.services.orchestrator import DetectionOrchestrator
from ppe_trainer.services.photo_history import PhotoHistoryStore
from ppe_trainer.services.prediction import PredictionEnhancer
from ppe_trainer.services.scoring import (
    EnsembleScorer,
    SimulatedEnsembleScorer,
    SimulatedTrainingScorer,
    TrainingScorer,
)
from ppe_trainer.services.storage import KeyValueStore
from ppe_trainer.services.training_folders import TrainingFolderStore
from ppe_trainer.services.training_images import TrainingImageRepository
from ppe_trainer.services.training_runner import TrainingRunner
from ppe_trainer.services.training_sessions import TrainingSessionLedger


class ServiceContainer:
    """
    All services sharing one key-value store.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        detector: BaseDetector,
        ensemble_scorer: Optional[EnsembleScorer] = None,
        training_scorer: Optional[TrainingScorer] = None,
        step_delay: float = 1.5,
        capture: Optional[CameraFrameSource] = None,
    ):
        self.store = KeyValueStore(session_factory)
        self.folders = TrainingFolderStore(self.store)
        self.repository = TrainingImageRepository(self.folders)
        self.ledger = TrainingSessionLedger(self.store, self.repository)
        self.enhancer = PredictionEnhancer(self.repository, self.ledger, ensemble_scorer)
        self.runner = TrainingRunner(self.ledger, training_scorer, step_delay=step_delay)
        self.photos = PhotoHistoryStore(self.store)
        self.orchestrator = DetectionOrchestrator(detector, self.enhancer, self.photos, capture)
        self.exporter = TrainingDataExporter(self.folders, self.repository, self.ledger)


def build_container_from_settings() -> ServiceContainer:
    """Wire the production services from ``settings``."""
    rng = random.Random(settings.SIMULATION_SEED)
    detector = ChatCompletionDetector(
        api_url=settings.DETECTOR_API_URL,
        api_key=settings.DETECTOR_API_KEY,
        model=settings.DETECTOR_MODEL,
        timeout=settings.DETECTOR_TIMEOUT,
    )
    capture = CameraFrameSource(settings.CAMERA_SOURCE) if settings.CAMERA_SOURCE else None

    return ServiceContainer(
        SessionLocal,
        detector,
        ensemble_scorer=SimulatedEnsembleScorer(rng),
        training_scorer=SimulatedTrainingScorer(rng),
        step_delay=settings.TRAINING_STEP_DELAY_SECONDS,
        capture=capture,
    )


_container = None


def get_container() -> ServiceContainer:
    """Get or create the service container singleton."""
    global _container
    if _container is None:
        _container = build_container_from_settings()
    return _container


def get_folder_store(container: ServiceContainer = Depends(get_container)) -> TrainingFolderStore:
    return container.folders


def get_repository(container: ServiceContainer = Depends(get_container)) -> TrainingImageRepository:
    return container.repository


def get_ledger(container: ServiceContainer = Depends(get_container)) -> TrainingSessionLedger:
    return container.ledger


def get_enhancer(container: ServiceContainer = Depends(get_container)) -> PredictionEnhancer:
    return container.enhancer


def get_runner(container: ServiceContainer = Depends(get_container)) -> TrainingRunner:
    return container.runner


def get_photo_store(container: ServiceContainer = Depends(get_container)) -> PhotoHistoryStore:
    return container.photos


def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> DetectionOrchestrator:
    return container.orchestrator


def get_exporter(container: ServiceContainer = Depends(get_container)) -> TrainingDataExporter:
    return container.exporter


async def read_image_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded image.

    Raises:
        BadRequestError: if the upload is not an image or is empty
    """
    if not file.content_type or not file.content_type.startswith("image/"):
        raise BadRequestError("File must be an image")

    content = await file.read()
    if not content:
        raise BadRequestError("Uploaded file is empty")

    return content
