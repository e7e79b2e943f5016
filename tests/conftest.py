"""Shared fixtures: an isolated in-memory store per test and services built on it."""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ppe_trainer.api.deps import ServiceContainer, get_container
from ppe_trainer.db.database import Base, get_db
from ppe_trainer.models.kv_entry import KeyValueEntry  # noqa: F401
from ppe_trainer.models.schemas.detection import DetectionResult
from ppe_trainer.models.schemas.training import PPELabels
from ppe_trainer.services.detection import StaticDetector
from ppe_trainer.services.photo_history import PhotoHistoryStore
from ppe_trainer.services.prediction import PredictionEnhancer
from ppe_trainer.services.quality import MIB
from ppe_trainer.services.scoring import ConsensusEnsembleScorer, FixedTrainingScorer
from ppe_trainer.services.storage import KeyValueStore
from ppe_trainer.services.training_folders import TrainingFolderStore, build_sample
from ppe_trainer.services.training_images import TrainingImageRepository
from ppe_trainer.services.training_sessions import TrainingSessionLedger

HIGH_QUALITY_SIZE = 3 * MIB


def make_image_bytes(width=64, height=48, fmt="PNG"):
    """Encode a solid-color image."""
    output = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 120, 40)).save(output, format=fmt)
    return output.getvalue()


def make_sample(size_bytes=HIGH_QUALITY_SIZE, file_name="worker.jpg", **labels):
    """A sample whose quality is derived from the declared ``size_bytes``."""
    return build_sample(b"fake-image", file_name, PPELabels(**labels), size_bytes=size_bytes)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return KeyValueStore(session_factory)


@pytest.fixture
def folders(store):
    return TrainingFolderStore(store)


@pytest.fixture
def repository(folders):
    return TrainingImageRepository(folders)


@pytest.fixture
def ledger(store, repository):
    return TrainingSessionLedger(store, repository)


@pytest.fixture
def enhancer(repository, ledger):
    return PredictionEnhancer(repository, ledger, ConsensusEnsembleScorer())


@pytest.fixture
def photos(store):
    return PhotoHistoryStore(store)


@pytest.fixture
def base_result():
    return DetectionResult(
        has_helmet=True,
        has_vest=True,
        confidence=70,
        details="Base analysis",
        overall_compliance=False,
        missing_items=["Protective gloves", "Safety glasses", "Mask"],
    )


@pytest.fixture
def container(session_factory, base_result):
    return ServiceContainer(
        session_factory,
        StaticDetector(base_result),
        ensemble_scorer=ConsensusEnsembleScorer(),
        training_scorer=FixedTrainingScorer(),
        step_delay=0,
    )


@pytest.fixture
def client(container, session_factory):
    from ppe_trainer.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_container] = lambda: container
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
