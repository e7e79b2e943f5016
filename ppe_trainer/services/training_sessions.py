"""
Training session ledger and the derived current-model descriptor.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.common import utcnow
from ppe_trainer.models.schemas.session import (
    CurrentModelDescriptor,
    LedgerStats,
    ModelEvolutionEntry,
    ModelParameters,
    RetrainingStatus,
    SessionStatus,
    TrainingSession,
)
from ppe_trainer.services.storage import KeyValueStore
from ppe_trainer.services.training_images import TrainingImageRepository

SESSIONS_KEY = "neural_training_sessions"
MODEL_KEY = "current_neural_model"

MAX_SESSIONS = 20
EVOLUTION_LENGTH = 5
RETRAIN_AFTER_DAYS = 7
RETRAIN_MIN_IMAGES = 50

TRAINED_LEARNING_RATE = 0.001
TRAINED_BATCH_SIZE = 32
TRAINED_LAYERS = 8


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class TrainingSessionLedger:
    """
    Newest-first history of training sessions (at most 20) and the
    singleton model descriptor they accumulate into.
    """

    def __init__(self, store: KeyValueStore, repository: TrainingImageRepository):
        self.store = store
        self.repository = repository

    def get_sessions(self) -> List[TrainingSession]:
        raw = self.store.get_json(SESSIONS_KEY, default=[])
        if not isinstance(raw, list):
            logger.warning(f"Unexpected '{SESSIONS_KEY}' payload, treating as empty")
            return []

        try:
            return [TrainingSession.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.warning(f"Invalid session data under '{SESSIONS_KEY}', treating as empty: {e}")
            return []

    def _load_model(self) -> Optional[CurrentModelDescriptor]:
        raw = self.store.get_json(MODEL_KEY)
        if raw is None:
            return None

        try:
            return CurrentModelDescriptor.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Invalid model descriptor under '{MODEL_KEY}', resetting: {e}")
            return None

    def current_model(self) -> CurrentModelDescriptor:
        """Return the model descriptor, persisting the default on first access."""
        with self.store.lock:
            model = self._load_model()
            if model is None:
                model = CurrentModelDescriptor(is_default=True)
                self.store.set_json(MODEL_KEY, model.model_dump(mode="json"))
            return model

    def record_session(self, session: TrainingSession) -> CurrentModelDescriptor:
        """
        Prepend a session, keep the newest 20 and fold it into the model.

        History and descriptor are written in one transaction.
        """
        with self.store.lock:
            previous = self.get_sessions()
            sessions = ([session] + previous)[:MAX_SESSIONS]

            current = self._load_model()
            if current is None or current.is_default:
                # The first recorded session starts the running max and sum
                accuracy = session.accuracy
                trained_images = session.total_images
            else:
                accuracy = max(current.accuracy, session.accuracy)
                trained_images = current.trained_images + session.total_images

            updated = CurrentModelDescriptor(
                version=session.model_version,
                accuracy=accuracy,
                trained_images=trained_images,
                last_training_at=session.timestamp,
                parameters=ModelParameters(
                    learning_rate=TRAINED_LEARNING_RATE,
                    batch_size=TRAINED_BATCH_SIZE,
                    epochs=session.epochs,
                    layers=TRAINED_LAYERS,
                ),
            )

            self.store.set_many({
                SESSIONS_KEY: [s.model_dump(mode="json") for s in sessions],
                MODEL_KEY: updated.model_dump(mode="json"),
            })

        logger.info(f"Training session {session.id} recorded; model now {updated.version} "
                    f"({updated.accuracy:.2f}%, {updated.trained_images} images)")
        return updated

    def _total_images(self, model: CurrentModelDescriptor) -> int:
        # Trained images and stored samples are summed as-is; the two
        # counters are never reconciled.
        return model.trained_images + self.repository.stats().total_images

    def stats(self) -> LedgerStats:
        sessions = self.get_sessions()
        model = self.current_model()

        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
        total_training_time = sum(s.training_time_seconds for s in completed)
        average_accuracy = (
            sum(s.accuracy for s in completed) / len(completed) if completed else 0.0
        )

        return LedgerStats(
            total_sessions=len(sessions),
            completed_sessions=len(completed),
            total_training_time=round(total_training_time),
            average_accuracy=round(average_accuracy, 2),
            current_model=model,
            last_training=sessions[0].timestamp if sessions else None,
            total_images_processed=self._total_images(model),
            model_evolution=[
                ModelEvolutionEntry(version=s.model_version, accuracy=s.accuracy, date=s.timestamp)
                for s in sessions[:EVOLUTION_LENGTH]
            ],
        )

    def retraining_status(self, now: Optional[datetime] = None) -> RetrainingStatus:
        model = self.current_model()
        now = _aware(now or utcnow())
        days = (now - _aware(model.last_training_at)).total_seconds() / 86400
        total = self._total_images(model)

        return RetrainingStatus(
            needs_retraining=days > RETRAIN_AFTER_DAYS or total < RETRAIN_MIN_IMAGES,
            days_since_training=round(days, 2),
            total_images=total,
        )

    def needs_retraining(self, now: Optional[datetime] = None) -> bool:
        """True after a week without training or with fewer than 50 images overall."""
        return self.retraining_status(now).needs_retraining

    def projected_accuracy(self, base_accuracy: float, training_images: int) -> float:
        """Accuracy expected after adding ``training_images`` more images, capped at 99."""
        model = self.current_model()
        improvement = min(0.15, (model.trained_images + training_images) / 1000 * 0.1)
        return round(min(99.0, base_accuracy + improvement * 100), 2)

    def recommendations(self) -> List[str]:
        model = self.current_model()
        recommendations = []

        if model.trained_images < RETRAIN_MIN_IMAGES:
            recommendations.append("Add more training images to improve precision")

        if model.accuracy < 90:
            recommendations.append("The model needs more training to reach high precision")

        if self.needs_retraining():
            recommendations.append("Consider retraining the model with more recent data")

        if model.trained_images > 100 and model.accuracy > 95:
            recommendations.append("The model is well trained and ready for production use")

        return recommendations or ["The model is working correctly"]

    def clear(self) -> None:
        self.store.delete(SESSIONS_KEY, MODEL_KEY)
        logger.info("Training sessions and model descriptor cleared")
