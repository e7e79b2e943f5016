"""
Simulated training run: a fixed sequence of timed steps ending in one
recorded training session.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Union

from ppe_trainer.core.exceptions import BadRequestError, ConflictError
from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.common import utcnow
from ppe_trainer.models.schemas.session import SessionStatus, TrainingSession
from ppe_trainer.services.scoring import SimulatedTrainingScorer, TrainingScorer
from ppe_trainer.services.training_sessions import TrainingSessionLedger

TRAINING_STEPS = [
    "Analyzing image features",
    "Training convolutional networks",
    "Optimizing weights",
    "Validating model precision",
    "Saving trained model",
    "Training completed",
]

ProgressCallback = Callable[[str, float], Union[None, Awaitable[None]]]


class TrainingRunner:
    """
    Runs the training steps in order and records the resulting session.

    Nothing is persisted until every step has finished, so cancelling the
    task mid-run leaves the ledger untouched.
    """

    def __init__(self, ledger: TrainingSessionLedger, scorer: Optional[TrainingScorer] = None,
                 step_delay: float = 1.5):
        self.ledger = ledger
        self.scorer = scorer or SimulatedTrainingScorer()
        self.step_delay = step_delay
        self.running = False

    async def run(self, total_images: int,
                  on_progress: Optional[ProgressCallback] = None) -> TrainingSession:
        """
        Raises:
            BadRequestError: if ``total_images`` is below 1
            ConflictError: if another run on this runner has not finished
        """
        if total_images < 1:
            raise BadRequestError("At least one image is required for training")
        if self.running:
            raise ConflictError("A training run is already in progress")

        self.running = True
        try:
            return await self._run(total_images, on_progress)
        finally:
            self.running = False

    async def _run(self, total_images: int,
                   on_progress: Optional[ProgressCallback]) -> TrainingSession:
        started = utcnow()
        logger.info(f"Training run started with {total_images} images")

        for index, step in enumerate(TRAINING_STEPS, start=1):
            progress = index / len(TRAINING_STEPS) * 100
            logger.debug(f"Training step {index}/{len(TRAINING_STEPS)}: {step}")

            if on_progress is not None:
                maybe_awaitable = on_progress(step, progress)
                if asyncio.iscoroutine(maybe_awaitable):
                    await maybe_awaitable

            await asyncio.sleep(self.step_delay)

        outcome = self.scorer.score(total_images)
        session = TrainingSession(
            timestamp=utcnow(),
            total_images=total_images,
            accuracy=outcome.accuracy,
            model_version=f"v{int(started.timestamp() * 1000)}",
            epochs=outcome.epochs,
            validation_loss=outcome.validation_loss,
            training_time_seconds=outcome.training_time_seconds,
            status=SessionStatus.COMPLETED,
        )

        self.ledger.record_session(session)
        logger.info(f"Training run finished: {session.model_version} at {session.accuracy:.2f}%")
        return session
