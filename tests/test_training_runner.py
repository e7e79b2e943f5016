"""Tests for the simulated training run."""
import asyncio
import random

import pytest

from ppe_trainer.core.exceptions import BadRequestError, ConflictError
from ppe_trainer.services.scoring import FixedTrainingScorer, SimulatedTrainingScorer
from ppe_trainer.services.training_runner import TRAINING_STEPS, TrainingRunner


def test_run_records_exactly_one_session(ledger):
    runner = TrainingRunner(ledger, FixedTrainingScorer(accuracy=97.5), step_delay=0)

    session = asyncio.run(runner.run(12))

    sessions = ledger.get_sessions()
    assert [s.id for s in sessions] == [session.id]
    assert session.total_images == 12
    assert session.accuracy == 97.5
    assert session.model_version.startswith("v")
    assert ledger.current_model().version == session.model_version
    assert runner.running is False


def test_progress_reported_for_every_step(ledger):
    runner = TrainingRunner(ledger, FixedTrainingScorer(), step_delay=0)
    reported = []

    asyncio.run(runner.run(3, on_progress=lambda step, progress: reported.append((step, progress))))

    assert [step for step, _ in reported] == TRAINING_STEPS
    assert reported[-1][1] == 100


def test_async_progress_callback_is_awaited(ledger):
    runner = TrainingRunner(ledger, FixedTrainingScorer(), step_delay=0)
    reported = []

    async def on_progress(step, progress):
        await asyncio.sleep(0)
        reported.append(step)

    asyncio.run(runner.run(3, on_progress=on_progress))
    assert reported == TRAINING_STEPS


def test_run_rejects_zero_images(ledger):
    runner = TrainingRunner(ledger, FixedTrainingScorer(), step_delay=0)

    with pytest.raises(BadRequestError):
        asyncio.run(runner.run(0))
    assert ledger.get_sessions() == []


def test_cancelled_run_persists_nothing(ledger):
    runner = TrainingRunner(ledger, FixedTrainingScorer(), step_delay=10)

    async def cancel_midway():
        task = asyncio.create_task(runner.run(5))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(cancel_midway())
    assert ledger.get_sessions() == []
    assert runner.running is False


def test_concurrent_run_is_rejected(ledger):
    runner = TrainingRunner(ledger, FixedTrainingScorer(), step_delay=0.05)

    async def overlap():
        first = asyncio.create_task(runner.run(5))
        await asyncio.sleep(0.01)
        with pytest.raises(ConflictError):
            await runner.run(5)
        await first

    asyncio.run(overlap())
    assert len(ledger.get_sessions()) == 1


def test_simulated_scorer_ranges():
    scorer = SimulatedTrainingScorer(random.Random(7))

    for _ in range(50):
        outcome = scorer.score(10)
        assert 95 <= outcome.accuracy <= 99
        assert 0.05 <= outcome.validation_loss <= 0.08
        assert 90 <= outcome.training_time_seconds <= 150
        assert outcome.epochs == 50
