"""Tests for the detection orchestrator and its busy guard."""
import asyncio

import pytest

from conftest import make_sample
from ppe_trainer.core.exceptions import DetectorError
from ppe_trainer.models.schemas.detection import EnhancedDetectionResult
from ppe_trainer.services.detection import BaseDetector, StaticDetector
from ppe_trainer.services.orchestrator import DetectionOrchestrator


class BlockingDetector(BaseDetector):
    """Waits for ``release`` before answering."""

    def __init__(self, result):
        self.result = result
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def detect(self, image_bytes):
        self.started.set()
        await self.release.wait()
        return self.result


class FailingDetector(BaseDetector):
    async def detect(self, image_bytes):
        raise DetectorError("detector offline")


class FakeFrameSource:
    def __init__(self, frame=b"frame"):
        self.frame = frame
        self.captures = 0
        self.released = False

    async def capture(self):
        self.captures += 1
        return self.frame

    def release(self):
        self.released = True


def test_analyze_enhances_and_saves_photo(enhancer, photos, folders, base_result):
    folder = folders.create_folder("Obra")
    folders.add_sample(folder.id, make_sample(helmet=True))
    orchestrator = DetectionOrchestrator(StaticDetector(base_result), enhancer, photos)

    result = asyncio.run(orchestrator.analyze(b"frame"))

    assert isinstance(result, EnhancedDetectionResult)
    stored = photos.get_all_photos()
    assert len(stored) == 1
    assert stored[0].detection_result["confidence"] == result.confidence
    assert orchestrator.busy is False


def test_overlapping_analysis_is_suppressed(enhancer, photos, base_result):
    async def scenario():
        detector = BlockingDetector(base_result)
        orchestrator = DetectionOrchestrator(detector, enhancer, photos)

        first = asyncio.create_task(orchestrator.analyze(b"first"))
        await detector.started.wait()

        assert orchestrator.busy is True
        assert await orchestrator.analyze(b"second") is None

        detector.release.set()
        result = await first
        return orchestrator, result

    orchestrator, result = asyncio.run(scenario())

    assert result.confidence == 70
    assert orchestrator.busy is False
    assert len(photos.get_all_photos()) == 1


def test_busy_flag_cleared_after_failure(enhancer, photos):
    orchestrator = DetectionOrchestrator(FailingDetector(), enhancer, photos)

    with pytest.raises(DetectorError):
        asyncio.run(orchestrator.analyze(b"frame"))

    assert orchestrator.busy is False
    assert photos.get_all_photos() == []


def test_run_cycle_records_detector_errors(enhancer, photos):
    orchestrator = DetectionOrchestrator(FailingDetector(), enhancer, photos, FakeFrameSource())

    assert asyncio.run(orchestrator.run_cycle()) is None
    assert orchestrator.last_error == "detector offline"
    assert orchestrator.busy is False


def test_run_cycle_skips_missing_frames(enhancer, photos, base_result):
    detector = StaticDetector(base_result)
    orchestrator = DetectionOrchestrator(detector, enhancer, photos, FakeFrameSource(frame=None))

    assert asyncio.run(orchestrator.run_cycle()) is None
    assert detector.calls == 0


def test_run_cycle_without_camera_does_nothing(enhancer, photos, base_result):
    orchestrator = DetectionOrchestrator(StaticDetector(base_result), enhancer, photos)
    assert asyncio.run(orchestrator.run_cycle()) is None


def test_overlapping_cycle_does_not_capture(enhancer, photos, base_result):
    """A tick that fires while a cycle is in flight never reads the camera."""
    source = FakeFrameSource()

    async def scenario():
        detector = BlockingDetector(base_result)
        orchestrator = DetectionOrchestrator(detector, enhancer, photos, source)

        first = asyncio.create_task(orchestrator.run_cycle())
        await detector.started.wait()

        assert await orchestrator.run_cycle() is None
        assert source.captures == 1

        detector.release.set()
        return orchestrator, await first

    orchestrator, result = asyncio.run(scenario())

    assert result.confidence == 70
    assert orchestrator.busy is False
    assert source.captures == 1
    assert len(photos.get_all_photos()) == 1


def test_start_and_stop_periodic_detection(enhancer, photos, base_result):
    source = FakeFrameSource()
    orchestrator = DetectionOrchestrator(StaticDetector(base_result), enhancer, photos, source)

    async def scenario():
        orchestrator.start(interval=0.01)
        assert orchestrator.running is True
        await asyncio.sleep(0.1)
        await orchestrator.stop()

    asyncio.run(scenario())

    assert orchestrator.running is False
    assert source.captures >= 2
    assert source.released is True
    assert len(photos.get_all_photos()) >= 1


def test_start_requires_a_camera(enhancer, photos, base_result):
    orchestrator = DetectionOrchestrator(StaticDetector(base_result), enhancer, photos)

    async def scenario():
        orchestrator.start()

    with pytest.raises(RuntimeError):
        asyncio.run(scenario())
