"""
Detection orchestrator: one capture -> detect -> enhance -> save cycle at a
time, optionally repeated on a fixed interval.
"""
import asyncio
from typing import Optional, Union

from ppe_trainer.core.exceptions import DetectorError
from ppe_trainer.core.logging import logger
from ppe_trainer.models.schemas.detection import DetectionResult, EnhancedDetectionResult
from ppe_trainer.services.capture import CameraFrameSource
from ppe_trainer.services.detection import BaseDetector
from ppe_trainer.services.photo_history import PhotoHistoryStore
from ppe_trainer.services.prediction import PredictionEnhancer

DEFAULT_INTERVAL_SECONDS = 4.0


class DetectionOrchestrator:
    """
    Runs detection cycles with a busy guard.

    A request that arrives while a cycle is in flight is dropped, not queued.
    """

    def __init__(self, detector: BaseDetector, enhancer: PredictionEnhancer,
                 photos: PhotoHistoryStore, capture: Optional[CameraFrameSource] = None):
        self.detector = detector
        self.enhancer = enhancer
        self.photos = photos
        self.capture = capture
        self.busy = False
        self.last_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._cycles = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def analyze(self, image_bytes: bytes, mime_type: str = "image/jpeg"
                      ) -> Optional[Union[DetectionResult, EnhancedDetectionResult]]:
        """
        Detect, enhance and record one frame.

        Returns None when another analysis is already running.

        Raises:
            DetectorError: if the base detector fails
        """
        if self.busy:
            logger.debug("Analysis already in progress, frame skipped")
            return None

        self.busy = True
        try:
            return await self._process(image_bytes, mime_type)
        finally:
            self.busy = False

    async def _process(self, image_bytes: bytes, mime_type: str):
        base = await self.detector.detect(image_bytes)
        result = self.enhancer.enhance(base)
        self.photos.save_photo(image_bytes, result, mime_type=mime_type)
        self.last_error = None
        return result

    async def run_cycle(self) -> Optional[Union[DetectionResult, EnhancedDetectionResult]]:
        """Capture and analyze one frame; detector failures are logged, not raised."""
        if self.capture is None:
            return None
        if self.busy:
            logger.debug("Detection cycle still in flight, tick skipped")
            return None

        # Busy also covers the capture; one camera read at a time
        self.busy = True
        try:
            frame = await self.capture.capture()
            if frame is None:
                return None
            return await self._process(frame, "image/jpeg")
        except DetectorError as e:
            self.last_error = str(e)
            logger.error(f"Detection cycle failed: {e}")
            return None
        finally:
            self.busy = False

    async def _loop(self, interval: float) -> None:
        while True:
            cycle = asyncio.create_task(self.run_cycle())
            self._cycles.add(cycle)
            cycle.add_done_callback(self._cycles.discard)
            await asyncio.sleep(interval)

    def start(self, interval: float = DEFAULT_INTERVAL_SECONDS) -> None:
        """Start firing a cycle every ``interval`` seconds on the running loop."""
        if self.capture is None:
            raise RuntimeError("No camera configured for automatic detection")
        if self.running:
            return

        self._task = asyncio.create_task(self._loop(interval))
        logger.info(f"Automatic detection started every {interval}s")

    async def stop(self) -> None:
        """Cancel the periodic task and any cycle in flight, then release the camera."""
        tasks = list(self._cycles)
        if self._task is not None:
            tasks.append(self._task)
            self._task = None

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if self.capture is not None:
            self.capture.release()
        logger.info("Automatic detection stopped")
