"""
Camera frame source backed by OpenCV.
"""
import asyncio
from typing import Callable, Optional, Union

import cv2

from ppe_trainer.core.logging import logger

JPEG_QUALITY = 80


def parse_camera_source(source: Union[str, int]) -> Union[str, int]:
    """Digit strings are device indexes; anything else is a URL or file path."""
    if isinstance(source, str) and source.strip().isdigit():
        return int(source.strip())
    return source


class CameraFrameSource:
    """
    Reads single frames from a camera and encodes them as JPEG.

    The capture is opened lazily on the first read and reopened after
    ``release()``.
    """

    def __init__(self, source: Union[str, int], capture_factory: Callable = cv2.VideoCapture,
                 jpeg_quality: int = JPEG_QUALITY):
        self.source = parse_camera_source(source)
        self._capture_factory = capture_factory
        self._jpeg_quality = jpeg_quality
        self._capture = None

    def _open(self):
        if self._capture is None or not self._capture.isOpened():
            self._capture = self._capture_factory(self.source)
            if not self._capture.isOpened():
                logger.warning(f"Unable to open video source '{self.source}'")
        return self._capture

    def read_frame(self) -> Optional[bytes]:
        """Grab one frame as JPEG bytes, or None if none is available."""
        capture = self._open()
        if not capture.isOpened():
            return None

        ok, frame = capture.read()
        if not ok or frame is None:
            logger.debug(f"No frame available from '{self.source}'")
            return None

        ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality])
        if not ok:
            logger.warning("Failed to encode camera frame")
            return None

        return buffer.tobytes()

    async def capture(self) -> Optional[bytes]:
        return await asyncio.to_thread(self.read_frame)

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Video source '{self.source}' released")
