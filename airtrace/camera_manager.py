"""
Webcam capture for live tracing.

Frames come out as RGB (what MediaPipe expects), mirrored by default so
that moving the hand right moves the fingertip right on screen, and
stamped with milliseconds since the camera opened.
"""

import sys
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from .config import (
    CAMERA_FPS,
    CAMERA_HEIGHT,
    CAMERA_MAX_FAILED_READS,
    CAMERA_WIDTH,
    DEFAULT_CAMERA_INDEX,
)
from .logger import get_logger

logger = get_logger("CameraManager")


class CameraError(Exception):
    """Raised when the camera cannot be opened or stops delivering frames."""
    pass


@dataclass(frozen=True)
class CapturedFrame:
    """One RGB frame with its capture time."""
    rgb: np.ndarray
    timestamp_ms: float
    index: int


class CameraManager:
    """
    OpenCV capture device producing timestamped RGB frames.

    A single failed read yields None (the tracker treats it as a dropout);
    ``max_failed_reads`` failures in a row raise CameraError.
    """

    def __init__(
        self,
        camera_index: int = DEFAULT_CAMERA_INDEX,
        width: int = CAMERA_WIDTH,
        height: int = CAMERA_HEIGHT,
        fps: int = CAMERA_FPS,
        mirror: bool = True,
        max_failed_reads: int = CAMERA_MAX_FAILED_READS
    ):
        """
        Initialize the camera manager. Nothing is opened until open().

        Args:
            camera_index: Capture device index.
            width: Requested capture width.
            height: Requested capture height.
            fps: Requested frame rate.
            mirror: Flip frames horizontally.
            max_failed_reads: Consecutive failed reads tolerated.
        """
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.fps = fps
        self.mirror = mirror
        self.max_failed_reads = max_failed_reads

        self._capture: Optional[cv2.VideoCapture] = None
        self._frame_count = 0
        self._failed_reads = 0
        self._opened_at = 0.0

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def frame_count(self) -> int:
        """Frames delivered since open()."""
        return self._frame_count

    def _create_capture(self) -> cv2.VideoCapture:
        if sys.platform == "win32":
            capture = cv2.VideoCapture(self.camera_index, cv2.CAP_DSHOW)
            if capture.isOpened():
                return capture
            logger.debug("DirectShow backend unavailable, using default")
            capture.release()
        return cv2.VideoCapture(self.camera_index)

    def open(self) -> None:
        """
        Open and configure the capture device.

        Raises:
            CameraError: If the device cannot be opened.
        """
        if self.is_open:
            self.close()

        logger.info(f"Opening camera {self.camera_index} ({self.width}x{self.height} @ {self.fps})")
        capture = self._create_capture()
        if not capture.isOpened():
            capture.release()
            raise CameraError(f"Failed to open camera {self.camera_index}")

        for prop, value in (
            (cv2.CAP_PROP_FRAME_WIDTH, self.width),
            (cv2.CAP_PROP_FRAME_HEIGHT, self.height),
            (cv2.CAP_PROP_FPS, self.fps),
            (cv2.CAP_PROP_BUFFERSIZE, 1),  # Always hand out the newest frame
        ):
            capture.set(prop, value)

        size = (int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)), int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        if size != (self.width, self.height):
            logger.warning(f"Camera delivers {size[0]}x{size[1]} instead of {self.width}x{self.height}")

        self._capture = capture
        self._frame_count = 0
        self._failed_reads = 0
        self._opened_at = time.perf_counter()

    def close(self) -> None:
        """Release the capture device. Safe to call twice."""
        if self._capture is None:
            return
        self._capture.release()
        self._capture = None
        logger.info(f"Camera {self.camera_index} closed after {self._frame_count} frames")

    def elapsed_ms(self) -> float:
        """Milliseconds since open()."""
        return (time.perf_counter() - self._opened_at) * 1000.0

    def read(self) -> Optional[CapturedFrame]:
        """
        Grab the next frame.

        Returns:
            CapturedFrame, or None when this read failed.

        Raises:
            CameraError: If the camera is not open or keeps failing.
        """
        if self._capture is None:
            raise CameraError("Camera is not open")

        ok, bgr = self._capture.read()
        timestamp_ms = self.elapsed_ms()
        if not ok or bgr is None:
            self._failed_reads += 1
            if self._failed_reads >= self.max_failed_reads:
                raise CameraError(f"Camera {self.camera_index} stopped delivering frames")
            logger.debug(f"Frame read failed ({self._failed_reads} in a row)")
            return None

        self._failed_reads = 0
        self._frame_count += 1

        if self.mirror:
            bgr = cv2.flip(bgr, 1)
        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        return CapturedFrame(rgb=rgb, timestamp_ms=timestamp_ms, index=self._frame_count)

    def __enter__(self) -> "CameraManager":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
