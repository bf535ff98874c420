"""
Dynamic detection resolution.

Lowers the resolution fed to the landmark detector when the pipeline
cannot keep up, and restores it slowly once performance recovers.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from .config import ResolutionConfig
from .logger import get_logger

logger = get_logger("DynamicResolution")


@dataclass(frozen=True)
class PerformanceSample:
    """One reading from the performance sampler."""
    render_fps: float
    detect_fps: float
    detection_latency_ms: float
    timestamp_ms: float


class DynamicResolutionController:
    """
    Picks a detection resolution level from recent performance.

    Levels are ordered finest first; index 0 is full quality. Scaling
    down reacts to ``sustain_duration_ms`` of poor performance and waits
    ``cooldown_ms`` between changes. Scaling up needs twice the sustained
    window and twice the cooldown.
    """

    def __init__(self, config: Optional[ResolutionConfig] = None):
        """
        Initialize the controller.

        Args:
            config: Resolution configuration, or None for defaults.
        """
        self.config = config or ResolutionConfig()
        if not self.config.levels:
            raise ValueError("ResolutionConfig.levels must not be empty")

        self._index = 0
        self._history: deque[PerformanceSample] = deque()
        self._last_change_ms: Optional[float] = None

    @property
    def level_index(self) -> int:
        return self._index

    @property
    def sample_count(self) -> int:
        return len(self._history)

    def add_sample(
        self,
        render_fps: float,
        detect_fps: float,
        detection_latency_ms: float,
        timestamp_ms: float
    ) -> bool:
        """
        Record a performance sample and re-evaluate the level.

        Args:
            render_fps: Frames rendered per second.
            detect_fps: Detector invocations per second.
            detection_latency_ms: Latency of the last detection.
            timestamp_ms: Sample time in milliseconds.

        Returns:
            True if the resolution level changed.
        """
        sample = PerformanceSample(render_fps, detect_fps, detection_latency_ms, timestamp_ms)
        self._history.append(sample)

        cutoff = timestamp_ms - self.config.history_window_ms
        while self._history and self._history[0].timestamp_ms < cutoff:
            self._history.popleft()

        if len(self._history) < self.config.min_samples:
            return False

        if self._should_scale_down(timestamp_ms):
            return self._change_level(self._index + 1, timestamp_ms)
        if self._should_scale_up(timestamp_ms):
            return self._change_level(self._index - 1, timestamp_ms)
        return False

    def _window(self, now_ms: float, duration_ms: float) -> Optional[list[PerformanceSample]]:
        """Samples from the last ``duration_ms``, or None if history is shorter."""
        if not self._history or now_ms - self._history[0].timestamp_ms < duration_ms:
            return None
        start = now_ms - duration_ms
        return [s for s in self._history if s.timestamp_ms >= start]

    def _cooled_down(self, now_ms: float, cooldown_ms: float) -> bool:
        return self._last_change_ms is None or now_ms - self._last_change_ms >= cooldown_ms

    def _should_scale_down(self, now_ms: float) -> bool:
        if self._index >= len(self.config.levels) - 1:
            return False
        if not self._cooled_down(now_ms, self.config.cooldown_ms):
            return False

        window = self._window(now_ms, self.config.sustain_duration_ms)
        if not window:
            return False

        avg_fps = float(np.mean([s.render_fps for s in window]))
        avg_latency = float(np.mean([s.detection_latency_ms for s in window]))
        return avg_fps < self.config.fps_threshold or avg_latency > self.config.latency_threshold_ms

    def _should_scale_up(self, now_ms: float) -> bool:
        if self._index <= 0:
            return False
        if not self._cooled_down(now_ms, self.config.cooldown_ms * 2):
            return False

        window = self._window(now_ms, self.config.sustain_duration_ms * 2)
        if not window:
            return False

        avg_fps = float(np.mean([s.render_fps for s in window]))
        avg_latency = float(np.mean([s.detection_latency_ms for s in window]))
        latency_ceiling = self.config.latency_threshold_ms * self.config.latency_headroom
        return avg_fps > self.config.fps_hysteresis and avg_latency < latency_ceiling

    def _change_level(self, new_index: int, now_ms: float) -> bool:
        old = self.config.levels[self._index]
        self._index = new_index
        self._last_change_ms = now_ms
        new = self.config.levels[new_index]
        logger.info(
            f"Detection resolution {old[0]}x{old[1]} -> {new[0]}x{new[1]}"
        )
        return True

    def get_detection_resolution(self) -> tuple[int, int]:
        """Current (width, height) to request from the detector."""
        return self.config.levels[self._index]

    def get_scale_factor(self) -> float:
        """Current width relative to the finest level."""
        return self.config.levels[self._index][0] / self.config.levels[0][0]

    def scale_frame(self, frame: np.ndarray) -> np.ndarray:
        """
        Resize a camera frame to the current detection resolution.

        Frames already at or below the target size are returned unchanged.
        """
        width, height = self.get_detection_resolution()
        frame_h, frame_w = frame.shape[:2]
        if frame_w <= width and frame_h <= height:
            return frame
        return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)

    def reset(self) -> None:
        """Return to the finest level and clear history."""
        self._index = 0
        self._history.clear()
        self._last_change_ms = None
