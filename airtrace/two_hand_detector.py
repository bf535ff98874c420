"""
Two-hand presence gate.

Reports when both hands have been visible steadily for a short window,
with time-averaged index tip positions for each side.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

from .config import TwoHandConfig
from .landmarks import LandmarkFrame
from .logger import get_logger

logger = get_logger("TwoHandDetector")

Point = tuple[float, float]


@dataclass(frozen=True)
class TwoHandState:
    """Current two-hand gate output."""
    is_active: bool = False
    left: Optional[Point] = None
    right: Optional[Point] = None


class TwoHandDetector:
    """
    Tracks whether two hands are simultaneously and stably present.

    Hands are split by wrist x (left of ``left_boundary`` is "left"); each
    side keeps a time-windowed history of index tip positions.
    """

    def __init__(self, config: Optional[TwoHandConfig] = None):
        self.config = config or TwoHandConfig()
        self._left: deque[tuple[float, Point]] = deque()
        self._right: deque[tuple[float, Point]] = deque()
        self._active = False

    @property
    def required_frames(self) -> float:
        """Frames expected in the window, scaled by the stability fraction."""
        expected = self.config.detection_duration_ms / self.config.frame_interval_ms
        return expected * self.config.stability_threshold

    def process(self, frame: Optional[LandmarkFrame]) -> TwoHandState:
        """
        Update with one frame.

        Args:
            frame: Landmark frame, or None when no frame arrived.

        Returns:
            TwoHandState; inactive whenever the feature is disabled.
        """
        if not self.config.enabled:
            return TwoHandState()

        if frame is None or len(frame.hands) < 2:
            self.reset()
            return TwoHandState()

        left_tip: Optional[Point] = None
        right_tip: Optional[Point] = None
        for hand in frame.hands:
            wrist = hand.wrist
            tip = hand.index_tip
            if wrist is None or tip is None:
                continue
            if wrist.x < self.config.left_boundary:
                left_tip = tip.point
            else:
                right_tip = tip.point

        if left_tip is None or right_tip is None:
            self.reset()
            return TwoHandState()

        timestamp = frame.timestamp_ms
        self._left.append((timestamp, left_tip))
        self._right.append((timestamp, right_tip))
        self._trim(timestamp)

        stable = min(len(self._left), len(self._right)) >= self.required_frames
        if stable != self._active:
            logger.debug(f"Two-hand mode {'active' if stable else 'inactive'}")
            self._active = stable

        if not stable:
            return TwoHandState()

        return TwoHandState(
            is_active=True,
            left=_average(self._left),
            right=_average(self._right)
        )

    def _trim(self, now_ms: float) -> None:
        cutoff = now_ms - self.config.detection_duration_ms
        for history in (self._left, self._right):
            while history and history[0][0] <= cutoff:
                history.popleft()

    def reset(self) -> None:
        """Drop both histories."""
        if self._active:
            logger.debug("Two-hand mode inactive")
        self._left.clear()
        self._right.clear()
        self._active = False


def _average(history: deque[tuple[float, Point]]) -> Point:
    n = len(history)
    return (
        sum(point[0] for _, point in history) / n,
        sum(point[1] for _, point in history) / n,
    )
