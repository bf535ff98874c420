"""
Thumb occlusion recovery.

When the thumb tip drops out (typically hidden behind the index finger
during a pinch) but the wrist and index tip are still tracked, the thumb
is inferred from the wrist plus the last confirmed thumb-to-wrist offset
for a short grace window.
"""

from dataclasses import dataclass
from typing import Optional

from .config import OcclusionConfig
from .landmarks import Landmark, distance_2d
from .logger import get_logger

logger = get_logger("OcclusionRecovery")

Point = tuple[float, float]


@dataclass(frozen=True)
class OcclusionResult:
    """Outcome of one occlusion check."""
    inferred_thumb: Optional[Point] = None
    thumb_occluded: bool = False
    hand_lost: bool = False


class OcclusionRecovery:
    """
    Caches stable thumb/wrist positions and infers an occluded thumb.

    The thumb-to-wrist offset is only trusted after it has been confirmed
    by ``min_stable_frames`` consecutive frames with both landmarks valid.
    """

    def __init__(self, config: Optional[OcclusionConfig] = None):
        """
        Initialize occlusion recovery.

        Args:
            config: Occlusion configuration, or None for defaults.
        """
        self.config = config or OcclusionConfig()

        self._last_thumb: Optional[Point] = None
        self._last_wrist: Optional[Point] = None
        self._offset: Optional[Point] = None
        self._offset_frames = 0
        self._occlusion_start_ms: Optional[float] = None
        self._hand_lost_at_ms: Optional[float] = None
        self._lost = False

    @property
    def has_stable_offset(self) -> bool:
        """Whether the cached offset is confirmed enough to infer from."""
        return (
            self._offset is not None
            and self._last_thumb is not None
            and self._offset_frames >= self.config.min_stable_frames
        )

    @property
    def hand_lost_at_ms(self) -> Optional[float]:
        """Timestamp of the most recent full hand loss."""
        return self._hand_lost_at_ms

    def _is_valid(self, landmark: Optional[Landmark]) -> bool:
        return landmark is not None and landmark.confidence >= self.config.min_landmark_confidence

    def process(
        self,
        thumb: Optional[Landmark],
        index: Optional[Landmark],
        wrist: Optional[Landmark],
        timestamp_ms: float
    ) -> OcclusionResult:
        """
        Check landmarks for occlusion and infer the thumb if possible.

        Args:
            thumb: Thumb tip landmark (or None).
            index: Index tip landmark (or None).
            wrist: Wrist landmark (or None).
            timestamp_ms: Frame timestamp in milliseconds.

        Returns:
            OcclusionResult. ``inferred_thumb`` is set only when the thumb is
            occluded and the inference passed validation.
        """
        thumb_valid = self._is_valid(thumb)
        index_valid = self._is_valid(index)
        wrist_valid = self._is_valid(wrist)

        if not thumb_valid and not index_valid and not wrist_valid:
            if not self._lost:
                logger.debug("Hand lost, clearing occlusion memory")
                self._hand_lost_at_ms = timestamp_ms
            self._clear()
            self._lost = True
            return OcclusionResult(hand_lost=True)

        self._lost = False

        if wrist_valid:
            self._last_wrist = wrist.point

        if thumb_valid:
            self._last_thumb = thumb.point
            if wrist_valid:
                self._offset = (thumb.x - wrist.x, thumb.y - wrist.y)
                self._offset_frames += 1
            else:
                self._offset_frames = 0
            self._occlusion_start_ms = None
            return OcclusionResult()

        # Thumb invalid from here on
        if not (index_valid and wrist_valid and self.has_stable_offset):
            self._occlusion_start_ms = None
            return OcclusionResult()

        if self._occlusion_start_ms is None:
            self._occlusion_start_ms = timestamp_ms
            logger.debug("Thumb occluded, starting grace window")

        elapsed = timestamp_ms - self._occlusion_start_ms
        if elapsed > self.config.grace_window_ms:
            return OcclusionResult()

        inferred = (wrist.x + self._offset[0], wrist.y + self._offset[1])
        if distance_2d(inferred, self._last_thumb) > self.config.max_inference_distance:
            logger.debug("Inferred thumb too far from last real thumb, suppressing")
            return OcclusionResult()

        return OcclusionResult(inferred_thumb=inferred, thumb_occluded=True)

    def _clear(self) -> None:
        self._last_thumb = None
        self._last_wrist = None
        self._offset = None
        self._offset_frames = 0
        self._occlusion_start_ms = None

    def reset(self) -> None:
        """Clear all cached positions and timestamps."""
        self._clear()
        self._hand_lost_at_ms = None
        self._lost = False
