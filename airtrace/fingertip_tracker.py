"""
Per-frame fingertip tracking.

Composes occlusion recovery, the two-stage filter, the pen state machine
and the two-hand detector into one call per landmark frame. Everything
here is single-threaded and synchronous; a missing frame is a dropout.
"""

from dataclasses import dataclass
from typing import Optional

from .config import DEFAULT_VIEWPORT_HEIGHT, DEFAULT_VIEWPORT_WIDTH, TrackerSettings
from .landmarks import HandLandmarks, LandmarkFrame
from .logger import get_logger
from .occlusion_recovery import OcclusionRecovery
from .pen_state_machine import PenEvent, PenState, PenStateMachine
from .pinch_logic import calculate_hand_scale
from .predictive_smoothing import TwoStageFilter
from .two_hand_detector import TwoHandDetector, TwoHandState

logger = get_logger("FingertipTracker")

Point = tuple[float, float]


@dataclass(frozen=True)
class TrackingResult:
    """
    Output of one tracked frame.

    Attributes:
        timestamp_ms: Frame timestamp.
        hand_present: Whether a usable hand was seen.
        raw_index: Index tip as detected.
        filtered_index: Index tip after stage A smoothing.
        predicted_index: Stage B extrapolation for rendering.
        thumb: Thumb tip used for pinch detection (real or inferred).
        thumb_inferred: Whether ``thumb`` came from occlusion recovery.
        confidence: Tracking confidence used by the pen machine.
        hand_scale: Wrist to middle-MCP distance, clamped.
        pen_state: Committed pen state after this frame.
        pen_events: Pen events produced this frame, in order.
        two_hand: Two-hand gate state.
    """
    timestamp_ms: float
    hand_present: bool
    pen_state: PenState
    pen_events: tuple[PenEvent, ...] = ()
    raw_index: Optional[Point] = None
    filtered_index: Optional[Point] = None
    predicted_index: Optional[Point] = None
    thumb: Optional[Point] = None
    thumb_inferred: bool = False
    confidence: float = 0.0
    hand_scale: float = 0.0
    two_hand: TwoHandState = TwoHandState()

    @property
    def pen_down(self) -> bool:
        return self.pen_state is PenState.DOWN


class FingertipTracker:
    """
    Turns landmark frames into a smoothed fingertip plus pen state.

    Usage:
        tracker = FingertipTracker(settings)
        for frame in frames:
            result = tracker.process(frame)
            session.process(result.filtered_index, result.pen_down, result.timestamp_ms)
    """

    def __init__(
        self,
        settings: Optional[TrackerSettings] = None,
        viewport_w: float = DEFAULT_VIEWPORT_WIDTH,
        viewport_h: float = DEFAULT_VIEWPORT_HEIGHT
    ):
        """
        Initialize the tracker.

        Args:
            settings: Tracker settings, or None for defaults.
            viewport_w: Viewport width in pixels, for prediction clamping.
            viewport_h: Viewport height in pixels.
        """
        self.settings = settings or TrackerSettings()
        self.viewport_w = viewport_w
        self.viewport_h = viewport_h

        features = self.settings.features
        self.occlusion = OcclusionRecovery(self.settings.occlusion) if features.occlusion_recovery else None
        self.smoother = TwoStageFilter.for_mode(self.settings.filter_mode, self.settings.predictor)
        self.pen = PenStateMachine(self.settings.pen)
        self.two_hand = TwoHandDetector(self.settings.two_hand)

        self._last_timestamp_ms = 0.0
        self._hand_present = False

        logger.info(
            f"FingertipTracker initialized (filter={self.settings.filter_mode}, "
            f"occlusion={'on' if self.occlusion else 'off'}, "
            f"two_hand={'on' if self.settings.two_hand.enabled else 'off'})"
        )

    def set_viewport(self, width: float, height: float) -> None:
        self.viewport_w = width
        self.viewport_h = height

    def process(
        self,
        frame: Optional[LandmarkFrame],
        timestamp_ms: Optional[float] = None
    ) -> TrackingResult:
        """
        Track one frame.

        Args:
            frame: Landmark frame, or None when the source produced nothing.
            timestamp_ms: Timestamp to use when ``frame`` is None; defaults
                to the last seen timestamp.

        Returns:
            TrackingResult for this frame.
        """
        if frame is not None:
            now = frame.timestamp_ms
        elif timestamp_ms is not None:
            now = timestamp_ms
        else:
            now = self._last_timestamp_ms
        self._last_timestamp_ms = now

        two_hand = self.two_hand.process(frame)
        hand = frame.primary_hand if frame is not None else None
        if hand is None:
            return self._dropout(now, two_hand)

        return self._track_hand(hand, now, two_hand)

    def _track_hand(self, hand: HandLandmarks, now: float, two_hand: TwoHandState) -> TrackingResult:
        index = hand.index_tip
        thumb = hand.thumb_tip
        wrist = hand.wrist

        thumb_point: Optional[Point] = None
        thumb_inferred = False
        if self.occlusion is not None:
            occlusion = self.occlusion.process(thumb, index, wrist, now)
            if occlusion.hand_lost:
                return self._dropout(now, two_hand)
            if occlusion.thumb_occluded:
                thumb_point = occlusion.inferred_thumb
                thumb_inferred = True
            elif thumb is not None and thumb.confidence >= self.settings.occlusion.min_landmark_confidence:
                thumb_point = thumb.point
        elif thumb is not None:
            thumb_point = thumb.point

        if index is None:
            return self._dropout(now, two_hand)

        if not self._hand_present:
            logger.debug("Hand acquired")
        self._hand_present = True

        confidence = min(hand.score, index.confidence)
        if confidence >= self.settings.pen.min_confidence:
            filtered = self.smoother.update(index.x, index.y, now)
        else:
            # Keep unreliable detections out of the filter state
            filtered = self.smoother.last_filtered or index.point
        hand_scale = calculate_hand_scale(hand.landmarks)
        events = self.pen.process(filtered, thumb_point, hand_scale, confidence, now)
        predicted = self.smoother.predict(None, self.viewport_w, self.viewport_h)

        return TrackingResult(
            timestamp_ms=now,
            hand_present=True,
            pen_state=self.pen.state,
            pen_events=tuple(events),
            raw_index=index.point,
            filtered_index=filtered,
            predicted_index=predicted,
            thumb=thumb_point,
            thumb_inferred=thumb_inferred,
            confidence=confidence,
            hand_scale=hand_scale,
            two_hand=two_hand
        )

    def _dropout(self, now: float, two_hand: TwoHandState) -> TrackingResult:
        if self._hand_present:
            logger.debug("Hand lost, resetting filter")
            self.smoother.reset()
            if self.occlusion is not None:
                self.occlusion.process(None, None, None, now)
        self._hand_present = False

        events = self.pen.process(None, None, 0.0, 0.0, now)
        return TrackingResult(
            timestamp_ms=now,
            hand_present=False,
            pen_state=self.pen.state,
            pen_events=tuple(events),
            two_hand=two_hand
        )

    def reset(self) -> None:
        """Forget all tracking state."""
        self.smoother.reset()
        self.pen.reset()
        self.two_hand.reset()
        if self.occlusion is not None:
            self.occlusion.reset()
        self._hand_present = False
        logger.debug("FingertipTracker reset")
