"""
Pen state machine for pinch-to-draw.

Turns filtered index/thumb tip positions into stroke events with pinch
hysteresis, frame debouncing, dropout grace and teleport rejection.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from .config import PenConfig
from .landmarks import distance_2d
from .logger import get_logger
from .pinch_logic import is_pinching, teleport_threshold

logger = get_logger("PenStateMachine")

Point = tuple[float, float]


class PenState(Enum):
    """Committed pen state."""
    UP = auto()
    DOWN = auto()


class PenEventType(Enum):
    """Kind of event emitted by the pen machine."""
    NONE = auto()
    STROKE_START = auto()
    STROKE_CONTINUE = auto()
    STROKE_END = auto()


@dataclass(frozen=True)
class PendingTransition:
    """A state change waiting out the debounce window."""
    origin: PenState
    target: PenState
    frames_held: int


PenPhase = Union[PenState, PendingTransition]


@dataclass(frozen=True)
class PenEvent:
    """Event emitted when the pen moves or changes state."""
    event_type: PenEventType
    position: Optional[Point] = None
    confidence: float = 1.0
    timestamp_ms: Optional[float] = None


class PenStateMachine:
    """
    Pinch-driven pen with Up/Down states and a debounced pending phase.

    Rules, highest priority first:
    1. Missing points or low confidence count as dropout frames; reaching
       the dropout threshold forces Up without debounce.
    2. A jump beyond the teleport threshold while Down ends the stroke at
       once, then the pinch is re-evaluated from the new position.
    3. The pinch test uses a tighter threshold to go Down than to stay Down.
    4. While Down, sub-threshold movement is ignored.
    5. State changes must persist for ``debounce_frames`` observations.
    """

    def __init__(self, config: Optional[PenConfig] = None):
        """
        Initialize the pen machine.

        Args:
            config: Pen configuration, or None for defaults.
        """
        self.config = config or PenConfig()

        self.phase: PenPhase = PenState.UP
        self._last_position: Optional[Point] = None
        self._dropout_frames = 0
        self._prev_index: Optional[Point] = None
        self._prev_time_ms: Optional[float] = None
        self._velocity = 0.0

    @property
    def state(self) -> PenState:
        """Committed state, ignoring any pending transition."""
        if isinstance(self.phase, PendingTransition):
            return self.phase.origin
        return self.phase

    @property
    def is_down(self) -> bool:
        return self.state is PenState.DOWN

    @property
    def last_position(self) -> Optional[Point]:
        """Last accepted stroke position."""
        return self._last_position

    @property
    def dropout_frames(self) -> int:
        return self._dropout_frames

    @property
    def velocity(self) -> float:
        """Index tip speed in normalized units per second."""
        return self._velocity

    def process(
        self,
        index: Optional[Point],
        thumb: Optional[Point],
        hand_scale: float,
        confidence: float,
        timestamp_ms: Optional[float] = None
    ) -> list[PenEvent]:
        """
        Process one frame.

        Args:
            index: Filtered index tip (normalized), or None.
            thumb: Thumb tip (real or inferred), or None.
            hand_scale: Hand size used to scale distance thresholds.
            confidence: Overall tracking confidence for the frame.
            timestamp_ms: Frame timestamp, used for velocity tolerance.

        Returns:
            Events produced this frame, in order. Empty means no event.
        """
        events: list[PenEvent] = []

        if index is None or thumb is None or confidence < self.config.min_confidence:
            self._dropout_frames += 1
            if self._dropout_frames >= self.config.dropout_frame_threshold:
                event = self._force_up(timestamp_ms, reason="dropout")
                if event is not None:
                    events.append(event)
                self._prev_index = None
                self._prev_time_ms = None
                self._velocity = 0.0
            return events

        self._dropout_frames = 0
        self._update_velocity(index, timestamp_ms)

        if self.state is PenState.DOWN and self._last_position is not None:
            jump = distance_2d(index, self._last_position)
            if jump > teleport_threshold(hand_scale, self.config):
                logger.debug(f"Teleport detected ({jump:.3f}), breaking stroke")
                events.append(self._commit(PenState.UP, index, confidence, timestamp_ms))

        pinching = is_pinching(
            index, thumb, self.state is PenState.DOWN, hand_scale, self._velocity, self.config
        )
        desired = PenState.DOWN if pinching else PenState.UP

        if desired is self.state:
            # A differing observation cancels any pending transition
            self.phase = self.state
            if self.state is PenState.DOWN:
                if (
                    self._last_position is not None
                    and distance_2d(index, self._last_position) < self.config.min_movement
                ):
                    return events
                self._last_position = index
                events.append(PenEvent(
                    PenEventType.STROKE_CONTINUE, index, confidence, timestamp_ms
                ))
            return events

        frames_held = 1
        if isinstance(self.phase, PendingTransition) and self.phase.target is desired:
            frames_held = self.phase.frames_held + 1

        if frames_held < self.config.debounce_frames:
            self.phase = PendingTransition(self.state, desired, frames_held)
            return events

        events.append(self._commit(desired, index, confidence, timestamp_ms))
        return events

    def force_up(self, timestamp_ms: Optional[float] = None) -> Optional[PenEvent]:
        """
        End any stroke immediately, bypassing debounce.

        Returns:
            STROKE_END event if the pen was down, None otherwise.
        """
        return self._force_up(timestamp_ms, reason="external")

    def _force_up(self, timestamp_ms: Optional[float], reason: str) -> Optional[PenEvent]:
        was_down = self.state is PenState.DOWN
        position = self._last_position
        self.phase = PenState.UP
        self._last_position = None
        if not was_down:
            return None
        logger.debug(f"Pen forced up ({reason})")
        return PenEvent(PenEventType.STROKE_END, position, 0.0, timestamp_ms)

    def _commit(
        self,
        target: PenState,
        position: Point,
        confidence: float,
        timestamp_ms: Optional[float]
    ) -> PenEvent:
        self.phase = target
        if target is PenState.DOWN:
            self._last_position = position
            logger.debug(f"Stroke started at ({position[0]:.3f}, {position[1]:.3f})")
            return PenEvent(PenEventType.STROKE_START, position, confidence, timestamp_ms)

        end_position = self._last_position or position
        self._last_position = None
        logger.debug("Stroke ended")
        return PenEvent(PenEventType.STROKE_END, end_position, confidence, timestamp_ms)

    def _update_velocity(self, index: Point, timestamp_ms: Optional[float]) -> None:
        if (
            timestamp_ms is not None
            and self._prev_index is not None
            and self._prev_time_ms is not None
            and timestamp_ms > self._prev_time_ms
        ):
            dt_s = (timestamp_ms - self._prev_time_ms) / 1000.0
            self._velocity = distance_2d(index, self._prev_index) / dt_s
        else:
            self._velocity = 0.0
        self._prev_index = index
        self._prev_time_ms = timestamp_ms

    def reset(self) -> None:
        """Return to Up and forget all history."""
        self.phase = PenState.UP
        self._last_position = None
        self._dropout_frames = 0
        self._prev_index = None
        self._prev_time_ms = None
        self._velocity = 0.0
