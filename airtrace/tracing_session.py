"""
Path-progress engine for tracing.

A TracingSession owns all state for one attempt at one path. Each tick
takes the filtered fingertip and pen state, projects the point onto the
path and advances progress only when the movement is real, on the path,
forward, and not too fast. Completion is reported once, in the tick
result.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Optional

from .config import DEFAULT_VIEWPORT_HEIGHT, DEFAULT_VIEWPORT_WIDTH, TracingConfig
from .difficulty_controller import DifficultyController
from .logger import get_logger
from .path_geometry import find_nearest_point
from .progress_store import ProgressStore
from .tracing_paths import TracingPath

logger = get_logger("TracingSession")

Point = tuple[float, float]

DEFAULT_CONFIDENCE = 0.7  # Used when the caller has no confidence estimate


@dataclass(frozen=True)
class TracingTick:
    """Result of one tracing tick, for rendering and game flow."""
    progress: float
    on_path: bool
    is_paused: bool
    is_completed: bool
    completed_now: bool
    accuracy: float
    streak: float
    distance_px: float = math.inf
    overall_t: float = 0.0
    finger: Optional[Point] = None
    show_off_path_hint: bool = False
    show_idle_hint: bool = False


class TracingSession:
    """
    Forward-only progress along one TracingPath.

    Usage:
        session = TracingSession(path, viewport_w=1280, viewport_h=720)
        for frame in frames:
            tick = session.process(point, pen_down, frame.timestamp_ms, confidence)
            if tick.completed_now:
                ...
    """

    def __init__(
        self,
        path: TracingPath,
        config: Optional[TracingConfig] = None,
        viewport_w: float = DEFAULT_VIEWPORT_WIDTH,
        viewport_h: float = DEFAULT_VIEWPORT_HEIGHT,
        progress_store: Optional[ProgressStore] = None,
        difficulty: Optional[DifficultyController] = None
    ):
        """
        Initialize a session.

        Args:
            path: Path to trace.
            config: Tracing configuration, or None for defaults.
            viewport_w: Viewport width in pixels.
            viewport_h: Viewport height in pixels.
            progress_store: Where completions are recorded, if anywhere.
            difficulty: Dynamic difficulty controller, if enabled.
        """
        self.config = config or TracingConfig()
        self.viewport_w = viewport_w
        self.viewport_h = viewport_h
        self.progress_store = progress_store
        self.difficulty = difficulty
        self.path = path

        if len(path.points) < 2:
            logger.warning(f"Path {path.id} has fewer than two points")

        self._reset_state()

    def _reset_state(self) -> None:
        self.progress = 0.0
        self.on_path = False
        self.is_paused = False
        self.is_completed = False
        self.nearest_distance = math.inf
        self.accuracy = 1.0
        self.time_on_path_ms = 0.0
        self.time_off_path_ms = 0.0
        self.streak = 0.0

        self._last_timestamp: Optional[float] = None
        self._last_finger: Optional[Point] = None
        self._last_path_position = 0.0
        self._last_progress_update_ms: Optional[float] = None
        self._pinch_lost_ms: Optional[float] = None
        self._off_path_start_ms: Optional[float] = None
        self._decay_floor = 0.0
        self._movement_history: deque[tuple[float, float]] = deque()
        self._last_streak_update_ms: Optional[float] = None
        self._idle_start_ms: Optional[float] = None
        self._last_idle_hint_ms: Optional[float] = None
        self._last_off_path_hint_ms: Optional[float] = None

    @property
    def tolerance_px(self) -> float:
        """Effective on-path tolerance in pixels."""
        cfg = self.config
        multiplier = cfg.early_pack_tolerance_bonus if self.path.pack <= cfg.early_pack_max else 1.0
        if self.difficulty is not None:
            multiplier *= self.difficulty.tolerance_multiplier
        tolerance = self.path.tolerance_px * multiplier
        if cfg.magnetic.enabled:
            tolerance *= cfg.magnetic.forgiveness_multiplier
        return tolerance

    def set_viewport(self, width: float, height: float) -> None:
        self.viewport_w = width
        self.viewport_h = height

    def reset(self, path: Optional[TracingPath] = None) -> None:
        """
        Start over, optionally on a different path.

        An abandoned attempt with some progress counts as a failure for
        dynamic difficulty.
        """
        if self.difficulty is not None and not self.is_completed and self.progress > 0:
            self.difficulty.record_failure()
        if path is not None:
            self.path = path
        self._reset_state()
        logger.debug(f"Tracing session reset on {self.path.id}")

    def _px_distance(self, a: Point, b: Point) -> float:
        return math.hypot((a[0] - b[0]) * self.viewport_w, (a[1] - b[1]) * self.viewport_h)

    def _update_pause(self, pen_down: bool, now: float) -> None:
        if not pen_down:
            if self._pinch_lost_ms is None:
                self._pinch_lost_ms = now
            if now - self._pinch_lost_ms > self.config.pinch_grace_ms and not self.is_paused:
                self.is_paused = True
                logger.debug("Tracing paused")
            return

        self._pinch_lost_ms = None
        if self.is_paused:
            # Fresh movement segment
            self.is_paused = False
            self._last_finger = None
            self._last_path_position = self.progress
            self._last_progress_update_ms = now
            self._movement_history.clear()
            logger.debug("Tracing resumed")

    def _apply_magnetic_assist(self, finger: Point) -> Point:
        magnetic = self.config.magnetic
        nearest = find_nearest_point(finger, self.path.points, self.viewport_w, self.viewport_h)
        distance = nearest.distance_px
        if not (0 < distance <= magnetic.assist_radius_px):
            return finger

        speed_px = 0.0
        if self._last_finger is not None:
            speed_px = self._px_distance(finger, self._last_finger)

        if self.difficulty is not None:
            strength = self.difficulty.assist_strength
        else:
            strength = min(self.path.assist_strength, magnetic.max_assist_strength)

        distance_factor = 1.0 - distance / magnetic.assist_radius_px
        speed_factor = 1.0 - min(speed_px / magnetic.speed_reference_px, 1.0) * magnetic.speed_scaling_factor
        attraction = strength * distance_factor * speed_factor
        return (
            finger[0] + (nearest.point[0] - finger[0]) * attraction,
            finger[1] + (nearest.point[1] - finger[1]) * attraction,
        )

    def _min_movement_px(self, moved_px: float, recent_total_px: float, confidence: float) -> float:
        cfg = self.config
        slow = moved_px < cfg.slow_movement_px and recent_total_px < cfg.slow_window_total_px
        if confidence < cfg.low_confidence or slow:
            return cfg.adaptive_min_movement_px
        if moved_px > cfg.fast_movement_px:
            return cfg.base_min_movement_px + cfg.fast_movement_floor_bonus_px
        return cfg.base_min_movement_px

    def process(
        self,
        point: Optional[Point],
        pen_down: bool,
        timestamp_ms: float,
        confidence: Optional[float] = None
    ) -> TracingTick:
        """
        Run one tracing tick.

        Args:
            point: Filtered fingertip (normalized), None when no hand.
            pen_down: Whether the pen is currently down.
            timestamp_ms: Frame timestamp in milliseconds.
            confidence: Tracking confidence, None if unknown.

        Returns:
            TracingTick for this frame. ``completed_now`` is True on exactly
            one tick per session.
        """
        cfg = self.config
        now = timestamp_ms
        confidence = DEFAULT_CONFIDENCE if confidence is None else confidence

        self._update_pause(pen_down, now)

        if point is None:
            self.on_path = False
            return self._tick(completed_now=False)

        finger = point
        if cfg.magnetic.enabled:
            finger = self._apply_magnetic_assist(finger)

        nearest = find_nearest_point(finger, self.path.points, self.viewport_w, self.viewport_h)
        overall_t = nearest.overall_t
        distance = nearest.distance_px
        self.nearest_distance = distance

        tolerance = self.tolerance_px
        was_on_path = self.on_path
        on_path = distance <= tolerance
        self.on_path = on_path

        self._update_streak(on_path, now)

        if on_path:
            self._off_path_start_ms = None
        elif self._off_path_start_ms is None:
            self._off_path_start_ms = now
            self._decay_floor = self.progress * (1.0 - cfg.max_decay_fraction)
            if was_on_path and self.difficulty is not None:
                self.difficulty.record_off_path_spike()

        moved_px = 0.0
        if self._last_finger is not None:
            moved_px = self._px_distance(finger, self._last_finger)

        self._movement_history.append((now, moved_px))
        cutoff = now - cfg.movement_history_ms
        while self._movement_history and self._movement_history[0][0] <= cutoff:
            self._movement_history.popleft()
        recent_total_px = sum(
            moved for t, moved in self._movement_history if t > now - cfg.slow_window_ms
        )

        if self.difficulty is not None:
            self.difficulty.update(now, confidence)

        min_movement_px = self._min_movement_px(moved_px, recent_total_px, confidence)

        if self._last_timestamp is not None:
            dt = max(0.0, now - self._last_timestamp)
            if on_path:
                self.time_on_path_ms += dt
            else:
                self.time_off_path_ms += dt
            total = self.time_on_path_ms + self.time_off_path_ms
            self.accuracy = self.time_on_path_ms / total if total > 0 else 1.0
        self._last_timestamp = now if self._last_timestamp is None else max(now, self._last_timestamp)

        self._apply_off_path_decay(on_path, now)
        self._update_progress(
            pen_down, on_path, overall_t, moved_px, min_movement_px, now
        )

        show_off_path_hint = self._check_off_path_hint(on_path, pen_down, now)
        show_idle_hint = self._check_idle_hint(moved_px, now)

        completed_now = self._check_completion(
            overall_t, distance, tolerance, self._is_drawing(pen_down, now)
        )

        self._last_finger = finger
        return self._tick(
            completed_now=completed_now,
            distance_px=distance,
            overall_t=overall_t,
            finger=finger,
            show_off_path_hint=show_off_path_hint,
            show_idle_hint=show_idle_hint
        )

    def _update_streak(self, on_path: bool, now: float) -> None:
        cfg = self.config
        if (
            self._last_streak_update_ms is not None
            and now - self._last_streak_update_ms < cfg.streak_interval_ms
        ):
            return
        if on_path and not self.is_paused:
            self.streak = min(1.0, self.streak + cfg.streak_gain)
        else:
            self.streak = max(0.0, self.streak - cfg.streak_decay)
        self._last_streak_update_ms = now

    def _apply_off_path_decay(self, on_path: bool, now: float) -> None:
        cfg = self.config
        if on_path or self._off_path_start_ms is None:
            return
        if self.progress >= self.path.completion_percent * cfg.decay_protect_ratio:
            return
        if now - self._off_path_start_ms <= cfg.off_path_decay_after_ms:
            return
        self.progress = max(self._decay_floor, self.progress - cfg.decay_rate)

    def _update_progress(
        self,
        pen_down: bool,
        on_path: bool,
        overall_t: float,
        moved_px: float,
        min_movement_px: float,
        now: float
    ) -> None:
        cfg = self.config
        effective_down = self._is_drawing(pen_down, now)
        forward = overall_t - self._last_path_position
        rate_ok = (
            self._last_progress_update_ms is None
            or now - self._last_progress_update_ms >= cfg.min_update_interval_ms
        )

        can_update = (
            effective_down
            and on_path
            and moved_px >= min_movement_px
            and forward > cfg.min_forward_movement
            and overall_t > self.progress
            and rate_ok
        )

        if can_update:
            self.progress = min(overall_t, self.progress + cfg.max_progress_per_frame)
            self._last_path_position = overall_t
            self._last_progress_update_ms = now
        elif on_path:
            self._last_path_position = overall_t

    def _is_drawing(self, pen_down: bool, now: float) -> bool:
        """Pen is down, or was released less than the pinch grace ago."""
        return pen_down or (
            self._pinch_lost_ms is not None
            and now - self._pinch_lost_ms <= self.config.pinch_grace_ms
        )

    def _check_off_path_hint(self, on_path: bool, pen_down: bool, now: float) -> bool:
        if on_path or not pen_down:
            return False
        if (
            self._last_off_path_hint_ms is not None
            and now - self._last_off_path_hint_ms <= self.config.off_path_hint_cooldown_ms
        ):
            return False
        self._last_off_path_hint_ms = now
        return True

    def _check_idle_hint(self, moved_px: float, now: float) -> bool:
        cfg = self.config
        if self._last_finger is None or moved_px >= cfg.idle_movement_px:
            self._idle_start_ms = None
            return False
        if self._idle_start_ms is None:
            self._idle_start_ms = now
        if now - self._idle_start_ms <= cfg.idle_hint_ms:
            return False
        if (
            self._last_idle_hint_ms is not None
            and now - self._last_idle_hint_ms <= cfg.idle_hint_ms
        ):
            return False
        self._last_idle_hint_ms = now
        return True

    def _check_completion(
        self,
        overall_t: float,
        distance: float,
        tolerance: float,
        drawing: bool
    ) -> bool:
        if self.is_completed:
            return False

        cfg = self.config
        target = self.path.completion_percent
        reached = self.progress >= target - cfg.completion_epsilon
        # Finishing near the end still needs the pen on the page
        near_end = (
            drawing
            and overall_t >= cfg.near_end_t
            and overall_t >= target - cfg.near_end_margin
            and distance <= tolerance * cfg.near_end_tolerance_scale
        )
        if not (reached or near_end):
            return False

        if not reached:
            self.progress = max(self.progress, target)
        self.is_completed = True
        logger.info(
            f"Path {self.path.id} completed (progress {self.progress:.2f}, "
            f"accuracy {self.accuracy:.0%})"
        )

        if self.progress_store is not None:
            self.progress_store.complete_level(self.path.id, self.accuracy)
        if self.difficulty is not None:
            self.difficulty.record_success(self.accuracy)
        return True

    def _tick(self, completed_now: bool, **kwargs) -> TracingTick:
        return TracingTick(
            progress=self.progress,
            on_path=self.on_path,
            is_paused=self.is_paused,
            is_completed=self.is_completed,
            completed_now=completed_now,
            accuracy=self.accuracy,
            streak=self.streak,
            **kwargs
        )
