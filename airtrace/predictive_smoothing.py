"""
Two-stage positional filter: One Euro smoothing plus short-horizon prediction.

Stage A output is what scoring consumes. Stage B prediction is for drawing
only and never leaves this module as a scoring input.
"""

import math
from typing import Optional

from .config import OneEuroConfig, PredictorConfig
from .kalman_predictor import KalmanPredictor
from .logger import get_logger
from .one_euro_filter import OneEuroFilter, get_filter_profile

logger = get_logger("TwoStageFilter")


class TwoStageFilter:
    """
    Smooths one tracked 2D point and predicts it a few milliseconds ahead.

    Usage:
        smoother = TwoStageFilter.for_mode("tracing")
        x, y = smoother.update(raw_x, raw_y, timestamp_ms)
        ahead = smoother.predict(16, 1280, 720)
    """

    def __init__(
        self,
        smoothing: Optional[OneEuroConfig] = None,
        predictor: Optional[PredictorConfig] = None
    ):
        """
        Initialize the filter.

        Args:
            smoothing: Stage A parameters, or None for the default profile.
            predictor: Stage B parameters, or None for defaults.
        """
        self.smoothing = smoothing or get_filter_profile("default").to_config()
        self.predictor_config = predictor or PredictorConfig()

        self._filter_x = OneEuroFilter.from_config(self.smoothing)
        self._filter_y = OneEuroFilter.from_config(self.smoothing)
        self._predictor = KalmanPredictor(self.predictor_config)
        self._last_filtered: Optional[tuple[float, float]] = None

    @classmethod
    def for_mode(
        cls,
        mode: Optional[str],
        predictor: Optional[PredictorConfig] = None
    ) -> "TwoStageFilter":
        """Build a filter tuned with the profile of an interaction mode."""
        return cls(get_filter_profile(mode).to_config(), predictor)

    @property
    def last_filtered(self) -> Optional[tuple[float, float]]:
        """Most recent stage A output."""
        return self._last_filtered

    def apply_profile(self, mode: Optional[str]) -> None:
        """
        Retune stage A for a different interaction mode.

        Existing smoothing state is kept so the point does not jump.
        """
        profile = get_filter_profile(mode)
        self.smoothing = profile.to_config()
        for axis_filter in (self._filter_x, self._filter_y):
            axis_filter.min_cutoff = profile.min_cutoff
            axis_filter.beta = profile.beta
            axis_filter.d_cutoff = profile.d_cutoff
        logger.debug(f"Applied filter profile: {profile.name}")

    def update(self, raw_x: float, raw_y: float, timestamp_ms: float) -> tuple[float, float]:
        """
        Filter a raw point.

        Args:
            raw_x: Raw normalized x.
            raw_y: Raw normalized y.
            timestamp_ms: Capture timestamp in milliseconds.

        Returns:
            Filtered point (x, y).
        """
        t = timestamp_ms / 1000.0
        fx = self._filter_x.filter(raw_x, t)
        fy = self._filter_y.filter(raw_y, t)

        self._predictor.update(fx, fy, timestamp_ms)
        self._last_filtered = (fx, fy)
        return fx, fy

    def predict(
        self,
        ahead_ms: Optional[float],
        viewport_w: float,
        viewport_h: float
    ) -> Optional[tuple[float, float]]:
        """
        Extrapolate the filtered point for rendering.

        Args:
            ahead_ms: Look-ahead in milliseconds, None for the configured default.
            viewport_w: Viewport width in pixels.
            viewport_h: Viewport height in pixels.

        Returns:
            Predicted point, the filtered point when the extrapolation would
            exceed the configured pixel distance, or None before any update.
        """
        if self._last_filtered is None or not self._predictor.is_initialized:
            return None

        if ahead_ms is None:
            ahead_ms = self.predictor_config.prediction_ms

        fx, fy = self._last_filtered
        dx, dy = self._predictor.extrapolate(ahead_ms)
        px = min(1.0, max(0.0, fx + dx))
        py = min(1.0, max(0.0, fy + dy))

        distance_px = math.hypot((px - fx) * viewport_w, (py - fy) * viewport_h)
        if distance_px > self.predictor_config.max_prediction_distance_px:
            return fx, fy

        return px, py

    def reset(self) -> None:
        """Clear all smoothing and prediction state."""
        self._filter_x.reset()
        self._filter_y.reset()
        self._predictor.reset()
        self._last_filtered = None
