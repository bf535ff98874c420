"""
Constant-velocity Kalman predictor for a single 2D point.

Second stage of the positional filter: tracks position and velocity of
the smoothed fingertip so the renderer can draw slightly ahead of the
camera latency.
"""

from typing import Optional

import numpy as np

from .config import MIN_FILTER_DT_S, PredictorConfig
from .logger import get_logger

logger = get_logger("KalmanPredictor")


class KalmanPredictor:
    """
    Simplified Kalman filter over a 2D point.

    State vector: [x, y, vx, vy]
    - x, y: Normalized position
    - vx, vy: Velocity in normalized units per second

    Covariance is kept diagonal (one variance per state element), so the
    gain for each element is P / (P + R). Process noise grows per second
    of elapsed time.

    Usage:
        predictor = KalmanPredictor()

        # Each frame:
        x, y = predictor.update(filtered_x, filtered_y, timestamp_ms)

        # On tracking lost:
        predictor.reset()
    """

    def __init__(self, config: Optional[PredictorConfig] = None):
        """
        Initialize the predictor.

        Args:
            config: Predictor configuration, or None for defaults.
        """
        self.config = config or PredictorConfig()

        self.x = np.zeros(4)
        self.P = np.full(4, self.config.initial_variance)

        self._initialized = False
        self._last_time: Optional[float] = None

    @property
    def is_initialized(self) -> bool:
        """Check if filter has received a measurement."""
        return self._initialized

    @property
    def position(self) -> np.ndarray:
        """Current position estimate [x, y]."""
        return self.x[:2].copy()

    @property
    def velocity(self) -> np.ndarray:
        """Current velocity estimate [vx, vy] per second."""
        return self.x[2:].copy()

    def update(self, mx: float, my: float, timestamp_ms: float) -> tuple[float, float]:
        """
        Predict to the measurement time, then correct with the measurement.

        Args:
            mx: Measured x (normalized).
            my: Measured y (normalized).
            timestamp_ms: Capture timestamp in milliseconds.

        Returns:
            Corrected position (x, y).
        """
        measurement = np.array([mx, my], dtype=float)

        if not np.all(np.isfinite(measurement)):
            logger.warning("Invalid measurement (NaN/Inf), skipping update")
            if self._initialized:
                return float(self.x[0]), float(self.x[1])
            return mx, my

        if not self._initialized:
            self.reset()
            self.x[:2] = measurement
            self._initialized = True
            self._last_time = timestamp_ms
            return mx, my

        dt = max((timestamp_ms - self._last_time) / 1000.0, MIN_FILTER_DT_S)
        self._last_time = max(timestamp_ms, self._last_time)

        previous = self.x[:2].copy()

        # Predict
        self.x[:2] = self.x[:2] + self.x[2:] * dt
        self.P = self.P + self.config.process_noise * dt

        # Correct position
        K = self.P[:2] / (self.P[:2] + self.config.measurement_noise)
        self.x[:2] = self.x[:2] + K * (measurement - self.x[:2])
        self.P[:2] = (1.0 - K) * self.P[:2]

        # Velocity from consecutive corrected positions
        self.x[2:] = (self.x[:2] - previous) / dt

        if not np.all(np.isfinite(self.x)):
            logger.error("Predictor state became NaN/Inf, resetting")
            self.reset()
            self.x[:2] = measurement
            self._initialized = True
            self._last_time = timestamp_ms
            return mx, my

        return float(self.x[0]), float(self.x[1])

    def extrapolate(self, ahead_ms: float) -> tuple[float, float]:
        """Offset of the position after ``ahead_ms`` at current velocity."""
        offset = self.x[2:] * (ahead_ms / 1000.0)
        return float(offset[0]), float(offset[1])

    def reset(self) -> None:
        """Reset filter state."""
        self.x = np.zeros(4)
        self.P = np.full(4, self.config.initial_variance)
        self._initialized = False
        self._last_time = None
