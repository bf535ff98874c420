"""
One Euro Filter implementation for fingertip smoothing.

Also holds the per-mode tuning profiles used by the two-stage filter.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .config import FILTER_PROFILE_VALUES, MIN_FILTER_DT_S, OneEuroConfig


@dataclass(frozen=True)
class FilterProfile:
    """Stage A tuning for one interaction mode."""
    name: str
    min_cutoff: float
    beta: float
    d_cutoff: float

    def to_config(self) -> OneEuroConfig:
        return OneEuroConfig(
            min_cutoff=self.min_cutoff,
            beta=self.beta,
            d_cutoff=self.d_cutoff
        )


FILTER_PROFILES: dict[str, FilterProfile] = {
    name: FilterProfile(name, *values)
    for name, values in FILTER_PROFILE_VALUES.items()
}


def get_filter_profile(mode: Optional[str]) -> FilterProfile:
    """
    Look up the filter profile for an interaction mode.

    Args:
        mode: Mode name such as "tracing" or "menu". Unknown or None
              modes fall back to "default".

    Returns:
        FilterProfile for the mode.
    """
    if mode and mode in FILTER_PROFILES:
        return FILTER_PROFILES[mode]
    return FILTER_PROFILES["default"]


def smoothing_alpha(elapsed_s: float, cutoff_hz: float) -> float:
    """Exponential smoothing weight for a first-order low-pass at ``cutoff_hz``."""
    tau = 1.0 / (2.0 * math.pi * cutoff_hz)
    return 1.0 / (1.0 + tau / elapsed_s)


class OneEuroFilter:
    """
    Speed-adaptive low-pass filter for one coordinate (Casiez et al., CHI 2012).

    The cutoff rises with the smoothed speed of the signal, so a resting
    fingertip is held still while a fast stroke follows with little lag.
    Timestamps are in seconds.
    """

    def __init__(
        self,
        min_cutoff: float = 1.0,
        beta: float = 0.007,
        d_cutoff: float = 1.0,
        min_dt: float = MIN_FILTER_DT_S
    ):
        """
        Args:
            min_cutoff: Cutoff at rest (Hz).
            beta: Cutoff increase per unit/second of speed.
            d_cutoff: Cutoff for the speed estimate (Hz).
            min_dt: Floor for the elapsed time between samples, so repeated
                or out-of-order timestamps never divide by zero.
        """
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff
        self.min_dt = min_dt

        self._value: Optional[float] = None
        self._speed = 0.0
        self._time: Optional[float] = None

    @classmethod
    def from_config(cls, config: OneEuroConfig) -> "OneEuroFilter":
        return cls(config.min_cutoff, config.beta, config.d_cutoff)

    @property
    def last_value(self) -> Optional[float]:
        """Last filtered value, None before the first sample."""
        return self._value

    @property
    def derivative(self) -> float:
        """Smoothed speed estimate (units per second)."""
        return self._speed

    def filter(self, x: float, t: float) -> float:
        """Feed one sample taken at time ``t`` and return the filtered value."""
        if self._value is None:
            self._value = x
            self._time = t
            return x

        elapsed = max(t - self._time, self.min_dt)

        raw_speed = (x - self._value) / elapsed
        speed_alpha = smoothing_alpha(elapsed, self.d_cutoff)
        self._speed = speed_alpha * raw_speed + (1.0 - speed_alpha) * self._speed

        alpha = smoothing_alpha(elapsed, self.min_cutoff + self.beta * abs(self._speed))
        self._value = alpha * x + (1.0 - alpha) * self._value
        # A stale sample does not move the clock back
        self._time = max(t, self._time)

        return self._value

    def reset(self) -> None:
        """Forget the previous sample."""
        self._value = None
        self._speed = 0.0
        self._time = None
