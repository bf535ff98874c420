"""
Dynamic difficulty for path tracing.

Nudges the tolerance multiplier and magnetic assist strength based on
recent accuracy, failures, off-path spikes and tracking confidence.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

from .config import DifficultyConfig
from .logger import get_logger

logger = get_logger("DifficultyController")

RECENT_ACCURACY_WINDOW = 10


@dataclass(frozen=True)
class DifficultyParams:
    """Current difficulty outputs consumed by the tracing session."""
    tolerance_multiplier: float
    assist_strength: float


class DifficultyController:
    """
    Rate-limited difficulty adjustment.

    ``update`` re-evaluates at most once per ``update_interval_ms``:
    - good accuracy with confident tracking tightens tolerance and assist
    - repeated failures or many off-path spikes ease them
    - low tracking confidence eases them a little
    """

    def __init__(self, config: Optional[DifficultyConfig] = None):
        self.config = config or DifficultyConfig()

        self._recent_accuracies: deque[float] = deque(maxlen=RECENT_ACCURACY_WINDOW)
        self._failure_count = 0
        self._off_path_spikes = 0
        self._last_update_ms: Optional[float] = None
        self._tolerance = 1.0
        self._assist = sum(self.config.assist_range) / 2

    @property
    def params(self) -> DifficultyParams:
        return DifficultyParams(self._tolerance, self._assist)

    @property
    def tolerance_multiplier(self) -> float:
        return self._tolerance

    @property
    def assist_strength(self) -> float:
        return self._assist

    def record_success(self, accuracy: Optional[float] = None) -> None:
        """Record a completed path, optionally with its accuracy."""
        if accuracy is not None:
            self._recent_accuracies.append(accuracy)
        self._failure_count = 0

    def record_failure(self) -> None:
        """Record an abandoned or failed attempt."""
        self._failure_count += 1

    def record_off_path_spike(self) -> None:
        """Record a transition from on-path to off-path."""
        self._off_path_spikes += 1

    def update(self, timestamp_ms: float, confidence: float = 1.0) -> bool:
        """
        Re-evaluate difficulty if the update interval has elapsed.

        Args:
            timestamp_ms: Current frame time.
            confidence: Current tracking confidence.

        Returns:
            True if an evaluation ran this call.
        """
        if self._last_update_ms is None:
            self._last_update_ms = timestamp_ms
            return False
        if timestamp_ms - self._last_update_ms < self.config.update_interval_ms:
            return False
        self._last_update_ms = timestamp_ms

        cfg = self.config
        min_tol, max_tol = cfg.tolerance_range
        min_assist, max_assist = cfg.assist_range
        score = (
            sum(self._recent_accuracies) / len(self._recent_accuracies)
            if self._recent_accuracies else 0.5
        )
        before = (self._tolerance, self._assist)

        if score >= cfg.tighten_threshold and confidence >= cfg.high_confidence:
            self._tolerance = max(min_tol, self._tolerance - cfg.adjustment_rate)
            self._assist = max(min_assist, self._assist - cfg.adjustment_rate * 0.5)

        if self._failure_count >= cfg.failure_threshold or self._off_path_spikes > cfg.off_path_spike_limit:
            self._tolerance = min(max_tol, self._tolerance + cfg.adjustment_rate * 2)
            self._assist = min(max_assist, self._assist + cfg.adjustment_rate)

        if confidence < cfg.low_confidence:
            self._tolerance = min(max_tol, self._tolerance + cfg.adjustment_rate)
            self._assist = min(max_assist, self._assist + cfg.adjustment_rate * 0.5)

        self._off_path_spikes = 0

        if (self._tolerance, self._assist) != before:
            logger.debug(
                f"Difficulty adjusted: tolerance x{self._tolerance:.2f}, "
                f"assist {self._assist:.2f}"
            )
        return True

    def reset(self) -> None:
        """Restore neutral difficulty."""
        self._recent_accuracies.clear()
        self._failure_count = 0
        self._off_path_spikes = 0
        self._last_update_ms = None
        self._tolerance = 1.0
        self._assist = sum(self.config.assist_range) / 2
