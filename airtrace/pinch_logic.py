"""
Pinch helpers shared by the pen state machine.

All functions are pure; thresholds come from PenConfig.
"""

from typing import Optional, Sequence

from .config import HAND_SCALE_DEFAULT, HAND_SCALE_MAX, HAND_SCALE_MIN, PenConfig
from .landmarks import Landmark, LandmarkIndex, distance_2d


def calculate_hand_scale(landmarks: Optional[Sequence[Landmark]]) -> float:
    """
    Hand size from wrist to middle-finger MCP.

    Args:
        landmarks: Hand landmarks in MediaPipe order, or None.

    Returns:
        Distance clamped to [HAND_SCALE_MIN, HAND_SCALE_MAX], or
        HAND_SCALE_DEFAULT when the landmarks are unavailable.
    """
    if not landmarks or len(landmarks) <= LandmarkIndex.MIDDLE_MCP:
        return HAND_SCALE_DEFAULT

    wrist = landmarks[LandmarkIndex.WRIST]
    mcp = landmarks[LandmarkIndex.MIDDLE_MCP]
    scale = distance_2d(wrist.point, mcp.point)
    return max(HAND_SCALE_MIN, min(HAND_SCALE_MAX, scale))


def velocity_tolerance_boost(velocity: float, config: PenConfig) -> float:
    """
    Fractional threshold loosening for fast movement.

    Zero up to slow_velocity, linear up to max_velocity_boost at
    fast_velocity, capped beyond it.
    """
    if velocity <= config.slow_velocity:
        return 0.0
    if velocity >= config.fast_velocity:
        return config.max_velocity_boost

    span = config.fast_velocity - config.slow_velocity
    return (velocity - config.slow_velocity) / span * config.max_velocity_boost


def pinch_threshold(is_down: bool, hand_scale: float, velocity: float, config: PenConfig) -> float:
    """Effective pinch distance threshold for the current pen state."""
    base = config.pinch_up_threshold if is_down else config.pinch_down_threshold
    boost = velocity_tolerance_boost(velocity, config)
    return base * hand_scale * (1.0 + boost)


def is_pinching(
    index: tuple[float, float],
    thumb: tuple[float, float],
    is_down: bool,
    hand_scale: float,
    velocity: float,
    config: PenConfig
) -> bool:
    """
    Pinch test with hysteresis.

    A tighter threshold starts a pinch while up, a looser one ends it while
    down.
    """
    return distance_2d(index, thumb) < pinch_threshold(is_down, hand_scale, velocity, config)


def teleport_threshold(hand_scale: float, config: PenConfig) -> float:
    """Jump distance above which a stroke is broken, larger for bigger hands."""
    return max(config.jump_threshold * (1.0 + hand_scale * 2.0), config.jump_threshold)
