import pytest

from airtrace.config import HAND_SCALE_DEFAULT, HAND_SCALE_MAX, HAND_SCALE_MIN, PenConfig
from airtrace.landmarks import Landmark
from airtrace.pinch_logic import (
    calculate_hand_scale,
    is_pinching,
    pinch_threshold,
    teleport_threshold,
    velocity_tolerance_boost,
)


@pytest.fixture
def config():
    return PenConfig()


def test_hand_scale(make_hand):
    assert calculate_hand_scale(make_hand().landmarks) == pytest.approx(0.1)


def test_hand_scale_is_clamped():
    tiny = [Landmark(0.5, 0.5)] * 10
    huge = [Landmark(0.5, 0.9)] * 9 + [Landmark(0.5, 0.1)]

    assert calculate_hand_scale(tiny) == HAND_SCALE_MIN
    assert calculate_hand_scale(huge) == HAND_SCALE_MAX
    assert calculate_hand_scale(None) == HAND_SCALE_DEFAULT
    assert calculate_hand_scale(tiny[:5]) == HAND_SCALE_DEFAULT


def test_velocity_boost(config):
    assert velocity_tolerance_boost(0.5, config) == 0.0
    assert velocity_tolerance_boost(3.0, config) == pytest.approx(0.075)
    assert velocity_tolerance_boost(10.0, config) == pytest.approx(0.15)


def test_hysteresis(config):
    index = (0.5, 0.5)
    thumb = (0.54, 0.5)  # Between the down (0.035) and up (0.045) thresholds

    assert not is_pinching(index, thumb, False, 0.1, 0.0, config)
    assert is_pinching(index, thumb, True, 0.1, 0.0, config)


def test_fast_movement_loosens_threshold(config):
    assert pinch_threshold(False, 0.1, 10.0, config) == pytest.approx(0.035 * 1.15)


def test_teleport_threshold_scales_with_hand(config):
    assert teleport_threshold(0.1, config) == pytest.approx(0.08 * 1.2)
    assert teleport_threshold(0.0, config) == pytest.approx(0.08)
