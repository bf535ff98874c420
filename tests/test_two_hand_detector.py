import pytest

from airtrace.config import TwoHandConfig
from airtrace.landmarks import LandmarkFrame
from airtrace.two_hand_detector import TwoHandDetector

FRAME_MS = 16.67


@pytest.fixture
def detector():
    return TwoHandDetector(TwoHandConfig(enabled=True))


@pytest.fixture
def two_hands(make_hand):
    left = make_hand(index=(0.2, 0.4), wrist=(0.25, 0.8), handedness="Left")
    right = make_hand(index=(0.8, 0.4), wrist=(0.75, 0.8))
    return (left, right)


def feed(detector, hands, frames, start=0):
    state = None
    for i in range(start, start + frames):
        state = detector.process(LandmarkFrame(hands=hands, timestamp_ms=i * FRAME_MS))
    return state


def test_required_frames(detector):
    assert detector.required_frames == pytest.approx(500 / 16.67 * 0.7)


def test_becomes_active_after_stable_window(detector, two_hands):
    assert not feed(detector, two_hands, 10).is_active

    state = feed(detector, two_hands, 20, start=10)

    assert state.is_active
    assert state.left == pytest.approx((0.2, 0.4))
    assert state.right == pytest.approx((0.8, 0.4))


def test_single_hand_resets(detector, two_hands, make_hand):
    feed(detector, two_hands, 30)

    state = detector.process(LandmarkFrame(hands=(make_hand(),), timestamp_ms=30 * FRAME_MS))
    assert not state.is_active

    # Stability has to build up again
    assert not feed(detector, two_hands, 5, start=31).is_active


def test_missing_frame_resets(detector, two_hands):
    feed(detector, two_hands, 30)
    assert not detector.process(None).is_active


def test_both_hands_on_one_side_is_inactive(detector, make_hand):
    hands = (
        make_hand(index=(0.6, 0.4), wrist=(0.6, 0.8)),
        make_hand(index=(0.9, 0.4), wrist=(0.9, 0.8)),
    )
    assert not feed(detector, hands, 40).is_active


def test_disabled_detector_is_never_active(two_hands):
    detector = TwoHandDetector(TwoHandConfig(enabled=False))
    assert not feed(detector, two_hands, 40).is_active
