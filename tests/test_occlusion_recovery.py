import pytest

from airtrace.landmarks import Landmark
from airtrace.occlusion_recovery import OcclusionRecovery

WRIST = Landmark(0.5, 0.8, confidence=0.9)
INDEX = Landmark(0.5, 0.5, confidence=0.9)
THUMB = Landmark(0.6, 0.5, confidence=0.9)
HIDDEN_THUMB = Landmark(0.0, 0.0, confidence=0.1)


@pytest.fixture
def recovery():
    return OcclusionRecovery()


def prime(recovery, frames=2):
    for i in range(frames):
        recovery.process(THUMB, INDEX, WRIST, i * 33.0)


def test_visible_thumb_needs_no_inference(recovery):
    result = recovery.process(THUMB, INDEX, WRIST, 0.0)
    assert result.inferred_thumb is None
    assert not result.thumb_occluded
    assert not result.hand_lost


def test_occluded_thumb_is_inferred_from_wrist(recovery):
    prime(recovery)
    assert recovery.has_stable_offset

    result = recovery.process(HIDDEN_THUMB, INDEX, WRIST, 66.0)

    assert result.thumb_occluded
    assert result.inferred_thumb == pytest.approx((0.6, 0.5))


def test_single_frame_offset_is_not_trusted(recovery):
    prime(recovery, frames=1)
    assert not recovery.has_stable_offset

    result = recovery.process(HIDDEN_THUMB, INDEX, WRIST, 33.0)
    assert result.inferred_thumb is None


def test_inference_stops_after_grace_window(recovery):
    prime(recovery)
    recovery.process(HIDDEN_THUMB, INDEX, WRIST, 100.0)

    within = recovery.process(HIDDEN_THUMB, INDEX, WRIST, 300.0)
    after = recovery.process(HIDDEN_THUMB, INDEX, WRIST, 301.0)

    assert within.inferred_thumb is not None
    assert after.inferred_thumb is None


def test_far_inference_is_suppressed(recovery):
    prime(recovery)
    moved_wrist = Landmark(0.7, 0.8, confidence=0.9)

    result = recovery.process(HIDDEN_THUMB, INDEX, moved_wrist, 66.0)

    assert result.inferred_thumb is None


def test_missing_wrist_resets_offset_confirmation(recovery):
    prime(recovery)
    recovery.process(THUMB, INDEX, None, 66.0)

    assert not recovery.has_stable_offset


def test_hand_loss_clears_memory(recovery):
    prime(recovery)

    result = recovery.process(None, None, None, 500.0)

    assert result.hand_lost
    assert recovery.hand_lost_at_ms == 500.0
    assert not recovery.has_stable_offset

    # Old offset must not be reused after the hand comes back
    after = recovery.process(HIDDEN_THUMB, INDEX, WRIST, 533.0)
    assert after.inferred_thumb is None


def test_offset_is_rebuilt_from_two_valid_frames_after_hand_loss(recovery):
    prime(recovery)
    recovery.process(None, None, None, 100.0)

    low_thumb = Landmark(0.6, 0.5, confidence=0.3)
    assert recovery.process(low_thumb, INDEX, WRIST, 133.0).inferred_thumb is None
    assert not recovery.has_stable_offset

    recovery.process(THUMB, INDEX, WRIST, 166.0)
    assert not recovery.has_stable_offset
    assert recovery.process(HIDDEN_THUMB, INDEX, WRIST, 180.0).inferred_thumb is None

    recovery.process(THUMB, INDEX, WRIST, 200.0)
    assert recovery.has_stable_offset

    result = recovery.process(HIDDEN_THUMB, INDEX, WRIST, 233.0)
    assert result.thumb_occluded
    assert result.inferred_thumb == pytest.approx((0.6, 0.5))


def test_reset(recovery):
    prime(recovery)
    recovery.process(None, None, None, 100.0)
    recovery.reset()

    assert recovery.hand_lost_at_ms is None
    assert not recovery.has_stable_offset
