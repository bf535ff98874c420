import dataclasses

import pytest

from airtrace.config import FeatureFlags, TrackerSettings, TwoHandConfig
from airtrace.fingertip_tracker import FingertipTracker
from airtrace.landmarks import LandmarkFrame
from airtrace.pen_state_machine import PenEventType

FRAME_MS = 33.0
INDEX = (0.5, 0.5)
PINCH_THUMB = (0.51, 0.5)


@pytest.fixture
def tracker():
    return FingertipTracker()


def frame_of(*hands, t):
    return LandmarkFrame(hands=tuple(hands), timestamp_ms=t)


def event_types(result):
    return [event.event_type for event in result.pen_events]


def pinch_down(tracker, make_hand, frames=3):
    results = []
    for i in range(frames):
        hand = make_hand(index=INDEX, thumb=PINCH_THUMB)
        results.append(tracker.process(frame_of(hand, t=i * FRAME_MS)))
    return results


def test_pinch_starts_stroke(tracker, make_hand):
    results = pinch_down(tracker, make_hand)

    assert event_types(results[0]) == []
    assert event_types(results[1]) == [PenEventType.STROKE_START]
    assert results[-1].pen_down
    assert results[-1].hand_scale == pytest.approx(0.1)
    assert results[-1].filtered_index == pytest.approx(INDEX)


def test_low_confidence_frames_end_stroke_on_third(tracker, make_hand):
    pinch_down(tracker, make_hand)

    results = []
    for i in range(3, 6):
        hand = make_hand(index=INDEX, thumb=PINCH_THUMB, confidence=0.3, score=0.3)
        results.append(tracker.process(frame_of(hand, t=i * FRAME_MS)))

    assert event_types(results[0]) == []
    assert event_types(results[1]) == []
    assert event_types(results[2]) == [PenEventType.STROKE_END]
    assert not results[2].pen_down


def test_low_confidence_frame_does_not_move_filter(tracker, make_hand):
    pinch_down(tracker, make_hand)

    shaky = make_hand(index=(0.9, 0.9), thumb=(0.91, 0.9), score=0.5)
    result = tracker.process(frame_of(shaky, t=3 * FRAME_MS))

    assert result.raw_index == (0.9, 0.9)
    assert result.filtered_index == pytest.approx(INDEX)
    assert tracker.smoother.last_filtered == pytest.approx(INDEX)

    steady = tracker.process(frame_of(make_hand(index=INDEX, thumb=PINCH_THUMB), t=4 * FRAME_MS))
    assert steady.filtered_index == pytest.approx(INDEX)


def test_missing_frames_are_dropouts(tracker, make_hand):
    pinch_down(tracker, make_hand)

    results = [tracker.process(None, timestamp_ms=100.0 + i * FRAME_MS) for i in range(3)]

    assert not results[0].hand_present
    assert results[0].pen_down
    assert event_types(results[2]) == [PenEventType.STROKE_END]


def test_empty_frame_is_a_dropout(tracker):
    result = tracker.process(frame_of(t=0.0))
    assert not result.hand_present
    assert result.filtered_index is None


def test_occluded_thumb_keeps_stroke(tracker, make_hand):
    pinch_down(tracker, make_hand)

    hand = make_hand(index=INDEX, thumb=(0.0, 0.0), thumb_confidence=0.1)
    result = tracker.process(frame_of(hand, t=3 * FRAME_MS))

    assert result.thumb_inferred
    assert result.thumb == pytest.approx(PINCH_THUMB)
    assert result.pen_down
    assert PenEventType.STROKE_END not in event_types(result)


def test_occlusion_recovery_can_be_disabled(make_hand):
    settings = TrackerSettings(features=FeatureFlags(occlusion_recovery=False))
    tracker = FingertipTracker(settings)

    hand = make_hand(index=INDEX, thumb=PINCH_THUMB, thumb_confidence=0.1)
    result = tracker.process(frame_of(hand, t=0.0))

    assert tracker.occlusion is None
    assert not result.thumb_inferred
    assert result.thumb == PINCH_THUMB


def test_hand_loss_resets_filter(tracker, make_hand):
    for i in range(5):
        tracker.process(frame_of(make_hand(index=(0.2, 0.2)), t=i * FRAME_MS))

    tracker.process(None, timestamp_ms=200.0)
    result = tracker.process(frame_of(make_hand(index=(0.8, 0.8)), t=250.0))

    # No smoothing across the gap
    assert result.filtered_index == pytest.approx((0.8, 0.8))


def test_prediction_is_available(tracker, make_hand):
    results = pinch_down(tracker, make_hand)
    assert results[-1].predicted_index is not None
    assert results[-1].raw_index == INDEX


def test_primary_hand_is_highest_score(tracker, make_hand):
    weak = make_hand(index=(0.2, 0.2), score=0.6)
    strong = make_hand(index=(0.7, 0.7), score=0.95)

    result = tracker.process(frame_of(weak, strong, t=0.0))

    assert result.raw_index == (0.7, 0.7)


def test_two_hand_state(make_hand):
    settings = TrackerSettings(two_hand=TwoHandConfig(enabled=True))
    tracker = FingertipTracker(settings)
    left = make_hand(index=(0.2, 0.4), wrist=(0.25, 0.8), score=0.8)
    right = make_hand(index=(0.8, 0.4), wrist=(0.75, 0.8))

    result = None
    for i in range(30):
        result = tracker.process(frame_of(left, right, t=i * 16.67))

    assert result.two_hand.is_active
    assert not FingertipTracker().process(frame_of(left, right, t=0.0)).two_hand.is_active


def test_reset(tracker, make_hand):
    pinch_down(tracker, make_hand)
    tracker.reset()

    assert not tracker.pen.is_down
    assert tracker.smoother.last_filtered is None


def test_filter_mode_selects_profile():
    tracker = FingertipTracker(dataclasses.replace(TrackerSettings(), filter_mode="menu"))
    assert tracker.smoother.smoothing.min_cutoff == 2.5
