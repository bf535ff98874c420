import pytest

from airtrace.pen_state_machine import (
    PendingTransition,
    PenEventType,
    PenState,
    PenStateMachine,
)

HAND_SCALE = 0.1
FRAME_MS = 33.0


def pinched(index):
    return (index[0] + 0.01, index[1])


def opened(index):
    return (index[0] + 0.1, index[1])


def types(events):
    return [event.event_type for event in events]


@pytest.fixture
def pen():
    return PenStateMachine()


@pytest.fixture
def down_pen(pen):
    """Pen that has just committed a stroke start at (0.5, 0.5)."""
    index = (0.5, 0.5)
    pen.process(index, pinched(index), HAND_SCALE, 0.9, 0.0)
    events = pen.process(index, pinched(index), HAND_SCALE, 0.9, FRAME_MS)
    assert types(events) == [PenEventType.STROKE_START]
    return pen


def test_pinch_is_debounced(pen):
    index = (0.5, 0.5)

    first = pen.process(index, pinched(index), HAND_SCALE, 0.9, 0.0)
    assert first == []
    assert isinstance(pen.phase, PendingTransition)
    assert pen.state is PenState.UP

    second = pen.process(index, pinched(index), HAND_SCALE, 0.9, FRAME_MS)
    assert types(second) == [PenEventType.STROKE_START]
    assert second[0].position == index
    assert pen.is_down


def test_three_low_confidence_frames_end_stroke_once(down_pen):
    index = (0.5, 0.5)
    all_events = []
    for i in range(3):
        events = down_pen.process(index, pinched(index), HAND_SCALE, 0.3, FRAME_MS * (2 + i))
        all_events.append(events)

    assert all_events[0] == []
    assert all_events[1] == []
    assert types(all_events[2]) == [PenEventType.STROKE_END]
    assert down_pen.state is PenState.UP

    # Further dropout frames do not repeat the end
    assert down_pen.process(None, None, HAND_SCALE, 0.0, FRAME_MS * 5) == []


def test_missing_points_count_as_dropout(down_pen):
    down_pen.process(None, None, HAND_SCALE, 0.9, 66.0)
    assert down_pen.dropout_frames == 1
    assert down_pen.is_down


def test_good_frame_resets_dropout_count(down_pen):
    index = (0.5, 0.5)
    down_pen.process(None, None, HAND_SCALE, 0.0, 66.0)
    down_pen.process(None, None, HAND_SCALE, 0.0, 99.0)
    down_pen.process(index, pinched(index), HAND_SCALE, 0.9, 132.0)
    down_pen.process(None, None, HAND_SCALE, 0.0, 165.0)

    assert down_pen.is_down
    assert down_pen.dropout_frames == 1


def test_teleport_breaks_stroke(down_pen):
    far = (0.8, 0.5)

    events = down_pen.process(far, pinched(far), HAND_SCALE, 0.9, 66.0)

    # Stroke ends at once; a new one still needs debounce
    assert types(events) == [PenEventType.STROKE_END]
    assert events[0].position == (0.5, 0.5)
    assert down_pen.state is PenState.UP

    events = down_pen.process(far, pinched(far), HAND_SCALE, 0.9, 99.0)
    assert types(events) == [PenEventType.STROKE_START]


def test_release_is_debounced(down_pen):
    index = (0.5, 0.5)

    first = down_pen.process(index, opened(index), HAND_SCALE, 0.9, 66.0)
    assert first == []
    assert down_pen.is_down

    second = down_pen.process(index, opened(index), HAND_SCALE, 0.9, 99.0)
    assert types(second) == [PenEventType.STROKE_END]
    assert not down_pen.is_down


def test_single_flicker_is_cancelled(down_pen):
    index = (0.5, 0.5)
    down_pen.process(index, opened(index), HAND_SCALE, 0.9, 66.0)
    events = down_pen.process(index, pinched(index), HAND_SCALE, 0.9, 99.0)

    assert PenEventType.STROKE_END not in types(events)
    assert down_pen.phase is PenState.DOWN


def test_hysteresis_band_keeps_down(down_pen):
    index = (0.5, 0.5)
    # 0.04 lies between the down (0.035) and up (0.045) thresholds
    between = (index[0] + 0.04, index[1])

    for i in range(3):
        down_pen.process(index, between, HAND_SCALE, 0.9, 66.0 + i * FRAME_MS)
    assert down_pen.is_down


def test_hysteresis_band_keeps_up(pen):
    index = (0.5, 0.5)
    between = (index[0] + 0.04, index[1])

    for i in range(3):
        pen.process(index, between, HAND_SCALE, 0.9, i * FRAME_MS)
    assert not pen.is_down


def test_small_movement_is_ignored(down_pen):
    nudged = (0.5005, 0.5)
    assert down_pen.process(nudged, pinched(nudged), HAND_SCALE, 0.9, 66.0) == []

    moved = (0.51, 0.5)
    events = down_pen.process(moved, pinched(moved), HAND_SCALE, 0.9, 99.0)
    assert types(events) == [PenEventType.STROKE_CONTINUE]
    assert down_pen.last_position == moved


def test_no_double_stroke_start(pen):
    starts = 0
    for i in range(20):
        index = (0.3 + i * 0.005, 0.5)
        events = pen.process(index, pinched(index), HAND_SCALE, 0.9, i * FRAME_MS)
        starts += types(events).count(PenEventType.STROKE_START)
    assert starts == 1


def test_force_up_when_up_is_noop(pen):
    assert pen.force_up() is None


def test_force_up_ends_stroke(down_pen):
    event = down_pen.force_up(100.0)
    assert event.event_type is PenEventType.STROKE_END
    assert not down_pen.is_down


def test_reset(down_pen):
    down_pen.reset()
    assert down_pen.phase is PenState.UP
    assert down_pen.last_position is None
    assert down_pen.dropout_frames == 0
