import dataclasses

import pytest

from airtrace.config import MagneticAssistConfig, TracingConfig
from airtrace.progress_store import ProgressStore
from airtrace.tracing_paths import TracingPath, get_path
from airtrace.tracing_session import TracingSession

VIEWPORT = 1000
TICK_MS = 100


@pytest.fixture
def line_path():
    # 1000 px long at a 1000x1000 viewport
    return TracingPath("test-line", "Line", 1, 1, ((0.0, 0.5), (1.0, 0.5)), 24, 0.82, 0.65)


@pytest.fixture
def session(line_path):
    return TracingSession(line_path, viewport_w=VIEWPORT, viewport_h=VIEWPORT)


def sweep(session, xs, y=0.5, pen_down=True, start_ms=0, step_ms=TICK_MS, confidence=1.0):
    ticks = []
    for i, x in enumerate(xs):
        ticks.append(session.process((x, y), pen_down, start_ms + i * step_ms, confidence))
    return ticks


def test_straight_trace_completes_exactly_once(session):
    ticks = sweep(session, [i / 100 for i in range(101)])

    assert sum(tick.completed_now for tick in ticks) == 1
    assert ticks[-1].progress >= 0.82
    assert ticks[-1].is_completed


def test_progress_is_monotonic_and_behind_finger(session):
    ticks = sweep(session, [i / 100 for i in range(90)])

    progresses = [tick.progress for tick in ticks]
    assert progresses == sorted(progresses)
    for tick in ticks:
        assert tick.progress <= tick.overall_t + 1e-9


def test_progress_step_is_capped(session):
    # 100 px per tick is fast, but each update still adds at most 0.005
    ticks = sweep(session, [0.0, 0.1, 0.2, 0.3])
    assert ticks[-1].progress == pytest.approx(0.015)


def test_updates_are_rate_limited(session):
    ticks = sweep(session, [i / 100 for i in range(6)], step_ms=50)
    assert ticks[-1].progress == pytest.approx(0.015)


def test_no_progress_off_path(session):
    ticks = sweep(session, [i / 100 for i in range(30)], y=0.6)

    assert ticks[-1].progress == 0.0
    assert not ticks[-1].on_path


def test_no_progress_moving_backwards(session):
    sweep(session, [i / 100 for i in range(21)])
    before = session.progress

    ticks = sweep(session, [0.2 - i / 100 for i in range(1, 11)], start_ms=2100)

    assert ticks[-1].progress == pytest.approx(before)


def test_pen_up_pauses_after_grace(session):
    ticks = sweep(session, [i / 100 for i in range(10)], pen_down=False)

    # Only the grace window lets progress through
    assert ticks[-1].progress == pytest.approx(0.01)
    assert ticks[-1].is_paused


def test_resume_after_pause_starts_fresh_segment(session):
    sweep(session, [i / 100 for i in range(5)], pen_down=False)
    assert session.is_paused

    ticks = sweep(session, [0.3, 0.31, 0.32], start_ms=1000)

    assert not ticks[0].is_paused
    # First tick after resuming has no movement baseline
    assert ticks[0].progress == pytest.approx(0.01)
    assert ticks[-1].progress > ticks[0].progress


def test_missing_hand_is_off_path(session):
    sweep(session, [i / 100 for i in range(5)])
    before = session.progress

    tick = session.process(None, True, 600)

    assert not tick.on_path
    assert tick.progress == before


def test_off_path_decay_is_bounded(session):
    ticks = sweep(session, [i / 100 for i in range(41)])
    held = ticks[-1].progress
    assert held == pytest.approx(0.2)

    ticks = sweep(session, [0.4] * 200, y=0.7, start_ms=4100)

    assert ticks[-1].progress == pytest.approx(held * 0.75)
    assert min(tick.progress for tick in ticks) >= held * 0.75 - 1e-9


def test_short_excursion_does_not_decay(session):
    sweep(session, [i / 100 for i in range(41)])
    held = session.progress

    ticks = sweep(session, [0.4] * 7, y=0.7, start_ms=4100)

    assert ticks[-1].progress == pytest.approx(held)


def test_early_pack_tolerance_bonus(line_path):
    assert TracingSession(line_path).tolerance_px == pytest.approx(24 * 1.15)

    late = dataclasses.replace(line_path, pack=3)
    assert TracingSession(late).tolerance_px == pytest.approx(24)


def test_magnetic_assist_pulls_toward_path(line_path):
    config = TracingConfig(magnetic=MagneticAssistConfig(enabled=True))
    session = TracingSession(line_path, config, VIEWPORT, VIEWPORT)

    tick = session.process((0.5, 0.53), True, 0, 1.0)

    assert session.tolerance_px == pytest.approx(24 * 1.15 * 1.5)
    assert 0.5 < tick.finger[1] < 0.53


def test_off_path_hint_cooldown(session):
    ticks = sweep(session, [0.5] * 31, y=0.7)
    hint_times = [i * TICK_MS for i, tick in enumerate(ticks) if tick.show_off_path_hint]
    assert hint_times == [0, 2100]


def test_idle_hint(session):
    ticks = sweep(session, [0.5] * 81)
    assert sum(tick.show_idle_hint for tick in ticks) == 1


def test_accuracy_tracks_time_on_path(session):
    sweep(session, [0.5] * 11)
    ticks = sweep(session, [0.5] * 10, y=0.7, start_ms=1100)

    assert ticks[-1].accuracy == pytest.approx(0.5)


def test_streak_grows_on_path(session):
    ticks = sweep(session, [0.5] * 11)
    assert ticks[-1].streak == pytest.approx(0.11)


def test_hovering_at_path_end_does_not_complete(session):
    sweep(session, [0.1, 0.11, 0.12])
    sweep(session, [0.12] * 4, pen_down=False, start_ms=1000)
    assert session.is_paused

    ticks = sweep(session, [0.97, 0.99, 1.0], pen_down=False, start_ms=1400)

    assert not any(tick.completed_now for tick in ticks)
    assert not session.is_completed
    assert session.progress < 0.1

    tick = session.process((1.0, 0.5), True, 1800)
    assert tick.completed_now


def test_completion_is_recorded(line_path):
    path = dataclasses.replace(get_path("warmup-h1"), points=line_path.points)
    store = ProgressStore()
    session = TracingSession(path, viewport_w=VIEWPORT, viewport_h=VIEWPORT, progress_store=store)

    sweep(session, [i / 100 for i in range(101)])

    record = store.get_level_progress("warmup-h1")
    assert record.completed
    assert record.attempts == 1
    assert store.is_level_unlocked("warmup-v1")


def test_reset_switches_path(session):
    sweep(session, [i / 100 for i in range(101)])
    other = get_path("warmup-v1")

    session.reset(other)

    assert session.path is other
    assert session.progress == 0.0
    assert not session.is_completed
