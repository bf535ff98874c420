import pytest

from airtrace.difficulty_controller import DifficultyController


@pytest.fixture
def controller():
    ctrl = DifficultyController()
    # First call only sets the baseline
    assert ctrl.update(0.0) is False
    return ctrl


def test_neutral_start():
    ctrl = DifficultyController()
    assert ctrl.tolerance_multiplier == 1.0
    assert ctrl.assist_strength == pytest.approx(0.3)


def test_update_is_rate_limited(controller):
    assert controller.update(500.0) is False
    assert controller.update(1000.0) is True
    assert controller.update(1500.0) is False


def test_high_accuracy_tightens(controller):
    for _ in range(3):
        controller.record_success(0.95)

    controller.update(1000.0, confidence=0.9)

    assert controller.tolerance_multiplier == pytest.approx(0.99)
    assert controller.assist_strength == pytest.approx(0.295)


def test_high_accuracy_with_low_confidence_does_not_tighten(controller):
    controller.record_success(0.95)
    controller.update(1000.0, confidence=0.7)
    assert controller.tolerance_multiplier == 1.0


def test_repeated_failures_ease(controller):
    controller.record_failure()
    controller.record_failure()

    controller.update(1000.0, confidence=0.9)

    assert controller.tolerance_multiplier == pytest.approx(1.02)
    assert controller.assist_strength == pytest.approx(0.31)


def test_off_path_spikes_ease_only_above_limit(controller):
    for _ in range(3):
        controller.record_off_path_spike()
    controller.update(1000.0, confidence=0.9)
    assert controller.tolerance_multiplier == 1.0

    for _ in range(4):
        controller.record_off_path_spike()
    controller.update(2000.0, confidence=0.9)
    assert controller.tolerance_multiplier == pytest.approx(1.02)


def test_spikes_reset_after_evaluation(controller):
    for _ in range(4):
        controller.record_off_path_spike()
    controller.update(1000.0, confidence=0.9)
    controller.update(2000.0, confidence=0.9)

    assert controller.tolerance_multiplier == pytest.approx(1.02)


def test_low_confidence_eases(controller):
    controller.update(1000.0, confidence=0.5)

    assert controller.tolerance_multiplier == pytest.approx(1.01)
    assert controller.assist_strength == pytest.approx(0.305)


def test_values_stay_in_range(controller):
    for _ in range(5):
        controller.record_failure()
    for i in range(1, 200):
        controller.update(i * 1000.0, confidence=0.1)

    assert controller.tolerance_multiplier == pytest.approx(1.5)
    assert controller.assist_strength == pytest.approx(0.5)


def test_success_clears_failures(controller):
    controller.record_failure()
    controller.record_failure()
    controller.record_success()

    controller.update(1000.0, confidence=0.9)

    assert controller.tolerance_multiplier == 1.0


def test_reset(controller):
    controller.record_failure()
    controller.record_failure()
    controller.update(1000.0, confidence=0.9)

    controller.reset()

    assert controller.params.tolerance_multiplier == 1.0
    assert controller.params.assist_strength == pytest.approx(0.3)
