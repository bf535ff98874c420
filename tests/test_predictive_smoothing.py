import math

import numpy as np
import pytest

from airtrace.config import PredictorConfig
from airtrace.kalman_predictor import KalmanPredictor
from airtrace.predictive_smoothing import TwoStageFilter

FRAME_MS = 16.0


@pytest.fixture
def smoother():
    return TwoStageFilter.for_mode("tracing")


def feed_linear(smoother, frames=30, start=0.2, step=0.002):
    for i in range(frames):
        smoother.update(start + step * i, 0.5, i * FRAME_MS)


def test_predict_before_update_is_none(smoother):
    assert smoother.predict(None, 1280, 720) is None


def test_first_update_passes_through(smoother):
    assert smoother.update(0.3, 0.4, 0.0) == (0.3, 0.4)
    assert smoother.last_filtered == (0.3, 0.4)


def test_prediction_leads_motion(smoother):
    feed_linear(smoother)

    fx, fy = smoother.last_filtered
    px, py = smoother.predict(None, 1280, 720)

    assert px > fx
    assert py == pytest.approx(fy)


def test_large_prediction_falls_back_to_filtered():
    smoother = TwoStageFilter.for_mode(
        "tracing", PredictorConfig(max_prediction_distance_px=0.001)
    )
    feed_linear(smoother)

    assert smoother.predict(None, 1280, 720) == smoother.last_filtered


def test_prediction_is_clamped_to_viewport():
    smoother = TwoStageFilter.for_mode(
        "tracing", PredictorConfig(max_prediction_distance_px=1e9)
    )
    feed_linear(smoother, start=0.9, step=0.004)

    px, py = smoother.predict(1000.0, 1280, 720)
    assert 0.0 <= px <= 1.0
    assert 0.0 <= py <= 1.0


def test_apply_profile_keeps_state(smoother):
    smoother.update(0.5, 0.5, 0.0)
    smoother.apply_profile("menu")

    assert smoother.smoothing.min_cutoff == 2.5
    assert smoother.last_filtered == (0.5, 0.5)


def test_reset_clears_state(smoother):
    feed_linear(smoother)
    smoother.reset()

    assert smoother.last_filtered is None
    assert smoother.predict(None, 1280, 720) is None


def test_kalman_ignores_nan_measurement():
    predictor = KalmanPredictor()
    predictor.update(0.5, 0.5, 0.0)
    predictor.update(0.51, 0.5, 16.0)

    x, y = predictor.update(math.nan, 0.5, 32.0)

    assert math.isfinite(x) and math.isfinite(y)
    assert np.all(np.isfinite(predictor.x))


def test_kalman_velocity_tracks_direction():
    predictor = KalmanPredictor()
    for i in range(20):
        predictor.update(0.1 + 0.01 * i, 0.5 - 0.01 * i, i * FRAME_MS)

    vx, vy = predictor.velocity
    assert vx > 0
    assert vy < 0


def test_kalman_duplicate_timestamp_stays_finite():
    predictor = KalmanPredictor()
    predictor.update(0.5, 0.5, 100.0)
    predictor.update(0.6, 0.5, 100.0)

    assert np.all(np.isfinite(predictor.x))


def test_kalman_settles_to_low_gain_at_frame_rate():
    config = PredictorConfig()
    predictor = KalmanPredictor(config)
    for i in range(200):
        predictor.update(0.5, 0.5, i * FRAME_MS)

    gain = predictor.P[0] / (predictor.P[0] + config.measurement_noise)
    assert gain < 0.1

    x, _ = predictor.update(0.6, 0.5, 200 * FRAME_MS)
    assert x - 0.5 < 0.01


def test_kalman_velocity_is_per_second():
    predictor = KalmanPredictor()
    for i in range(400):
        predictor.update(0.1 + 0.0016 * i, 0.5, i * FRAME_MS)

    vx, _ = predictor.velocity
    # 0.0016 per 16 ms frame is 0.1 per second
    assert vx == pytest.approx(0.1, rel=0.1)
    dx, dy = predictor.extrapolate(1000.0)
    assert dx == pytest.approx(vx)
    assert dy == pytest.approx(0.0, abs=1e-9)
