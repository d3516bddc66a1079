import pytest

from core.config import (CalibrationConfig, PostureConfig, SessionConfig, SmoothingConfig,
                         StabilityConfig, ThresholdConfig)
from core.models import (L_EYE, L_SHOULDER, NOSE, R_EYE, R_SHOULDER, Baseline, Landmark,
                         PostureMetrics, RecordedSample)

FRAME_W, FRAME_H = 640, 480


@pytest.fixture
def make_landmarks():
    """Build a 33-point MediaPipe-style list; pass None for a point to drop it."""
    def _make(nose=(0.5, 0.3), l_eye=(0.53, 0.27), r_eye=(0.47, 0.27),
              l_sh=(0.65, 0.6), r_sh=(0.35, 0.6)):
        pts = [Landmark(0.5, 0.5) for _ in range(33)]
        for idx, xy in ((NOSE, nose), (L_EYE, l_eye), (R_EYE, r_eye),
                        (L_SHOULDER, l_sh), (R_SHOULDER, r_sh)):
            pts[idx] = None if xy is None else Landmark(*xy)
        return pts
    return _make


@pytest.fixture
def baseline():
    return Baseline(
        mean_shoulder=10.0, std_shoulder=2.0,
        mean_head_offset=20.0, std_head_offset=4.0,
        mean_eye_dist=60.0, std_eye_dist=3.0,
        created_at=0.0, frame_count=30,
    )


@pytest.fixture
def thresholds():
    return ThresholdConfig()


@pytest.fixture
def stability_cfg():
    return StabilityConfig()


@pytest.fixture
def cfg():
    # no smoothing lag, small calibration budget, low recording floor
    return PostureConfig(
        smoothing=SmoothingConfig(ema_alpha=1.0),
        calibration=CalibrationConfig(sample_budget=5),
        session=SessionConfig(min_samples=3),
    )


@pytest.fixture
def make_sample():
    def _make(t, reasons=(), shoulder=5.0, head=10.0, eyes=40.0):
        reasons = frozenset(reasons)
        return RecordedSample(
            t=t,
            metrics=PostureMetrics(shoulder, head, eyes),
            is_bad=bool(reasons),
            reasons=reasons,
        )
    return _make
