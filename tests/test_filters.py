import pytest

from core.filters import ema, smooth_landmarks
from core.models import Landmark


def test_pose_lost_resets():
    prev = [Landmark(0.1, 0.2, 0.3)]
    assert smooth_landmarks(prev, None, 0.5) is None
    assert smooth_landmarks(prev, [], 0.5) is None


def test_first_frame_passes_through():
    raw = [Landmark(0.4, 0.6, 0.1), None]
    assert smooth_landmarks(None, raw, 0.2) == raw


def test_ema_step_on_each_axis():
    prev = [Landmark(0.0, 1.0, 0.0)]
    raw = [Landmark(1.0, 0.0, 0.5)]
    (out,) = smooth_landmarks(prev, raw, 0.25)
    assert out.x == pytest.approx(0.25)
    assert out.y == pytest.approx(0.75)
    assert out.z == pytest.approx(0.125)


def test_missing_raw_point_stays_missing():
    prev = [Landmark(0.1, 0.1), Landmark(0.2, 0.2)]
    out = smooth_landmarks(prev, [None, Landmark(0.4, 0.4)], 0.5)
    assert out[0] is None
    assert out[1].x == pytest.approx(0.3)


def test_new_index_without_history_passes_through():
    prev = [Landmark(0.0, 0.0)]
    raw = [Landmark(1.0, 1.0), Landmark(0.7, 0.3)]
    out = smooth_landmarks(prev, raw, 0.5)
    assert out[1] == raw[1]


def test_constant_input_converges_monotonically():
    target = [Landmark(1.0, 1.0, 1.0)]
    state = [Landmark(0.0, 0.0, 0.0)]
    gaps = []
    for _ in range(25):
        state = smooth_landmarks(state, target, 0.2)
        gaps.append(1.0 - state[0].x)
    assert all(b < a for a, b in zip(gaps, gaps[1:]))
    assert gaps[-1] < 0.01


def test_alpha_one_is_exact():
    state = [Landmark(0.0, 0.0, 0.0)]
    raw = [Landmark(0.3, 0.9, -0.2)]
    assert smooth_landmarks(state, raw, 1.0) == raw


def test_scalar_ema_handles_none():
    assert ema(None, 5.0, 0.5) == 5.0
    assert ema(3.0, None, 0.5) == 3.0
    assert ema(4.0, 2.0, 0.5) == pytest.approx(3.0)
