from dataclasses import replace

import pytest

from core.config import SmoothingConfig
from core.errors import DetectorNotReadyError, RecordingStateError
from core.features import compute_metrics
from core.models import Event, FrameOutput, IssueTag, Status
from posture import pipeline
from posture.calibration import compute_baseline
from posture.pipeline import Frame

W, H = 640, 480


@pytest.fixture
def good(make_landmarks):
    return make_landmarks()


@pytest.fixture
def uneven(make_landmarks):
    return make_landmarks(l_sh=(0.65, 0.7), r_sh=(0.35, 0.6))  # 48 px shoulder gap


def feed(state, cfg, frames):
    """frames: iterable of (t, landmarks); returns final state and all outputs."""
    outputs = []
    for t, lms in frames:
        state, out = pipeline.process_frame(state, Frame(lms, W, H, t), cfg)
        outputs.append(out)
    return state, outputs


def warmed_up(cfg, landmarks, baseline=None):
    state, _ = feed(pipeline.initial_state(baseline), cfg, [(0, landmarks)])
    return state


def test_no_pose_frame(cfg):
    state, out = pipeline.process_frame(pipeline.initial_state(), Frame(None, W, H, 0), cfg)
    assert out.status is Status.NO_POSE
    assert state.smoothed is None
    assert state.frames_seen == 1


def test_missing_required_point_is_no_pose(cfg, make_landmarks):
    _, (out,) = feed(pipeline.initial_state(), cfg, [(0, make_landmarks(nose=None))])
    assert out.status is Status.NO_POSE
    assert out.metrics is None


def test_commands_need_detector_output():
    state = pipeline.initial_state()
    with pytest.raises(DetectorNotReadyError):
        pipeline.start_calibration(state)
    with pytest.raises(DetectorNotReadyError):
        pipeline.start_recording(state, 0)


def test_calibration_produces_baseline(cfg, good):
    state = pipeline.start_calibration(warmed_up(cfg, good))
    assert state.calibrating
    state, outputs = feed(state, cfg, [(t, good) for t in range(100, 600, 100)])

    assert [o.status for o in outputs] == [Status.CALIBRATING] * 5
    assert [o.progress for o in outputs] == pytest.approx([0.2, 0.4, 0.6, 0.8, 1.0])
    assert outputs[-1].events == [Event.CALIBRATION_COMPLETE]
    assert outputs[-1].baseline is not None
    assert state.baseline == outputs[-1].baseline
    assert state.baseline.frame_count == 5
    assert state.baseline.created_at == 500
    assert not state.calibrating


def test_calibration_bypasses_smoothing(cfg, make_landmarks):
    cfg = replace(cfg, smoothing=SmoothingConfig(ema_alpha=0.2))
    frames = [
        (100 * (k + 1), make_landmarks(l_sh=(0.65, 0.6 + (0.02 if k % 2 else 0.0))))
        for k in range(5)
    ]
    state = pipeline.start_calibration(warmed_up(cfg, make_landmarks()))
    state, _ = feed(state, cfg, frames)
    raw = [compute_metrics(lms, W, H) for _, lms in frames]
    assert state.baseline == compute_baseline(raw, now=500)
    assert state.baseline.std_shoulder > 0


def test_pose_loss_during_calibration_adds_nothing(cfg, good):
    state = pipeline.start_calibration(warmed_up(cfg, good))
    state, outputs = feed(state, cfg, [(100, good), (200, None), (300, good)])
    assert outputs[1].status is Status.CALIBRATING
    assert len(state.calibration.samples) == 2


def test_cancel_restores_previous_baseline(cfg, good, baseline):
    state = warmed_up(cfg, good, baseline=baseline)
    state = pipeline.start_calibration(state)
    assert state.baseline is None
    state, _ = feed(state, cfg, [(100, good), (200, good)])
    state = pipeline.cancel_calibration(state)
    assert state.baseline == baseline
    assert not state.calibrating
    assert state.calibration.samples == ()


def test_confirmed_bad_posture(cfg, good, uneven):
    state = warmed_up(cfg, good)
    state, outputs = feed(state, cfg, [(t, uneven) for t in range(100, 3200, 100)])
    assert outputs[0].status is Status.TRANSITIONING_BAD
    assert outputs[0].reasons == (IssueTag.SHOULDERS_UNEVEN,)
    assert outputs[-1].status is Status.BAD
    assert [e for o in outputs for e in o.events] == [Event.BAD_POSTURE]


def test_rolling_reference_without_baseline(cfg, make_landmarks):
    state = warmed_up(cfg, make_landmarks())
    state, _ = feed(state, cfg, [(t, make_landmarks()) for t in range(100, 500, 100)])
    closer = make_landmarks(l_eye=(0.55, 0.27), r_eye=(0.45, 0.27))
    _, (out,) = feed(state, cfg, [(500, closer)])
    assert IssueTag.SLOUCHING in out.reasons


def test_recording_summary(cfg, good):
    state = pipeline.start_recording(warmed_up(cfg, good), now=0)
    state, _ = feed(state, cfg, [(t, good) for t in range(100, 1100, 100)])
    state, summary = pipeline.stop_recording(state, cfg, now=1200)
    assert not state.recording_active
    assert summary.frames == 10
    assert summary.total_duration_ms == 900
    assert summary.good_posture_percent == pytest.approx(100.0)
    assert summary.created_at == 1200


def test_paused_frames_are_not_recorded(cfg, good, uneven):
    state = pipeline.start_recording(warmed_up(cfg, good), now=0)
    flicker = [(100 * (k + 1), uneven if k % 2 == 0 else good) for k in range(4)]
    state, outputs = feed(state, cfg, flicker)
    assert outputs[-1].status is Status.PAUSED
    assert outputs[-1].events == [Event.PAUSED]
    state, _ = feed(state, cfg, [(500, uneven), (600, uneven), (700, uneven)])
    assert len(state.recording.samples) == 3


def test_calibration_frames_are_not_recorded(cfg, good):
    state = pipeline.start_recording(warmed_up(cfg, good), now=0)
    state = pipeline.start_calibration(state)
    state, _ = feed(state, cfg, [(t, good) for t in range(100, 400, 100)])
    assert state.recording.samples == ()


def test_short_recording_is_discarded(cfg, good):
    state = pipeline.start_recording(warmed_up(cfg, good), now=0)
    state, _ = feed(state, cfg, [(100, good), (200, good)])
    state, summary = pipeline.stop_recording(state, cfg)
    assert summary is None
    assert state.recording is None


def test_recording_state_errors(cfg, good):
    state = warmed_up(cfg, good)
    with pytest.raises(RecordingStateError):
        pipeline.stop_recording(state, cfg)
    state = pipeline.start_recording(state, now=0)
    with pytest.raises(RecordingStateError):
        pipeline.start_recording(state, now=10)


def test_recording_leaves_earlier_state_untouched(cfg, good):
    before = pipeline.start_recording(warmed_up(cfg, good), now=0)
    after, _ = feed(before, cfg, [(100, good), (200, good)])
    assert before.recording.samples == ()
    assert len(after.recording.samples) == 2
    again, _ = feed(before, cfg, [(100, good)])
    assert len(again.recording.samples) == 1


def test_calibration_commands_emit_events_with_next_frame(cfg, good):
    state = pipeline.start_calibration(warmed_up(cfg, good))
    state, (out,) = feed(state, cfg, [(100, good)])
    assert out.events == [Event.CALIBRATION_STARTED]
    state = pipeline.cancel_calibration(state)
    state, (out, nxt) = feed(state, cfg, [(200, good), (300, good)])
    assert out.events == [Event.CALIBRATION_CANCELLED]
    assert nxt.events == []


def test_cancel_without_calibration_emits_nothing(cfg, good):
    state = pipeline.cancel_calibration(warmed_up(cfg, good))
    assert state.pending_events == ()


def test_recording_commands_emit_events_with_next_frame(cfg, good):
    state = pipeline.start_recording(warmed_up(cfg, good), now=0)
    state, (out,) = feed(state, cfg, [(100, good)])
    assert out.events == [Event.RECORDING_STARTED]
    state, _ = pipeline.stop_recording(state, cfg, now=200)
    _, (out,) = feed(state, cfg, [(300, None)])
    assert out.status is Status.NO_POSE
    assert out.events == [Event.RECORDING_STOPPED]


def test_command_events_come_before_frame_events(cfg, good):
    state = pipeline.start_calibration(warmed_up(cfg, good))
    state, _ = feed(state, cfg, [(t, good) for t in range(100, 500, 100)])
    state = pipeline.start_recording(state, now=450)
    state, (out,) = feed(state, cfg, [(500, good)])
    assert out.events == [Event.RECORDING_STARTED, Event.CALIBRATION_COMPLETE]
    assert state.pending_events == ()


def test_status_messages(cfg):
    assert pipeline.status_message(FrameOutput(Status.CALIBRATING, progress=0.4), cfg) == "Calibrating... (2/5)"
    assert pipeline.status_message(FrameOutput(Status.TRANSITIONING_BAD, progress=0.5), cfg) == \
        "Losing Good Posture... 2"
    assert pipeline.status_message(FrameOutput(Status.PAUSED), cfg) == "Posture Unstable"
    assert pipeline.status_message(pipeline.initial_output(), cfg) == "Detecting pose..."


def test_hint_lines_use_issue_labels():
    out = FrameOutput(Status.BAD, reasons=(IssueTag.SLOUCHING, IssueTag.HEAD_OFFSET))
    assert pipeline.hint_lines(out) == ["Slouching: Move back from screen", "Head Offset: Center position"]
    assert pipeline.hint_lines(FrameOutput(Status.PAUSED)) == ["Hold good posture to resume tracking..."]
