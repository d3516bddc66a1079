# Per-frame pipeline: smoother -> metrics -> {calibration | classifier -> stability} -> recording
import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from core.config import PostureConfig
from core.errors import DetectorNotReadyError, RecordingStateError
from core.features import compute_metrics
from core.filters import smooth_landmarks
from core.models import (Baseline, Event, FrameOutput, Landmark, RecordedSample, SessionSummary,
                         Status, sorted_tags)
from posture import calibration as calib
from posture.classifier import classify
from posture.session import summarize_session
from posture.stability import StabilityState, reset_stability, update_stability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    landmarks: Optional[Sequence[Optional[Landmark]]]  # None/empty = no pose this frame
    width: int
    height: int
    t: float                                           # ms


@dataclass(frozen=True)
class Recording:
    started_at: float
    samples: Tuple[RecordedSample, ...] = ()


@dataclass(frozen=True)
class PipelineState:
    """
    Everything that survives between frames. The caller stores it and passes it
    back on the next call; functions here return a new value instead of mutating.
    Events raised by a command wait in `pending_events` and go out with the next
    frame's output.
    """
    smoothed: Optional[Tuple[Optional[Landmark], ...]] = None
    calibration: calib.CalibrationState = calib.CalibrationState()
    stability: StabilityState = StabilityState()
    baseline: Optional[Baseline] = None
    recording: Optional[Recording] = None
    eye_dist_history: Tuple[float, ...] = ()   # no-baseline depth reference
    frames_seen: int = 0
    pending_events: Tuple[Event, ...] = ()

    @property
    def calibrating(self) -> bool:
        return self.calibration.collecting

    @property
    def recording_active(self) -> bool:
        return self.recording is not None


def initial_state(baseline: Optional[Baseline] = None) -> PipelineState:
    return PipelineState(baseline=baseline)


def initial_output() -> FrameOutput:
    return FrameOutput(status=Status.DETECTING)


def process_frame(state: PipelineState, frame: Frame,
                  cfg: PostureConfig) -> Tuple[PipelineState, FrameOutput]:
    """Route one frame to exactly one of calibration or live classification."""
    pending = state.pending_events
    state = replace(state, frames_seen=state.frames_seen + 1, pending_events=())
    step = _calibration_step if state.calibrating else _live_step
    state, out = step(state, frame, cfg)
    out.events[:0] = pending
    return state, out


def _calibration_step(state, frame, cfg):
    budget = cfg.calibration.sample_budget
    # raw landmarks only: calibration has to see the true noise
    state = replace(state, smoothed=None)
    metrics = compute_metrics(frame.landmarks, frame.width, frame.height) if frame.landmarks else None
    if metrics is None:
        collected = len(state.calibration.samples)
        return state, FrameOutput(Status.CALIBRATING, progress=collected / budget)

    calibration, collected, baseline = calib.add_sample(state.calibration, metrics, frame.t, budget)
    state = replace(state, calibration=calibration)
    out = FrameOutput(Status.CALIBRATING, progress=collected / budget, metrics=metrics)
    if baseline is not None:
        state = replace(state, baseline=baseline, stability=reset_stability())
        out.baseline = baseline
        out.events.append(Event.CALIBRATION_COMPLETE)
    return state, out


def _live_step(state, frame, cfg):
    smoothed = smooth_landmarks(state.smoothed, frame.landmarks, cfg.smoothing.ema_alpha)
    metrics = compute_metrics(smoothed, frame.width, frame.height) if smoothed else None
    state = replace(state, smoothed=tuple(smoothed) if smoothed else None)
    if metrics is None:
        return state, FrameOutput(Status.NO_POSE)

    history = state.eye_dist_history
    reference = sum(history) / len(history) if history else None
    result = classify(metrics, state.baseline, cfg.thresholds, reference_eye_dist=reference)
    history = (history + (metrics.inter_eye_distance_px,))[-cfg.thresholds.fallback_window:]

    stability, update = update_stability(state.stability, result.is_bad, frame.t, cfg.stability)
    state = replace(state, stability=stability, eye_dist_history=history)

    if state.recording is not None and update.recordable:
        sample = RecordedSample(t=frame.t, metrics=metrics, is_bad=result.is_bad, reasons=result.reasons)
        recording = replace(state.recording, samples=state.recording.samples + (sample,))
        state = replace(state, recording=recording)

    return state, FrameOutput(
        status=update.status,
        progress=update.progress,
        reasons=sorted_tags(result.reasons),
        metrics=metrics,
        events=update.events,
    )


def _queue(state: PipelineState, event: Event) -> PipelineState:
    return replace(state, pending_events=state.pending_events + (event,))


def _require_detector(state: PipelineState, action: str):
    if state.frames_seen == 0:
        raise DetectorNotReadyError(
            f"Cannot start {action}: pose model not ready or camera not streaming yet."
        )


def start_calibration(state: PipelineState) -> PipelineState:
    """Drop the active baseline and start collecting raw samples."""
    _require_detector(state, "calibration")
    state = _queue(state, Event.CALIBRATION_STARTED)
    return replace(
        state,
        calibration=calib.start_calibration(state.calibration, previous_baseline=state.baseline),
        baseline=None,
        stability=reset_stability(),
        smoothed=None,
    )


def cancel_calibration(state: PipelineState) -> PipelineState:
    """Abort collecting; whatever baseline was active before the run comes back."""
    if not state.calibrating:
        return state
    restored = state.calibration.previous_baseline
    calibration = calib.cancel_calibration(state.calibration)
    state = _queue(state, Event.CALIBRATION_CANCELLED)
    return replace(state, calibration=replace(calibration, previous_baseline=None), baseline=restored)


def start_recording(state: PipelineState, now: float) -> PipelineState:
    _require_detector(state, "recording")
    if state.recording is not None:
        raise RecordingStateError("A recording is already in progress.")
    logger.info("Recording started")
    return replace(_queue(state, Event.RECORDING_STARTED), recording=Recording(started_at=now))


def stop_recording(state: PipelineState, cfg: PostureConfig,
                   now: Optional[float] = None) -> Tuple[PipelineState, Optional[SessionSummary]]:
    """
    End the recording and aggregate it. The buffer is released either way;
    a None summary means the recording was too short.
    """
    if state.recording is None:
        raise RecordingStateError("No recording in progress.")
    samples = state.recording.samples
    logger.info("Recording stopped with %d samples", len(samples))
    summary = summarize_session(samples, baseline=state.baseline,
                                min_samples=cfg.session.min_samples, created_at=now)
    return replace(_queue(state, Event.RECORDING_STOPPED), recording=None), summary


def status_message(output: FrameOutput, cfg: PostureConfig) -> str:
    status = output.status
    if status is Status.DETECTING:
        return "Detecting pose..."
    if status is Status.NO_POSE:
        return "No Pose Detected"
    if status is Status.CALIBRATING:
        collected = round(output.progress * cfg.calibration.sample_budget)
        return f"Calibrating... ({collected}/{cfg.calibration.sample_budget})"
    if status is Status.PAUSED:
        return "Posture Unstable"
    if status is Status.TRANSITIONING_BAD:
        remaining_ms = (1.0 - output.progress) * cfg.stability.bad_confirm_ms
        return f"Losing Good Posture... {math.ceil(remaining_ms / 1000)}"
    if status is Status.TRANSITIONING_GOOD:
        return "Returning to Good..."
    if status is Status.BAD:
        return "Bad Posture"
    return "Good Posture"


def hint_lines(output: FrameOutput) -> List[str]:
    if output.status is Status.NO_POSE:
        return ["Step back or adjust lighting to detect your pose."]
    if output.status is Status.CALIBRATING:
        return ["Hold a natural 'good posture' for a few seconds."]
    if output.status is Status.PAUSED:
        if output.reasons:
            return ["Please fix your posture to resume."]
        return ["Hold good posture to resume tracking..."]
    if output.reasons:
        return [tag.label for tag in output.reasons]
    if output.status is Status.GOOD:
        return ["Keep it up!"]
    return []
