# Sitting Posture Monitor: live feedback + calibration + session recording (YAML config)
import time

import cv2
import streamlit as st

from core.config import configure_logging, load_config
from core.errors import PostureError
from core.filters import ema
from core.models import Event, Status
from core.tracking import Tracker
from posture import pipeline
from posture.pipeline import Frame
from posture.session import format_duration
from ui.overlays import draw_labels, draw_skeleton
from ui.summary import issue_figure, split_figure, timeline_figure

# Streamlit page
st.set_page_config(page_title="Posture Monitor — Live", layout="wide")
st.title("🪑 Posture Monitor — Live Sitting Posture Feedback")
st.caption("On-device. Wellness feedback only — not a medical device.")

cfg = load_config()
configure_logging(cfg)


def now_ms():
    return time.time() * 1000.0


# Pipeline & recording state
if "pipeline" not in st.session_state:
    st.session_state.pipeline = pipeline.initial_state()
if "summary" not in st.session_state:
    st.session_state.summary = None
if "notice" not in st.session_state:
    st.session_state.notice = None

# Sidebar
with st.sidebar:
    st.header("Run")
    cam_index = st.number_input("Camera index", value=int(cfg.video.source), step=1)
    target_fps = st.slider("Target FPS", 5, 60, int(cfg.video.fps))
    show_skeleton = st.toggle("Show tracked points", value=True)
    st.markdown("---")

    state = st.session_state.pipeline
    if state.calibrating:
        if st.button("Cancel Calibration"):
            st.session_state.pipeline = pipeline.cancel_calibration(state)
    else:
        label = "Recalibrate" if state.baseline else "Calibrate Posture"
        if st.button(label):
            try:
                st.session_state.pipeline = pipeline.start_calibration(state)
            except PostureError as exc:
                st.session_state.notice = ("warning", str(exc))
    st.caption("Tip: Sit in your natural good posture, facing the camera, while calibrating.")

    st.markdown("---")
    state = st.session_state.pipeline
    if not state.recording_active:
        if st.button("⏺ Start Recording"):
            try:
                st.session_state.pipeline = pipeline.start_recording(state, now_ms())
                st.session_state.summary = None
            except PostureError as exc:
                st.session_state.notice = ("warning", str(exc))
    else:
        elapsed = now_ms() - state.recording.started_at
        st.write(f"Recording… {format_duration(elapsed)}")
        if st.button("⏹ Stop"):
            st.session_state.pipeline, summary = pipeline.stop_recording(state, cfg, now_ms())
            st.session_state.summary = summary
            if summary is None:
                st.session_state.notice = ("warning", "Recording too short!")

if st.session_state.notice:
    kind, text = st.session_state.notice
    getattr(st, kind)(text)
    st.session_state.notice = None

# Session summary (kept in session only; persistence is someone else's job)
summary = st.session_state.summary
if summary is not None:
    with st.expander("Session Summary", expanded=True):
        c1, c2 = st.columns(2)
        c1.metric("Good posture", f"{summary.good_posture_percent:.0f}%")
        c2.metric("Bad posture", f"{summary.bad_posture_percent:.0f}%")
        st.plotly_chart(split_figure(summary), use_container_width=True)
        if summary.ranked_issues():
            st.plotly_chart(issue_figure(summary), use_container_width=True)
        st.plotly_chart(timeline_figure(summary), use_container_width=True)
        st.json(summary.to_dict(), expanded=False)

# Video capture
cap = cv2.VideoCapture(int(cam_index))
cap.set(cv2.CAP_PROP_FPS, target_fps)
cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.video.width)
cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.video.height)

tracker = Tracker()

video_placeholder = st.empty()
status_placeholder = st.empty()
status_placeholder.info(pipeline.status_message(pipeline.initial_output(), cfg))

# Main loop
try:
    t_last = time.time()
    progress_sm = None  # display-only smoothing of the countdown bar
    while True:
        ok, frame = cap.read()
        if not ok:
            st.error("Camera read failed. Try a different index.")
            break

        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        det = tracker.process(frame_rgb)
        w, h = det["size"]

        state, out = pipeline.process_frame(
            st.session_state.pipeline,
            Frame(landmarks=det["landmarks"], width=w, height=h, t=now_ms()),
            cfg,
        )
        st.session_state.pipeline = state

        for event in out.events:
            if event is Event.CALIBRATION_STARTED:
                st.toast("Calibration started. Sit in your natural good posture.")
            elif event is Event.CALIBRATION_CANCELLED:
                st.toast("Calibration cancelled")
            elif event is Event.RECORDING_STARTED:
                st.toast("Recording started ⏺")
            elif event is Event.RECORDING_STOPPED:
                st.toast("Recording stopped ⏹")
            elif event is Event.CALIBRATION_COMPLETE:
                st.toast("Calibration complete ✅ Personalized tracking started.")
            elif event is Event.BAD_POSTURE:
                st.toast("Bad posture ❌")
            elif event is Event.RECOVERED:
                st.toast("Good posture again ✅")
            elif event is Event.PAUSED:
                st.toast("Posture unstable, tracking paused ⚠️")
            elif event is Event.RESUMED:
                st.toast("Tracking resumed")

        message, hints = pipeline.status_message(out, cfg), pipeline.hint_lines(out)
        progress_sm = ema(out.progress, progress_sm, 0.5)
        out.progress = progress_sm  # bar only; message above uses the exact value

        labeled = frame
        if show_skeleton:
            shown = det["landmarks"] if state.calibrating else state.smoothed
            labeled = draw_skeleton(labeled.copy(), shown)
        labeled = draw_labels(labeled, out, message, hints)
        video_placeholder.image(labeled[:, :, ::-1], channels="RGB", use_container_width=True)

        if out.metrics is not None and out.status is not Status.CALIBRATING:
            m = out.metrics
            status_placeholder.info(
                f"Shoulders: {m.shoulder_diff_px:0.1f}px | "
                f"Head offset: {m.head_offset_x:0.1f}px | "
                f"Eye distance: {m.inter_eye_distance_px:0.1f}px | "
                f"Baseline: {'yes' if state.baseline else 'no'}"
                f"{' | ⏺ recording' if state.recording_active else ''}"
            )

        # Pace to target FPS
        target_dt = 1.0 / max(1, target_fps)
        dt = time.time() - t_last
        if dt < target_dt:
            time.sleep(target_dt - dt)
        t_last = time.time()

except KeyboardInterrupt:
    pass
finally:
    tracker.close()
    cap.release()
