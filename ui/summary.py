# Plotly figures for a finished SessionSummary
import plotly.graph_objects as go

from core.models import PostureType
from posture.session import format_duration

COLOR_GOOD = "#2ca02c"
COLOR_BAD = "#d62728"


def split_figure(summary):
    """Single stacked bar: good vs bad share of the session."""
    fig = go.Figure()
    fig.add_trace(go.Bar(y=["Session"], x=[summary.good_posture_percent], name="Good",
                         orientation="h", marker_color=COLOR_GOOD))
    fig.add_trace(go.Bar(y=["Session"], x=[summary.bad_posture_percent], name="Bad",
                         orientation="h", marker_color=COLOR_BAD))
    fig.update_layout(barmode="stack", height=140, margin=dict(l=10, r=10, t=30, b=10),
                      title=f"Total time: {format_duration(summary.total_duration_ms)}",
                      xaxis=dict(range=[0, 100], ticksuffix="%"))
    return fig


def issue_figure(summary):
    ranked = summary.ranked_issues()
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=[ms / 1000.0 for _, ms in ranked],
        y=[tag.value for tag, _ in ranked],
        orientation="h", marker_color=COLOR_BAD,
        text=[format_duration(ms) for _, ms in ranked],
    ))
    fig.update_layout(height=220, margin=dict(l=10, r=10, t=30, b=10),
                      title="Issue breakdown", xaxis_title="seconds",
                      yaxis=dict(autorange="reversed"))
    return fig


def timeline_figure(summary):
    """One horizontal segment per timeline event, offset from the session start."""
    fig = go.Figure()
    if not summary.timeline:
        return fig
    t0 = summary.timeline[0].start_time
    for event in summary.timeline:
        good = event.type is PostureType.GOOD
        label = "Good" if good else ", ".join(tag.value for tag in event.reasons)
        fig.add_trace(go.Bar(
            y=["Posture"], x=[event.duration_ms / 1000.0], base=[(event.start_time - t0) / 1000.0],
            orientation="h", marker_color=COLOR_GOOD if good else COLOR_BAD,
            hovertext=f"{label} ({format_duration(event.duration_ms)})", hoverinfo="text",
            showlegend=False,
        ))
    fig.update_layout(barmode="overlay", height=140, margin=dict(l=10, r=10, t=30, b=10),
                      title="Session log", xaxis_title="seconds")
    return fig
