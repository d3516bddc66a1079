# (recording -> run-length timeline + per-issue durations + mean metrics)
import logging
from typing import Optional, Sequence

import numpy as np

from core.models import (Baseline, IssueTag, PostureMetrics, PostureType, RecordedSample,
                         SessionSummary, TimelineEvent, sorted_tags)

logger = logging.getLogger(__name__)

MIN_SAMPLES = 2


def _signature(sample: RecordedSample):
    # None = good; otherwise the exact combination of active issues
    return frozenset(sample.reasons) if sample.is_bad else None


def _event(sample: RecordedSample, end_time: float) -> TimelineEvent:
    return TimelineEvent(
        type=PostureType.BAD if sample.is_bad else PostureType.GOOD,
        reasons=sorted_tags(sample.reasons) if sample.is_bad else (),
        start_time=sample.t,
        end_time=end_time,
    )


def build_timeline(samples: Sequence[RecordedSample]):
    """Collapse consecutive samples with the same signature into contiguous events."""
    timeline = []
    if not samples:
        return timeline
    opened = samples[0]
    for prev, nxt in zip(samples, samples[1:]):
        if _signature(nxt) != _signature(prev):
            timeline.append(_event(opened, nxt.t))
            opened = nxt
    # the final sample always closes the last event, even at zero length
    timeline.append(_event(opened, samples[-1].t))
    return timeline


def summarize_session(samples: Sequence[RecordedSample], baseline: Optional[Baseline] = None,
                      min_samples: int = MIN_SAMPLES,
                      created_at: Optional[float] = None) -> Optional[SessionSummary]:
    """
    Aggregate one recording. Returns None when fewer than max(2, min_samples)
    samples were collected (recording too short).
    """
    if len(samples) < max(MIN_SAMPLES, min_samples):
        logger.warning("Recording too short: %d samples (need %d)",
                       len(samples), max(MIN_SAMPLES, min_samples))
        return None

    total_ms = samples[-1].t - samples[0].t
    good_ms = 0.0
    issue_ms = {tag: 0.0 for tag in IssueTag}

    for cur, nxt in zip(samples, samples[1:]):
        dt = nxt.t - cur.t
        if cur.is_bad:
            # buckets overlap: each active issue gets the full interval
            for tag in cur.reasons:
                issue_ms[tag] += dt
        else:
            good_ms += dt

    bad_ms = total_ms - good_ms
    if total_ms > 0:
        good_pct = good_ms / total_ms * 100.0
        bad_pct = bad_ms / total_ms * 100.0
    else:
        good_pct = bad_pct = 0.0

    arr = np.array(
        [(s.metrics.shoulder_diff_px, s.metrics.head_offset_x, s.metrics.inter_eye_distance_px)
         for s in samples],
        dtype=np.float64,
    )
    means = arr.mean(axis=0)

    summary = SessionSummary(
        total_duration_ms=total_ms,
        good_posture_time_ms=good_ms,
        bad_posture_time_ms=bad_ms,
        good_posture_percent=good_pct,
        bad_posture_percent=bad_pct,
        issue_breakdown=issue_ms,
        mean_metrics=PostureMetrics(float(means[0]), float(means[1]), float(means[2])),
        timeline=build_timeline(samples),
        frames=len(samples),
        baseline=baseline,
        created_at=created_at if created_at is not None else samples[-1].t,
    )
    logger.info("Session summarized: %s, %.0f%% good, %d timeline events",
                format_duration(total_ms), good_pct, len(summary.timeline))
    return summary


def format_duration(ms: float) -> str:
    # "< 1s", "45s", "1m 20s"
    if ms < 1000:
        return "< 1s"
    total_s = int(ms / 1000 + 0.5)
    minutes, seconds = divmod(total_s, 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
