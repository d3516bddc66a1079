# (baseline capture: fixed raw-sample budget -> per-metric mean + population std)
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from core.models import Baseline, PostureMetrics

logger = logging.getLogger(__name__)


class CalibrationPhase(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CalibrationState:
    phase: CalibrationPhase = CalibrationPhase.IDLE
    samples: Tuple[PostureMetrics, ...] = ()
    previous_baseline: Optional[Baseline] = None  # restored on cancel

    @property
    def collecting(self) -> bool:
        return self.phase is CalibrationPhase.COLLECTING


def compute_baseline(samples: Sequence[PostureMetrics], now: float) -> Baseline:
    if not samples:
        raise ValueError("cannot compute a baseline from zero samples")
    arr = np.array(
        [(s.shoulder_diff_px, s.head_offset_x, s.inter_eye_distance_px) for s in samples],
        dtype=np.float64,
    )
    means = arr.mean(axis=0)
    stds = arr.std(axis=0)  # ddof=0 -> population std
    return Baseline(
        mean_shoulder=float(means[0]), std_shoulder=float(stds[0]),
        mean_head_offset=float(means[1]), std_head_offset=float(stds[1]),
        mean_eye_dist=float(means[2]), std_eye_dist=float(stds[2]),
        created_at=now,
        frame_count=len(samples),
    )


def start_calibration(state: CalibrationState, previous_baseline: Optional[Baseline] = None) -> CalibrationState:
    """Clear the buffer and begin collecting. Restarting mid-run starts over."""
    if state.collecting:
        previous_baseline = state.previous_baseline
    logger.info("Calibration started")
    return CalibrationState(phase=CalibrationPhase.COLLECTING, previous_baseline=previous_baseline)


def cancel_calibration(state: CalibrationState) -> CalibrationState:
    if not state.collecting:
        return state
    logger.info("Calibration cancelled after %d samples", len(state.samples))
    return replace(state, phase=CalibrationPhase.CANCELLED, samples=())


def add_sample(state: CalibrationState, metrics: PostureMetrics, now: float,
               budget: int) -> Tuple[CalibrationState, int, Optional[Baseline]]:
    """
    Append one raw metrics sample. Returns (state, collected_count, baseline);
    baseline is only set on the frame the budget is reached.
    """
    if not state.collecting or metrics is None:
        return state, len(state.samples), None

    samples = (state.samples + (metrics,))[:budget]
    collected = len(samples)
    if collected < budget:
        return replace(state, samples=samples), collected, None

    baseline = compute_baseline(samples, now)
    logger.info(
        "Calibration complete (%d frames): shoulder %.1f±%.1f, head %.1f±%.1f, eyes %.1f±%.1f",
        collected, baseline.mean_shoulder, baseline.std_shoulder,
        baseline.mean_head_offset, baseline.std_head_offset,
        baseline.mean_eye_dist, baseline.std_eye_dist,
    )
    done = CalibrationState(phase=CalibrationPhase.COMPLETE)
    return done, collected, baseline
