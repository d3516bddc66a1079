# (baseline-relative thresholds with floors; fixed-pixel fallback when uncalibrated)
from dataclasses import dataclass
from typing import Optional

from core.config import ThresholdConfig
from core.models import Baseline, ClassificationResult, IssueTag, PostureMetrics


@dataclass(frozen=True)
class Thresholds:
    shoulder: float                  # flag above (px)
    head_offset: float               # flag above (px)
    slouch_eye_dist: Optional[float] # flag above (px); None = no depth reference
    lean_eye_dist: Optional[float]   # flag below (px)


def thresholds_for(baseline: Optional[Baseline], cfg: ThresholdConfig,
                   reference_eye_dist: Optional[float] = None) -> Thresholds:
    if baseline is not None:
        # floors keep a near-zero calibration variance from making this hypersensitive
        depth_band = max(cfg.depth_floor_px, baseline.std_eye_dist * cfg.depth_std_multiplier)
        return Thresholds(
            shoulder=baseline.mean_shoulder
            + max(cfg.shoulder_floor_px, baseline.std_shoulder * cfg.lateral_std_multiplier),
            head_offset=baseline.mean_head_offset
            + max(cfg.head_offset_floor_px, baseline.std_head_offset * cfg.lateral_std_multiplier),
            slouch_eye_dist=baseline.mean_eye_dist + depth_band,
            lean_eye_dist=baseline.mean_eye_dist - depth_band,
        )

    slouch = lean = None
    if reference_eye_dist:
        slouch = reference_eye_dist * (1 + cfg.default_depth_change)
        lean = reference_eye_dist * (1 - cfg.default_depth_change)
    return Thresholds(
        shoulder=cfg.default_shoulder_px,
        head_offset=cfg.default_head_offset_px,
        slouch_eye_dist=slouch,
        lean_eye_dist=lean,
    )


def classify(metrics: PostureMetrics, baseline: Optional[Baseline], cfg: ThresholdConfig,
             reference_eye_dist: Optional[float] = None) -> ClassificationResult:
    """
    Every check is independent; the result is the union of triggered tags.
    `reference_eye_dist` only matters without a baseline (rolling live distance).
    """
    th = thresholds_for(baseline, cfg, reference_eye_dist)
    dist = metrics.inter_eye_distance_px

    reasons = set()
    if th.slouch_eye_dist is not None and dist > th.slouch_eye_dist:
        reasons.add(IssueTag.SLOUCHING)       # face closer/larger
    if th.lean_eye_dist is not None and dist < th.lean_eye_dist:
        reasons.add(IssueTag.LEANING_BACK)    # face farther/smaller
    if metrics.shoulder_diff_px > th.shoulder:
        reasons.add(IssueTag.SHOULDERS_UNEVEN)
    if metrics.head_offset_x > th.head_offset:
        reasons.add(IssueTag.HEAD_OFFSET)
    return ClassificationResult(reasons=frozenset(reasons))
