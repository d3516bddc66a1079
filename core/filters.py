# EMA smoothing: scalar helper + per-landmark filter
from typing import Optional, Sequence, List

from core.models import Landmark

LandmarkList = Sequence[Optional[Landmark]]


def ema(new_val, prev, alpha):
    # simple EMA with None-handling
    if new_val is None:
        return prev
    if prev is None:
        return new_val
    return alpha * new_val + (1 - alpha) * prev


def smooth_landmarks(previous: Optional[LandmarkList], raw: Optional[LandmarkList],
                     alpha: float) -> Optional[List[Optional[Landmark]]]:
    """
    One EMA step over a landmark list: S_t = alpha * Y_t + (1 - alpha) * S_{t-1}.

    Returns None when `raw` is None/empty (pose lost), which also drops the
    filter memory. An index without a previous value passes through raw, and a
    missing raw entry stays missing.
    """
    if not raw:
        return None

    smoothed = []
    for i, current in enumerate(raw):
        prev = previous[i] if previous is not None and i < len(previous) else None
        if current is None:
            smoothed.append(None)
        elif prev is None:
            smoothed.append(current)
        else:
            smoothed.append(Landmark(
                x=alpha * current.x + (1 - alpha) * prev.x,
                y=alpha * current.y + (1 - alpha) * prev.y,
                z=alpha * (current.z or 0.0) + (1 - alpha) * (prev.z or 0.0),
            ))
    return smoothed
