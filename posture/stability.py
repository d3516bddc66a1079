# (hysteresis countdowns + flicker detection + pause / hold-to-resume)
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from core.config import StabilityConfig
from core.models import Event, Status

logger = logging.getLogger(__name__)


class Mode(Enum):
    NORMAL = "normal"
    PAUSED = "paused"


@dataclass(frozen=True)
class StabilityState:
    """Cross-frame state of the controller. Timestamps are ms; None = timer not running."""
    mode: Mode = Mode.NORMAL
    bad_since: Optional[float] = None         # raw "bad" streak start
    good_since: Optional[float] = None        # raw "good" streak start
    flip_count: int = 0
    last_flip_time: Optional[float] = None
    paused_since: Optional[float] = None
    resume_hold_since: Optional[float] = None # good streak start while paused
    last_raw_bad: Optional[bool] = None
    confirmed_bad: bool = False               # debounced verdict


@dataclass
class StabilityUpdate:
    status: Status
    progress: float = 0.0                     # countdown ratio in [0, 1]
    events: List[Event] = field(default_factory=list)
    recordable: bool = True


def reset_stability() -> StabilityState:
    return StabilityState()


def _track_flips(state: StabilityState, is_bad: bool, now: float,
                 cfg: StabilityConfig, events: List[Event]) -> StabilityState:
    if state.last_raw_bad is None or is_bad == state.last_raw_bad:
        return replace(state, last_raw_bad=is_bad)

    if state.last_flip_time is not None and now - state.last_flip_time < cfg.flicker_window_ms:
        flip_count = state.flip_count + 1
    else:
        flip_count = 1
    state = replace(state, flip_count=flip_count, last_flip_time=now, last_raw_bad=is_bad)

    if flip_count >= cfg.flicker_count_threshold and state.mode is not Mode.PAUSED:
        logger.info("Posture unstable (%d flips), pausing tracker", flip_count)
        events.append(Event.PAUSED)
        state = replace(state, mode=Mode.PAUSED, paused_since=now, resume_hold_since=None,
                        bad_since=None, good_since=None)
    return state


def update_stability(state: StabilityState, is_bad: bool, now: float,
                     cfg: StabilityConfig) -> Tuple[StabilityState, StabilityUpdate]:
    """One frame step: raw verdict in, debounced status + edge events out."""
    events: List[Event] = []
    state = _track_flips(state, is_bad, now, cfg, events)

    if state.mode is Mode.PAUSED:
        if is_bad:
            state = replace(state, resume_hold_since=None)
            return state, StabilityUpdate(Status.PAUSED, 0.0, events, recordable=False)

        hold_start = state.resume_hold_since if state.resume_hold_since is not None else now
        elapsed = now - hold_start
        if elapsed < cfg.resume_hold_ms:
            state = replace(state, resume_hold_since=hold_start)
            progress = min(elapsed / cfg.resume_hold_ms, 1.0) if cfg.resume_hold_ms else 1.0
            return state, StabilityUpdate(Status.PAUSED, progress, events, recordable=False)

        logger.info("Posture stable again, resuming tracker")
        events.append(Event.RESUMED)
        state = replace(state, mode=Mode.NORMAL, paused_since=None, resume_hold_since=None,
                        flip_count=0, last_flip_time=None)

    # hysteresis
    if is_bad:
        bad_since = state.bad_since if state.bad_since is not None else now
        elapsed = now - bad_since
        progress = min(elapsed / cfg.bad_confirm_ms, 1.0) if cfg.bad_confirm_ms else 1.0
        state = replace(state, bad_since=bad_since, good_since=None)
        if state.confirmed_bad:
            # interrupted recovery: still bad, nothing to re-confirm
            return state, StabilityUpdate(Status.BAD, 1.0, events)
        if elapsed < cfg.bad_confirm_ms:
            return state, StabilityUpdate(Status.TRANSITIONING_BAD, progress, events)
        if not state.confirmed_bad:
            logger.debug("Bad posture confirmed")
            events.append(Event.BAD_POSTURE)
            state = replace(state, confirmed_bad=True)
        return state, StabilityUpdate(Status.BAD, progress, events)

    good_since = state.good_since if state.good_since is not None else now
    state = replace(state, good_since=good_since, bad_since=None)
    if not state.confirmed_bad:
        return state, StabilityUpdate(Status.GOOD, 0.0, events)

    elapsed = now - good_since
    if elapsed < cfg.good_confirm_ms:
        progress = min(elapsed / cfg.good_confirm_ms, 1.0) if cfg.good_confirm_ms else 1.0
        return state, StabilityUpdate(Status.TRANSITIONING_GOOD, progress, events)
    logger.debug("Good posture recovered")
    events.append(Event.RECOVERED)
    state = replace(state, confirmed_bad=False)
    return state, StabilityUpdate(Status.GOOD, 0.0, events)
