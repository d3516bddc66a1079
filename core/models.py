# Value types shared by the posture pipeline (landmarks, metrics, baseline, session)
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

# MediaPipe Pose indices
NOSE, L_EYE, R_EYE, L_SHOULDER, R_SHOULDER = 0, 2, 5, 11, 12
TRACKED_POINTS = (NOSE, L_EYE, R_EYE, L_SHOULDER, R_SHOULDER)


@dataclass(frozen=True)
class Landmark:
    """One normalized body point (x, y in 0..1 of the frame; z relative depth)."""
    x: float
    y: float
    z: float = 0.0


class IssueTag(Enum):
    SLOUCHING = "Slouching"
    LEANING_BACK = "Leaning Back"
    SHOULDERS_UNEVEN = "Shoulders Uneven"
    HEAD_OFFSET = "Head Offset"

    @property
    def hint(self) -> str:
        return _HINTS[self]

    @property
    def label(self) -> str:
        return f"{self.value}: {self.hint}"


_HINTS = {
    IssueTag.SLOUCHING: "Move back from screen",
    IssueTag.LEANING_BACK: "Move closer",
    IssueTag.SHOULDERS_UNEVEN: "Level them",
    IssueTag.HEAD_OFFSET: "Center position",
}

# canonical order = declaration order
_TAG_ORDER = {tag: i for i, tag in enumerate(IssueTag)}


def sorted_tags(tags: Iterable[IssueTag]) -> Tuple[IssueTag, ...]:
    return tuple(sorted(set(tags), key=_TAG_ORDER.__getitem__))


class PostureType(Enum):
    GOOD = "Good"
    BAD = "Bad"


class Status(Enum):
    """Live status exposed to the presentation layer."""
    DETECTING = "detecting"
    NO_POSE = "no_pose"
    CALIBRATING = "calibrating"
    GOOD = "good"
    TRANSITIONING_BAD = "transitioning_bad"
    TRANSITIONING_GOOD = "transitioning_good"
    BAD = "bad"
    PAUSED = "paused"


class Event(Enum):
    """Edge-triggered notifications (fired once per transition, never per frame)."""
    BAD_POSTURE = "bad_posture"
    RECOVERED = "recovered"
    PAUSED = "paused"
    RESUMED = "resumed"
    CALIBRATION_STARTED = "calibration_started"
    CALIBRATION_COMPLETE = "calibration_complete"
    CALIBRATION_CANCELLED = "calibration_cancelled"
    RECORDING_STARTED = "recording_started"
    RECORDING_STOPPED = "recording_stopped"


@dataclass(frozen=True)
class PostureMetrics:
    shoulder_diff_px: float      # vertical gap between shoulders (px)
    head_offset_x: float         # nose distance from shoulder midpoint (px)
    inter_eye_distance_px: float # eye-to-eye distance, proxy for camera distance (px)

    def to_dict(self) -> Dict[str, float]:
        return {
            "shoulder_diff_px": self.shoulder_diff_px,
            "head_offset_x": self.head_offset_x,
            "inter_eye_distance_px": self.inter_eye_distance_px,
        }


@dataclass(frozen=True)
class Baseline:
    """Per-user reference captured while holding good posture. Replaced, never merged."""
    mean_shoulder: float
    std_shoulder: float
    mean_head_offset: float
    std_head_offset: float
    mean_eye_dist: float
    std_eye_dist: float
    created_at: float
    frame_count: int

    def __post_init__(self):
        for name in ("std_shoulder", "std_head_offset", "std_eye_dist"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean_shoulder": self.mean_shoulder,
            "std_shoulder": self.std_shoulder,
            "mean_head_offset": self.mean_head_offset,
            "std_head_offset": self.std_head_offset,
            "mean_eye_dist": self.mean_eye_dist,
            "std_eye_dist": self.std_eye_dist,
            "created_at": self.created_at,
            "frame_count": self.frame_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Baseline":
        return cls(
            mean_shoulder=float(data["mean_shoulder"]),
            std_shoulder=float(data["std_shoulder"]),
            mean_head_offset=float(data["mean_head_offset"]),
            std_head_offset=float(data["std_head_offset"]),
            mean_eye_dist=float(data["mean_eye_dist"]),
            std_eye_dist=float(data["std_eye_dist"]),
            created_at=float(data["created_at"]),
            frame_count=int(data["frame_count"]),
        )


@dataclass(frozen=True)
class ClassificationResult:
    reasons: FrozenSet[IssueTag] = frozenset()

    @property
    def is_bad(self) -> bool:
        return bool(self.reasons)


@dataclass(frozen=True)
class RecordedSample:
    t: float
    metrics: PostureMetrics
    is_bad: bool
    reasons: FrozenSet[IssueTag] = frozenset()


@dataclass(frozen=True)
class TimelineEvent:
    type: PostureType
    reasons: Tuple[IssueTag, ...]
    start_time: float
    end_time: float

    @property
    def duration_ms(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "reasons": [r.value for r in self.reasons],
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
        }


@dataclass
class SessionSummary:
    total_duration_ms: float
    good_posture_time_ms: float
    bad_posture_time_ms: float
    good_posture_percent: float
    bad_posture_percent: float
    issue_breakdown: Dict[IssueTag, float]
    mean_metrics: PostureMetrics
    timeline: List[TimelineEvent]
    frames: int
    baseline: Optional[Baseline] = None
    created_at: Optional[float] = None

    def ranked_issues(self) -> List[Tuple[IssueTag, float]]:
        """Issues that actually occurred, longest first."""
        ranked = [(tag, ms) for tag, ms in self.issue_breakdown.items() if ms > 0]
        return sorted(ranked, key=lambda item: item[1], reverse=True)

    def to_dict(self) -> Dict[str, Any]:
        """Plain document handed to the storage collaborator."""
        return {
            "created_at": self.created_at,
            "duration_ms": self.total_duration_ms,
            "frames": self.frames,
            "baseline": self.baseline.to_dict() if self.baseline else None,
            "mean_metrics": self.mean_metrics.to_dict(),
            "summary": {
                "good_posture_time_ms": self.good_posture_time_ms,
                "bad_posture_time_ms": self.bad_posture_time_ms,
                "good_posture_percent": self.good_posture_percent,
                "bad_posture_percent": self.bad_posture_percent,
                "issue_breakdown": {tag.value: ms for tag, ms in self.issue_breakdown.items()},
            },
            "timeline": [event.to_dict() for event in self.timeline],
        }


@dataclass
class FrameOutput:
    """What one processed frame exposes to the front end."""
    status: Status
    progress: float = 0.0
    reasons: Tuple[IssueTag, ...] = ()
    metrics: Optional[PostureMetrics] = None
    events: List[Event] = field(default_factory=list)
    baseline: Optional[Baseline] = None
