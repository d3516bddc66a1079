# Config (safe defaults + merge with YAML) -> named, typed sections
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from core.errors import ConfigError

DEFAULT_CFG = {
    "video": {"source": 0, "fps": 30, "width": 640, "height": 480},
    "smoothing": {"ema_alpha": 0.2},
    "calibration": {"sample_budget": 30},
    "thresholds": {
        "shoulder_floor_px": 12.0,
        "head_offset_floor_px": 18.0,
        "lateral_std_multiplier": 1.5,
        "depth_floor_px": 7.0,
        "depth_std_multiplier": 2.0,
        "default_shoulder_px": 20.0,
        "default_head_offset_px": 30.0,
        "default_depth_change": 0.05,
        "fallback_window": 30,
    },
    "stability": {
        "bad_confirm_ms": 3000,
        "good_confirm_ms": 1500,
        "flicker_window_ms": 1500,
        "flicker_count_threshold": 4,
        "resume_hold_ms": 2000,
    },
    "session": {"min_samples": 10},
    "logging": {"level": "INFO"},
}

DEFAULT_PATH = Path("configs/default.yaml")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _section(name, kind, values):
    """Build one typed section, casting each value to its field type."""
    if not isinstance(values, dict):
        raise ConfigError(f"config section '{name}' must be a mapping, got {type(values).__name__}")
    types = {f.name: f.type for f in fields(kind)}
    unknown = set(values) - set(types)
    if unknown:
        raise ConfigError(f"unknown keys in '{name}': {sorted(unknown)}")
    try:
        return kind(**{key: types[key](value) for key, value in values.items()})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"bad value in '{name}': {exc}") from exc


@dataclass(frozen=True)
class VideoConfig:
    source: int = 0
    fps: int = 30
    width: int = 640         # px
    height: int = 480        # px


@dataclass(frozen=True)
class SmoothingConfig:
    ema_alpha: float = 0.2   # weight of the newest frame, (0, 1]


@dataclass(frozen=True)
class CalibrationConfig:
    sample_budget: int = 30  # raw metric samples per baseline


@dataclass(frozen=True)
class ThresholdConfig:
    shoulder_floor_px: float = 12.0
    head_offset_floor_px: float = 18.0
    lateral_std_multiplier: float = 1.5
    depth_floor_px: float = 7.0
    depth_std_multiplier: float = 2.0
    default_shoulder_px: float = 20.0
    default_head_offset_px: float = 30.0
    default_depth_change: float = 0.05   # fraction of the live reference distance
    fallback_window: int = 30            # frames in the no-baseline depth reference


@dataclass(frozen=True)
class StabilityConfig:
    bad_confirm_ms: float = 3000
    good_confirm_ms: float = 1500
    flicker_window_ms: float = 1500
    flicker_count_threshold: int = 4
    resume_hold_ms: float = 2000


@dataclass(frozen=True)
class SessionConfig:
    min_samples: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class PostureConfig:
    video: VideoConfig = field(default_factory=VideoConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, cfg: Dict[str, Dict[str, Any]]) -> "PostureConfig":
        built = cls(**{f.name: _section(f.name, f.type, cfg.get(f.name, {})) for f in fields(cls)})
        built.validate()
        return built

    def validate(self):
        alpha = self.smoothing.ema_alpha
        if not 0.0 < alpha <= 1.0:
            raise ConfigError(f"smoothing.ema_alpha must be in (0, 1], got {alpha}")
        if self.calibration.sample_budget < 1:
            raise ConfigError("calibration.sample_budget must be >= 1")
        if self.thresholds.fallback_window < 1:
            raise ConfigError("thresholds.fallback_window must be >= 1")
        if self.stability.flicker_count_threshold < 1:
            raise ConfigError("stability.flicker_count_threshold must be >= 1")
        for name in ("bad_confirm_ms", "good_confirm_ms", "flicker_window_ms", "resume_hold_ms"):
            if getattr(self.stability, name) < 0:
                raise ConfigError(f"stability.{name} must be >= 0")


def merge_config(user_cfg: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    user_cfg = user_cfg or {}
    if not isinstance(user_cfg, dict):
        raise ConfigError(f"config root must be a mapping, got {type(user_cfg).__name__}")
    unknown = set(user_cfg) - set(DEFAULT_CFG)
    if unknown:
        raise ConfigError(f"unknown config sections: {sorted(unknown)}")
    for k, section in user_cfg.items():
        if section is not None and not isinstance(section, dict):
            raise ConfigError(f"config section '{k}' must be a mapping, got {type(section).__name__}")
    # shallow merge per top-level key
    return {k: (DEFAULT_CFG[k] | (user_cfg.get(k) or {})) for k in DEFAULT_CFG.keys()}


def load_config(path: Optional[Union[str, Path]] = None) -> PostureConfig:
    """Defaults, overridden by the YAML file when it exists."""
    cfg_path = Path(path) if path is not None else DEFAULT_PATH
    user_cfg = {}
    if cfg_path.exists():
        try:
            user_cfg = yaml.safe_load(cfg_path.read_text())
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {cfg_path}: {exc}") from exc
    return PostureConfig.from_dict(merge_config(user_cfg))


def configure_logging(cfg: PostureConfig):
    logging.basicConfig(level=cfg.logging.level.upper(), format=LOG_FORMAT)
