# Exceptions raised by the posture core (command rejections + bad config)


class PostureError(Exception):
    """Base class for posture-monitor errors."""


class DetectorNotReadyError(PostureError):
    """Raised when a command needs detector output and none has arrived yet."""


class RecordingStateError(PostureError):
    """Raised on recording commands that don't match the current state."""


class ConfigError(PostureError, ValueError):
    """Raised when a configuration value is outside its valid range."""
