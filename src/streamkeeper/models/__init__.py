"""streamkeeper data models."""

from streamkeeper.models.config import (
    CameraConfig,
    Config,
    EncodingConfig,
    ReconnectConfig,
    ServerConfig,
    StreamDefaults,
    StreamOverrides,
)
from streamkeeper.models.enums import (
    AudioEncodingMode,
    AudioMode,
    ErrorDetection,
    RtspTransport,
    StreamState,
    VideoMode,
    VsyncMode,
)
from streamkeeper.models.status import CameraSummary, StatusRecord

__all__ = [
    "AudioEncodingMode",
    "AudioMode",
    "CameraConfig",
    "CameraSummary",
    "Config",
    "EncodingConfig",
    "ErrorDetection",
    "ReconnectConfig",
    "RtspTransport",
    "ServerConfig",
    "StatusRecord",
    "StreamDefaults",
    "StreamOverrides",
    "StreamState",
    "VideoMode",
    "VsyncMode",
]
