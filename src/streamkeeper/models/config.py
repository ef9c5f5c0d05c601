"""Configuration models with per-camera override support."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from streamkeeper.models.enums import (
    AudioEncodingMode,
    AudioMode,
    ErrorDetection,
    RtspTransport,
    VideoMode,
    VsyncMode,
)

logger = logging.getLogger(__name__)

CAMERA_ID_PATTERN = r"^[A-Za-z0-9_-]+$"
_UNSET_SENTINELS = {"", "default"}

Resolution = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\d+x\d+$")]

_OVERRIDE_FIELDS = (
    "rtsp_transport",
    "video_mode",
    "audio_mode",
    "audio_stream_index",
    "audio_encoding_mode",
    "video_decoder",
    "error_detection",
    "hls_list_size",
    "max_fps",
    "max_resolution",
    "threads",
    "vsync_mode",
)


def is_unset(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in _UNSET_SENTINELS


class StreamOverrides(BaseModel):
    """Optional stream settings shared by per-camera overrides and global defaults.

    Every field is optional. Unset sentinels (`None`, `""`, `"default"`) and
    values that fail validation are stored as `None` so the resolver falls back
    to the next layer instead of failing.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    rtsp_transport: RtspTransport | None = None
    video_mode: VideoMode | None = None
    audio_mode: AudioMode | None = None
    audio_stream_index: int | None = Field(default=None, ge=0)
    audio_encoding_mode: AudioEncodingMode | None = None
    video_decoder: str | None = None
    error_detection: ErrorDetection | None = None
    hls_list_size: int | None = Field(default=None, ge=1)
    max_fps: float | None = Field(default=None, gt=0)
    max_resolution: Resolution | None = None
    threads: int | None = Field(default=None, ge=0)
    vsync_mode: VsyncMode | None = None

    @field_validator(*_OVERRIDE_FIELDS, mode="wrap")
    @classmethod
    def _fallback_on_invalid(
        cls,
        value: Any,
        handler: ValidatorFunctionWrapHandler,
        info: ValidationInfo,
    ) -> Any:
        if is_unset(value):
            return None
        if isinstance(value, str):
            value = value.strip()
        try:
            return handler(value)
        except ValidationError:
            logger.warning(
                "Ignoring invalid stream setting %s=%r; falling back to default",
                info.field_name,
                value,
            )
            return None


class StreamDefaults(StreamOverrides):
    """Global defaults applied to every camera that does not override a field."""


class CameraConfig(StreamOverrides):
    """Camera identity, source URL and optional stream overrides."""

    id: str = Field(pattern=CAMERA_ID_PATTERN)
    name: str = Field(min_length=1)
    rtsp_url: str | None = None
    rtsp_url_env: str | None = None

    @model_validator(mode="after")
    def _require_rtsp_url(self) -> CameraConfig:
        if not (self.rtsp_url or self.rtsp_url_env):
            raise ValueError("rtsp_url or rtsp_url_env required for camera")
        return self


class ReconnectConfig(BaseModel):
    """Reconnect backoff policy (milliseconds)."""

    model_config = {"extra": "forbid"}

    initial_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=30000, ge=0)
    backoff_multiplier: float = Field(default=1.5, ge=1.0)
    max_attempts: int = Field(
        default=0,
        ge=0,
        description="Max reconnect attempts (0 = retry forever).",
    )
    stop_timeout_s: float = Field(
        default=5.0,
        gt=0.0,
        description="Seconds to wait after SIGTERM before sending SIGKILL.",
    )

    @model_validator(mode="after")
    def _validate_delays(self) -> ReconnectConfig:
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("reconnect.max_delay_ms must be >= reconnect.initial_delay_ms")
        return self


class EncodingConfig(BaseModel):
    """Transcoder settings shared by all cameras."""

    model_config = {"extra": "forbid"}

    ffmpeg_path: str = "ffmpeg"
    video_codec: str = "libx264"
    video_bitrate: str = "2048k"
    video_preset: str = "veryfast"
    crf: int = Field(default=23, ge=0, le=51)
    gop_size: int = Field(default=30, ge=1)
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    audio_channels: int = Field(default=2, ge=1)
    audio_sample_rate: int = Field(default=44100, gt=0)
    hls_time: int = Field(default=2, ge=1, description="Segment duration in seconds.")
    hls_flags: str = "delete_segments+program_date_time+independent_segments"
    socket_timeout_us: int = Field(default=10_000_000, ge=0)
    ffmpeg_flags: list[str] = Field(
        default_factory=list,
        description="Additional ffmpeg output flags appended before the playlist path.",
    )


class ServerConfig(BaseModel):
    """HTTP API server configuration."""

    model_config = {"extra": "forbid"}

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    hls_url_prefix: str = "/hls"
    static_dir: str | None = None

    @field_validator("hls_url_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return "/" + value.strip().strip("/")


class Config(BaseModel):
    """Main configuration."""

    model_config = {"extra": "forbid"}

    version: int = 1
    hls_output_dir: str = "./hls"
    cameras: list[CameraConfig] = Field(min_length=1)
    defaults: StreamDefaults = Field(default_factory=StreamDefaults)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @model_validator(mode="after")
    def _validate_unique_camera_ids(self) -> Config:
        seen: set[str] = set()
        duplicates: list[str] = []
        for camera in self.cameras:
            if camera.id in seen:
                duplicates.append(camera.id)
            seen.add(camera.id)
        if duplicates:
            raise ValueError(f"Duplicate camera ids: {sorted(set(duplicates))}")
        return self
