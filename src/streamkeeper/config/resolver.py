"""Merge per-camera overrides with global defaults into an effective config."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from streamkeeper.models.config import CameraConfig, StreamDefaults, is_unset
from streamkeeper.models.enums import (
    AudioEncodingMode,
    AudioMode,
    ErrorDetection,
    RtspTransport,
    VideoMode,
    VsyncMode,
)

T = TypeVar("T")

FALLBACK_RTSP_TRANSPORT = RtspTransport.TCP
FALLBACK_VIDEO_MODE = VideoMode.REENCODE
FALLBACK_AUDIO_MODE = AudioMode.AUTO
FALLBACK_AUDIO_STREAM_INDEX = 0
FALLBACK_AUDIO_ENCODING_MODE = AudioEncodingMode.AUTO
FALLBACK_ERROR_DETECTION = ErrorDetection.AGGRESSIVE
FALLBACK_HLS_LIST_SIZE = 10
FALLBACK_THREADS = 0
FALLBACK_VSYNC_MODE = VsyncMode.CFR


@dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Camera settings with every optional field resolved."""

    camera_id: str
    name: str
    rtsp_url: str
    rtsp_transport: RtspTransport
    video_mode: VideoMode
    audio_mode: AudioMode
    audio_stream_index: int
    audio_encoding_mode: AudioEncodingMode
    video_decoder: str | None
    error_detection: ErrorDetection
    hls_list_size: int
    max_fps: float | None
    max_resolution: tuple[int, int] | None
    threads: int
    vsync_mode: VsyncMode


def _pick(camera_value: T | None, default_value: T | None, fallback: T) -> T:
    if not is_unset(camera_value):
        return camera_value  # type: ignore[return-value]
    if not is_unset(default_value):
        return default_value  # type: ignore[return-value]
    return fallback


def _parse_resolution(value: str | None) -> tuple[int, int] | None:
    if value is None:
        return None
    width, height = value.lower().split("x", 1)
    return int(width), int(height)


def resolve(camera: CameraConfig, defaults: StreamDefaults) -> EffectiveConfig:
    """Resolve camera value, then global default, then built-in fallback.

    Never fails for optional fields: invalid values were already dropped to
    `None` during model validation. The camera must carry a resolved
    `rtsp_url`; the loader guarantees this.
    """
    if not camera.rtsp_url:
        raise ValueError(f"Camera {camera.id} has no resolved rtsp_url")

    return EffectiveConfig(
        camera_id=camera.id,
        name=camera.name,
        rtsp_url=camera.rtsp_url,
        rtsp_transport=_pick(
            camera.rtsp_transport, defaults.rtsp_transport, FALLBACK_RTSP_TRANSPORT
        ),
        video_mode=_pick(camera.video_mode, defaults.video_mode, FALLBACK_VIDEO_MODE),
        audio_mode=_pick(camera.audio_mode, defaults.audio_mode, FALLBACK_AUDIO_MODE),
        audio_stream_index=_pick(
            camera.audio_stream_index,
            defaults.audio_stream_index,
            FALLBACK_AUDIO_STREAM_INDEX,
        ),
        audio_encoding_mode=_pick(
            camera.audio_encoding_mode,
            defaults.audio_encoding_mode,
            FALLBACK_AUDIO_ENCODING_MODE,
        ),
        video_decoder=_pick(camera.video_decoder, defaults.video_decoder, None),
        error_detection=_pick(
            camera.error_detection, defaults.error_detection, FALLBACK_ERROR_DETECTION
        ),
        hls_list_size=_pick(camera.hls_list_size, defaults.hls_list_size, FALLBACK_HLS_LIST_SIZE),
        max_fps=_pick(camera.max_fps, defaults.max_fps, None),
        max_resolution=_parse_resolution(
            _pick(camera.max_resolution, defaults.max_resolution, None)
        ),
        threads=_pick(camera.threads, defaults.threads, FALLBACK_THREADS),
        vsync_mode=_pick(camera.vsync_mode, defaults.vsync_mode, FALLBACK_VSYNC_MODE),
    )
