"""Build the ffmpeg RTSP -> HLS command line for one camera."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from streamkeeper.config.resolver import EffectiveConfig
from streamkeeper.models.config import EncodingConfig
from streamkeeper.models.enums import AudioEncodingMode, AudioMode, VideoMode
from streamkeeper.streaming.utils import _format_cmd, _redact_rtsp_url

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%d.ts"
_REQUIRED_HLS_FLAGS = ("append_list", "delete_segments")


@dataclass(frozen=True, slots=True)
class StreamCommand:
    """Fully built transcoder invocation."""

    camera_id: str
    argv: tuple[str, ...]
    playlist_path: Path
    segment_pattern: Path
    rtsp_url: str

    @property
    def redacted(self) -> str:
        """Printable command line with the camera credentials masked."""
        safe_url = _redact_rtsp_url(self.rtsp_url)
        return _format_cmd([safe_url if arg == self.rtsp_url else arg for arg in self.argv])


def build_ffmpeg_command(
    effective: EffectiveConfig,
    encoding: EncodingConfig,
    output_dir: Path,
) -> StreamCommand:
    """Translate an effective camera config into an ffmpeg argv."""
    playlist_path = output_dir / PLAYLIST_NAME
    segment_pattern = output_dir / SEGMENT_PATTERN

    argv: list[str] = [encoding.ffmpeg_path, "-hide_banner", "-nostdin", "-nostats"]
    argv += _input_args(effective, encoding)
    argv += ["-map", "0:v:0"]
    argv += _audio_args(effective, encoding)
    argv += _video_args(effective, encoding)
    argv += _hls_args(effective, encoding, segment_pattern)
    argv += list(encoding.ffmpeg_flags)
    argv.append(str(playlist_path))

    return StreamCommand(
        camera_id=effective.camera_id,
        argv=tuple(argv),
        playlist_path=playlist_path,
        segment_pattern=segment_pattern,
        rtsp_url=effective.rtsp_url,
    )


def _input_args(effective: EffectiveConfig, encoding: EncodingConfig) -> list[str]:
    args = [
        "-rtsp_transport",
        str(effective.rtsp_transport),
    ]
    if encoding.socket_timeout_us > 0:
        args += ["-timeout", str(encoding.socket_timeout_us)]
    args += [
        "-buffer_size",
        "4096000",
        "-thread_queue_size",
        "2048",
        "-analyzeduration",
        "5000000",
        "-probesize",
        "5000000",
        "-fflags",
        "+genpts+discardcorrupt+igndts",
        "-max_error_rate",
        "1.0",
    ]
    if effective.video_decoder:
        args += ["-c:v", effective.video_decoder]
    args += ["-err_detect", str(effective.error_detection)]
    args += ["-i", effective.rtsp_url]
    return args


def _audio_args(effective: EffectiveConfig, encoding: EncodingConfig) -> list[str]:
    if effective.audio_mode == AudioMode.DISABLED:
        return ["-an"]

    if effective.audio_mode == AudioMode.MANUAL:
        args = ["-map", f"0:a:{effective.audio_stream_index}?"]
    else:
        args = ["-map", "0:a?"]

    args += ["-c:a", encoding.audio_codec, "-b:a", encoding.audio_bitrate]
    if effective.audio_encoding_mode == AudioEncodingMode.FORCE:
        args += [
            "-ac",
            str(encoding.audio_channels),
            "-ar",
            str(encoding.audio_sample_rate),
            "-af",
            "aresample=resampler=soxr",
        ]
    return args


def _video_args(effective: EffectiveConfig, encoding: EncodingConfig) -> list[str]:
    if effective.video_mode == VideoMode.PASSTHROUGH:
        return [
            "-c:v",
            "copy",
            "-bsf:v",
            "h264_mp4toannexb",
            "-avoid_negative_ts",
            "make_zero",
        ]

    args = [
        "-c:v",
        encoding.video_codec,
        "-b:v",
        encoding.video_bitrate,
        "-preset",
        encoding.video_preset,
        "-crf",
        str(encoding.crf),
        "-g",
        str(encoding.gop_size),
        "-sc_threshold",
        "0",
        "-pix_fmt",
        "yuv420p",
        "-profile:v",
        "baseline",
        "-level",
        "3.1",
        "-threads",
        str(effective.threads),
        "-force_key_frames",
        f"expr:gte(n,n_forced*{encoding.gop_size})",
        "-vsync",
        str(effective.vsync_mode),
    ]

    filters: list[str] = []
    if effective.max_fps is not None:
        filters.append(f"fps={effective.max_fps:g}")
    if effective.max_resolution is not None:
        width, height = effective.max_resolution
        filters.append(
            f"scale=w='min({width},iw)':h='min({height},ih)':force_original_aspect_ratio=decrease"
        )
        # libx264 with yuv420p requires even dimensions
        filters.append("scale=trunc(iw/2)*2:trunc(ih/2)*2")
    if filters:
        args += ["-vf", ",".join(filters)]

    args += [
        "-colorspace",
        "bt709",
        "-color_primaries",
        "bt709",
        "-color_trc",
        "bt709",
        "-flags",
        "+global_header",
        "-avoid_negative_ts",
        "make_zero",
    ]
    return args


def _hls_flags(configured: str) -> str:
    flags = [flag for flag in configured.split("+") if flag]
    for required in _REQUIRED_HLS_FLAGS:
        if required not in flags:
            flags.append(required)
    return "+".join(flags)


def _hls_args(
    effective: EffectiveConfig,
    encoding: EncodingConfig,
    segment_pattern: Path,
) -> list[str]:
    return [
        "-f",
        "hls",
        "-hls_time",
        str(encoding.hls_time),
        "-hls_list_size",
        str(effective.hls_list_size),
        "-hls_flags",
        _hls_flags(encoding.hls_flags),
        "-hls_start_number_source",
        "generic",
        "-start_number",
        "0",
        "-hls_segment_filename",
        str(segment_pattern),
    ]
