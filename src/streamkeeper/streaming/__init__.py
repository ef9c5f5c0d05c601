"""Stream supervision: command building, process launch, reconnect and HLS serving."""

from streamkeeper.streaming.backoff import BackoffScheduler, compute_delay_ms
from streamkeeper.streaming.command import StreamCommand, build_ffmpeg_command
from streamkeeper.streaming.diagnostics import DiagnosticKind, classify_line
from streamkeeper.streaming.events import FailureKind, ProcessEvent, ProcessEventType
from streamkeeper.streaming.launcher import FfmpegLauncher, FfmpegProcessHandle
from streamkeeper.streaming.manifest import MEDIA_TYPE, ManifestProxy, placeholder_playlist
from streamkeeper.streaming.segments import SegmentDirectoryManager
from streamkeeper.streaming.status import StatusRegistry
from streamkeeper.streaming.supervisor import StreamSession, StreamSupervisor

__all__ = [
    "MEDIA_TYPE",
    "BackoffScheduler",
    "DiagnosticKind",
    "FailureKind",
    "FfmpegLauncher",
    "FfmpegProcessHandle",
    "ManifestProxy",
    "ProcessEvent",
    "ProcessEventType",
    "SegmentDirectoryManager",
    "StatusRegistry",
    "StreamCommand",
    "StreamSession",
    "StreamSupervisor",
    "build_ffmpeg_command",
    "classify_line",
    "compute_delay_ms",
    "placeholder_playlist",
]
