"""Centralized enums for type safety and IDE support."""

from enum import StrEnum


class RtspTransport(StrEnum):
    """RTSP lower transport passed to ffmpeg via `-rtsp_transport`."""

    TCP = "tcp"
    UDP = "udp"
    UDP_MULTICAST = "udp_multicast"
    HTTP = "http"


class VideoMode(StrEnum):
    """How the video track is produced.

    - reencode: decode and re-encode to H.264 (works with any source codec)
    - passthrough: copy the source H.264 stream without re-encoding
    """

    REENCODE = "reencode"
    PASSTHROUGH = "passthrough"


class AudioMode(StrEnum):
    """How the audio track is selected.

    - disabled: output has no audio track
    - auto: first available audio stream
    - manual: explicit audio stream index
    """

    DISABLED = "disabled"
    AUTO = "auto"
    MANUAL = "manual"


class AudioEncodingMode(StrEnum):
    """Whether sample rate and channel layout are forced on the audio encoder."""

    AUTO = "auto"
    FORCE = "force"


class ErrorDetection(StrEnum):
    """Values accepted by ffmpeg's `-err_detect` input option."""

    IGNORE_ERR = "ignore_err"
    AGGRESSIVE = "aggressive"
    CAREFUL = "careful"
    COMPLIANT = "compliant"
    CRCCHECK = "crccheck"
    BITSTREAM = "bitstream"
    BUFFER = "buffer"
    EXPLODE = "explode"


class VsyncMode(StrEnum):
    """Frame-rate synchronisation passed to ffmpeg via `-vsync`."""

    CFR = "cfr"
    VFR = "vfr"
    PASSTHROUGH = "passthrough"
    AUTO = "auto"


class StreamState(StrEnum):
    """Lifecycle state of one camera's stream session.

    The value doubles as the status tag shown to API clients.
    """

    IDLE = "idle"
    STARTING = "starting"
    STREAMING = "streaming"
    STOPPED = "stopped"
    ENDED = "ended"
    ERRORED = "errored"
    RECONNECTING = "reconnecting"
