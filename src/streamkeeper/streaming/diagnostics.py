"""Classification of transcoder stderr output."""

from __future__ import annotations

import re
from enum import StrEnum


class DiagnosticKind(StrEnum):
    """What a single transcoder stderr line tells us."""

    INFO = "info"
    STREAM_INFO = "stream_info"
    CONNECTED = "connected"
    CONNECTIVITY = "connectivity"
    DECODE = "decode"
    OUTPUT_STARTED = "output_started"
    SEGMENT = "segment"


_DECODE_MARKERS = (
    "error while decoding",
    "invalid data found",
    "decode_slice_header",
    "concealing",
    "corrupt",
    "non-existing pps",
    "no frame!",
)
_CONNECTIVITY_MARKERS = (
    "connection refused",
    "connection timed out",
    "connection reset",
    "timed out",
    "timeout",
    "no route to host",
    "network is unreachable",
    "failed to connect",
    "could not find codec parameters",
    "method describe failed",
    "method setup failed",
    "401 unauthorized",
    "404 not found",
    "end of file",
    "broken pipe",
)
_SEGMENT_RE = re.compile(r"Opening '[^']+\.(?:ts|m4s)' for writing")
_OUTPUT_RE = re.compile(r"^\s*Output #0\b")
_INPUT_RE = re.compile(r"^\s*Input #0\b.*\bfrom\b", re.IGNORECASE)
_STREAM_RE = re.compile(r"^\s*Stream #\d+:\d+.*\b(?:Video|Audio):", re.IGNORECASE)


def classify_line(line: str) -> DiagnosticKind:
    """Return the diagnostic kind of one stderr line.

    Decode complaints win over connectivity markers because ffmpeg often
    prefixes decode errors with the input URL.
    """
    if _SEGMENT_RE.search(line):
        return DiagnosticKind.SEGMENT
    if _OUTPUT_RE.search(line):
        return DiagnosticKind.OUTPUT_STARTED

    lowered = line.lower()
    if any(marker in lowered for marker in _DECODE_MARKERS):
        return DiagnosticKind.DECODE
    if "hevc" in lowered and "error" in lowered:
        return DiagnosticKind.DECODE
    if any(marker in lowered for marker in _CONNECTIVITY_MARKERS):
        return DiagnosticKind.CONNECTIVITY
    if _INPUT_RE.search(line):
        return DiagnosticKind.CONNECTED
    if _STREAM_RE.search(line):
        return DiagnosticKind.STREAM_INFO
    return DiagnosticKind.INFO


def is_start_marker(kind: DiagnosticKind) -> bool:
    """True when the transcoder has opened its output (stream is live)."""
    return kind in (DiagnosticKind.OUTPUT_STARTED, DiagnosticKind.SEGMENT)
