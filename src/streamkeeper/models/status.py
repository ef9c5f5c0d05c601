"""Camera status snapshots published by the stream supervisor."""

from __future__ import annotations

from dataclasses import dataclass

from streamkeeper.models.enums import StreamState


@dataclass(frozen=True, slots=True)
class StatusRecord:
    """Observable state of one camera, projected from its stream session."""

    camera_id: str
    camera_name: str
    is_streaming: bool
    reconnect_attempts: int
    status: StreamState
    message: str = ""


@dataclass(frozen=True, slots=True)
class CameraSummary:
    """Public camera listing entry (never carries credentials)."""

    id: str
    name: str
