"""Typed events emitted by a running transcoder process."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from streamkeeper.streaming.diagnostics import DiagnosticKind


class ProcessEventType(StrEnum):
    """Process-to-supervisor event type."""

    STARTED = "started"
    DIAGNOSTIC = "diagnostic"
    FAILED = "failed"
    EXITED = "exited"


class FailureKind(StrEnum):
    """Why a `failed` event was emitted.

    Only `decode_anomaly` is non-fatal; the process keeps running.
    """

    DECODE_ANOMALY = "decode_anomaly"
    TERMINATED = "terminated"


@dataclass(frozen=True, slots=True)
class ProcessEvent:
    type: ProcessEventType
    line: str | None = None
    kind: DiagnosticKind | None = None
    failure: FailureKind | None = None
    code: int | None = None
    reason: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.type == ProcessEventType.FAILED and self.failure != FailureKind.DECODE_ANOMALY

    @property
    def is_terminal(self) -> bool:
        return self.type == ProcessEventType.EXITED or self.is_fatal

    @classmethod
    def started(cls) -> ProcessEvent:
        return cls(type=ProcessEventType.STARTED)

    @classmethod
    def diagnostic(cls, line: str, kind: DiagnosticKind) -> ProcessEvent:
        return cls(type=ProcessEventType.DIAGNOSTIC, line=line, kind=kind)

    @classmethod
    def decode_anomaly(cls, line: str) -> ProcessEvent:
        return cls(
            type=ProcessEventType.FAILED,
            line=line,
            kind=DiagnosticKind.DECODE,
            failure=FailureKind.DECODE_ANOMALY,
            reason=line,
        )

    @classmethod
    def terminated(cls, code: int | None, reason: str) -> ProcessEvent:
        return cls(
            type=ProcessEventType.FAILED,
            failure=FailureKind.TERMINATED,
            code=code,
            reason=reason,
        )

    @classmethod
    def exited(cls, code: int = 0) -> ProcessEvent:
        return cls(type=ProcessEventType.EXITED, code=code)
