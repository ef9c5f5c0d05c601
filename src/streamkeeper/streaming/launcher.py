"""Spawns ffmpeg as an asyncio subprocess and turns its stderr into process events."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections import deque
from collections.abc import AsyncIterator

from streamkeeper.errors import LaunchError
from streamkeeper.interfaces import ProcessHandle, ProcessLauncher
from streamkeeper.logging_setup import camera_log_context
from streamkeeper.streaming.command import StreamCommand
from streamkeeper.streaming.diagnostics import DiagnosticKind, classify_line, is_start_marker
from streamkeeper.streaming.events import ProcessEvent
from streamkeeper.streaming.utils import _redact_text, _signal_process_group

logger = logging.getLogger(__name__)

_STDERR_LIMIT = 1024 * 1024
_TAIL_LINES = 20


class FfmpegProcessHandle(ProcessHandle):
    """Handle for one spawned transcoder process.

    A reader task owns stderr. It emits one `started` event when the
    transcoder opens its output, `diagnostic`/`failed(decode_anomaly)` events
    per line, and exactly one terminal event once the process has exited.
    """

    def __init__(
        self,
        command: StreamCommand,
        process: asyncio.subprocess.Process,
        *,
        stop_timeout_s: float = 5.0,
    ) -> None:
        self._command = command
        self._process = process
        self._stop_timeout_s = stop_timeout_s
        self._queue: asyncio.Queue[ProcessEvent] = asyncio.Queue()
        self._tail: deque[str] = deque(maxlen=_TAIL_LINES)
        self._started = False
        self._terminate_requested = False
        self._kill_task: asyncio.Task[None] | None = None
        with camera_log_context(command.camera_id):
            self._reader_task = asyncio.create_task(
                self._read_stderr(),
                name=f"ffmpeg-stderr-{command.camera_id}",
            )

    @property
    def camera_id(self) -> str:
        return self._command.camera_id

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def tail(self) -> list[str]:
        """Most recent stderr lines (credentials redacted)."""
        return list(self._tail)

    async def events(self) -> AsyncIterator[ProcessEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return

    def terminate(self) -> None:
        if self._process.returncode is not None or self._terminate_requested:
            return
        self._terminate_requested = True
        if not _signal_process_group(self._process.pid, signal.SIGTERM):
            try:
                self._process.terminate()
            except ProcessLookupError:
                return
        self._kill_task = asyncio.create_task(
            self._kill_after_timeout(),
            name=f"ffmpeg-kill-{self.camera_id}",
        )

    async def wait_closed(self, timeout: float | None = None) -> int | None:
        try:
            await asyncio.wait_for(asyncio.shield(self._reader_task), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        return self._process.returncode

    async def _kill_after_timeout(self) -> None:
        try:
            await asyncio.wait_for(self._process.wait(), timeout=self._stop_timeout_s)
            return
        except asyncio.TimeoutError:
            logger.warning(
                "ffmpeg did not exit after SIGTERM; forcing kill: camera=%s pid=%d",
                self.camera_id,
                self._process.pid,
            )
        if not _signal_process_group(self._process.pid, signal.SIGKILL):
            try:
                self._process.kill()
            except ProcessLookupError:
                return

    async def _read_stderr(self) -> None:
        stream = self._process.stderr
        if stream is not None:
            while True:
                try:
                    raw = await stream.readline()
                except ValueError:
                    # Overlong line; the reader already discarded it.
                    continue
                if not raw:
                    break
                line = _redact_text(raw.decode("utf-8", errors="replace").rstrip())
                if line:
                    self._on_line(line)

        code = await self._process.wait()
        if code == 0:
            self._queue.put_nowait(ProcessEvent.exited(0))
            return
        reason = self._tail[-1] if self._tail else f"ffmpeg exited with code {code}"
        self._queue.put_nowait(ProcessEvent.terminated(code, reason))

    def _on_line(self, line: str) -> None:
        self._tail.append(line)
        kind = classify_line(line)
        if kind == DiagnosticKind.DECODE:
            self._queue.put_nowait(ProcessEvent.decode_anomaly(line))
            return
        if not self._started and is_start_marker(kind):
            self._started = True
            self._queue.put_nowait(ProcessEvent.started())
        self._queue.put_nowait(ProcessEvent.diagnostic(line, kind))


class FfmpegLauncher(ProcessLauncher):
    """Launches ffmpeg processes in their own session so the whole tree can be signalled."""

    def __init__(self, *, stop_timeout_s: float = 5.0) -> None:
        self._stop_timeout_s = stop_timeout_s

    async def launch(self, command: StreamCommand) -> FfmpegProcessHandle:
        try:
            process = await asyncio.create_subprocess_exec(
                *command.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
                limit=_STDERR_LIMIT,
            )
        except OSError as exc:
            raise LaunchError(command.camera_id, exc) from exc

        logger.info(
            "Started ffmpeg: camera=%s pid=%d cmd=%s",
            command.camera_id,
            process.pid,
            command.redacted,
        )
        return FfmpegProcessHandle(command, process, stop_timeout_s=self._stop_timeout_s)
