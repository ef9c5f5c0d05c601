"""Per-camera stream supervision: launch, observe, reconnect, stop."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from streamkeeper.config.loader import ConfigError, ConfigErrorCode
from streamkeeper.config.resolver import resolve
from streamkeeper.errors import CameraNotFoundError
from streamkeeper.interfaces import ProcessHandle, ProcessLauncher, Shutdownable
from streamkeeper.logging_setup import camera_log_context
from streamkeeper.models.config import CameraConfig, Config
from streamkeeper.models.enums import StreamState
from streamkeeper.models.status import CameraSummary, StatusRecord
from streamkeeper.streaming.backoff import BackoffScheduler
from streamkeeper.streaming.command import build_ffmpeg_command
from streamkeeper.streaming.diagnostics import DiagnosticKind
from streamkeeper.streaming.events import FailureKind, ProcessEvent, ProcessEventType
from streamkeeper.streaming.segments import SegmentDirectoryManager
from streamkeeper.streaming.status import StatusRegistry

logger = logging.getLogger(__name__)

_ACTIVE_STATES = frozenset({StreamState.STARTING, StreamState.STREAMING})
_RECONNECTABLE_STATES = frozenset({StreamState.ERRORED, StreamState.ENDED})
EXHAUSTED_MESSAGE = "Reconnect attempts exhausted"


@dataclass(slots=True)
class StreamSession:
    """Mutable lifecycle state for one camera. Owned by `StreamSupervisor`."""

    camera: CameraConfig
    state: StreamState = StreamState.IDLE
    process: ProcessHandle | None = field(default=None, repr=False)
    reconnect_attempts: int = 0
    message: str = ""
    started_at: float | None = None
    anomaly_count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    event_task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def camera_id(self) -> str:
        return self.camera.id

    def snapshot(self) -> StatusRecord:
        return StatusRecord(
            camera_id=self.camera.id,
            camera_name=self.camera.name,
            is_streaming=self.state == StreamState.STREAMING,
            reconnect_attempts=self.reconnect_attempts,
            status=self.state,
            message=self.message,
        )


class StreamSupervisor(Shutdownable):
    """Keeps one transcoder per camera alive until explicitly stopped.

    Every lifecycle operation on a camera (start, stop, reconnect timer,
    process event) runs under that camera's lock. Cameras never share a lock,
    so a slow camera cannot hold up another.
    """

    def __init__(
        self,
        config: Config,
        *,
        registry: StatusRegistry,
        directories: SegmentDirectoryManager,
        launcher: ProcessLauncher,
        scheduler: BackoffScheduler,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        missing = [camera.id for camera in config.cameras if not camera.rtsp_url]
        if missing:
            raise ConfigError(
                f"Cameras without a resolved rtsp_url: {missing}",
                code=ConfigErrorCode.VALIDATION_FAILED,
            )

        self._config = config
        self._registry = registry
        self._directories = directories
        self._launcher = launcher
        self._scheduler = scheduler
        self._clock = clock
        self._sessions: dict[str, StreamSession] = {
            camera.id: StreamSession(camera=camera) for camera in config.cameras
        }
        self._retiring: set[ProcessHandle] = set()
        self._background: set[asyncio.Task[None]] = set()

        for session in self._sessions.values():
            self._registry.publish(session.snapshot())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def camera_ids(self) -> list[str]:
        return list(self._sessions)

    @property
    def default_camera_id(self) -> str:
        return next(iter(self._sessions))

    def cameras(self) -> list[CameraSummary]:
        return [
            CameraSummary(id=session.camera.id, name=session.camera.name)
            for session in self._sessions.values()
        ]

    def get_status(self, camera_id: str) -> StatusRecord:
        session = self._require(camera_id)
        return self._registry.get(camera_id) or session.snapshot()

    def get_all_status(self) -> dict[str, StatusRecord]:
        records = self._registry.get_all()
        return {
            camera_id: records.get(camera_id) or session.snapshot()
            for camera_id, session in self._sessions.items()
        }

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def start(self, camera_id: str) -> StatusRecord:
        """Launch the camera's transcoder unless it is already starting or streaming."""
        session = self._require(camera_id)
        with camera_log_context(camera_id):
            async with session.lock:
                if session.state not in _ACTIVE_STATES:
                    # Manual starts get a fresh reconnect budget
                    session.reconnect_attempts = 0
                await self._start_locked(session)
        return session.snapshot()

    async def stop(self, camera_id: str) -> StatusRecord:
        """Stop the camera and cancel any pending reconnect. Idempotent."""
        session = self._require(camera_id)
        with camera_log_context(camera_id):
            async with session.lock:
                self._stop_locked(session)
        return session.snapshot()

    async def start_all(self) -> dict[str, StatusRecord]:
        await self._apply_all(self.start, "start")
        return self.get_all_status()

    async def stop_all(self) -> dict[str, StatusRecord]:
        await self._apply_all(self.stop, "stop")
        return self.get_all_status()

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop every camera and wait (bounded by `timeout`) for transcoders to exit."""
        await self.stop_all()
        self._scheduler.cancel_all()

        handles = list(self._retiring)
        if handles:
            codes = await asyncio.gather(*(handle.wait_closed(timeout) for handle in handles))
            for handle, code in zip(handles, codes):
                if code is None:
                    logger.warning(
                        "Transcoder still running after shutdown timeout: camera=%s",
                        handle.camera_id,
                    )

        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Stream supervisor shut down")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, camera_id: str) -> StreamSession:
        session = self._sessions.get(camera_id)
        if session is None:
            raise CameraNotFoundError(camera_id)
        return session

    async def _apply_all(
        self,
        operation: Callable[[str], Awaitable[StatusRecord]],
        name: str,
    ) -> None:
        camera_ids = list(self._sessions)
        results = await asyncio.gather(
            *(operation(camera_id) for camera_id in camera_ids),
            return_exceptions=True,
        )
        for camera_id, result in zip(camera_ids, results):
            if isinstance(result, BaseException):
                logger.error(
                    "%s failed for camera %s: %s",
                    name.capitalize(),
                    camera_id,
                    result,
                    exc_info=result,
                )

    async def _start_locked(self, session: StreamSession) -> None:
        camera_id = session.camera_id
        if session.state in _ACTIVE_STATES:
            logger.debug("Start ignored for %s: already %s", camera_id, session.state)
            return

        self._scheduler.cancel(camera_id)
        try:
            effective = resolve(session.camera, self._config.defaults)
            output_dir = await asyncio.to_thread(self._directories.ensure, camera_id)
            command = build_ffmpeg_command(effective, self._config.encoding, output_dir)
            handle = await self._launcher.launch(command)
        except Exception as exc:
            logger.error("Failed to start stream for %s: %s", camera_id, exc, exc_info=exc)
            session.process = None
            self._transition(session, StreamState.ERRORED, f"Failed to start: {exc}")
            self._schedule_reconnect(session)
            return

        session.process = handle
        session.started_at = self._clock()
        session.anomaly_count = 0
        self._transition(session, StreamState.STARTING)
        session.event_task = self._spawn(
            self._consume_events(session, handle),
            name=f"stream-events-{camera_id}",
        )

    def _stop_locked(self, session: StreamSession) -> None:
        self._scheduler.cancel(session.camera_id)
        if session.state == StreamState.STOPPED and session.process is None:
            return

        handle = session.process
        session.process = None
        session.event_task = None
        if handle is not None:
            self._retire(handle)
        session.reconnect_attempts = 0
        self._transition(session, StreamState.STOPPED)
        logger.info("Stopped stream for %s", session.camera_id)

    async def _consume_events(self, session: StreamSession, handle: ProcessHandle) -> None:
        async for event in handle.events():
            async with session.lock:
                if session.process is not handle:
                    logger.debug(
                        "Ignoring %s event from superseded process for %s",
                        event.type,
                        session.camera_id,
                    )
                    return
                self._apply_event(session, event)

    def _apply_event(self, session: StreamSession, event: ProcessEvent) -> None:
        camera_id = session.camera_id
        if event.type == ProcessEventType.STARTED:
            if session.reconnect_attempts:
                logger.info(
                    "Stream for %s recovered after %d reconnect attempts",
                    camera_id,
                    session.reconnect_attempts,
                )
            session.reconnect_attempts = 0
            self._transition(session, StreamState.STREAMING)
            return

        if event.type == ProcessEventType.DIAGNOSTIC:
            self._log_diagnostic(camera_id, event)
            return

        if event.type == ProcessEventType.FAILED and event.failure == FailureKind.DECODE_ANOMALY:
            session.anomaly_count += 1
            if session.anomaly_count == 1:
                logger.warning(
                    "Non-fatal decoding error for %s (ffmpeg continues): %s",
                    camera_id,
                    event.line,
                )
            else:
                logger.debug("Decoding error for %s: %s", camera_id, event.line)
            return

        session.process = None
        session.event_task = None
        uptime = self._uptime(session)
        if event.type == ProcessEventType.EXITED:
            logger.info("ffmpeg process ended for %s after %.1fs", camera_id, uptime)
            self._transition(session, StreamState.ENDED)
        else:
            logger.error(
                "ffmpeg failed for %s after %.1fs (code=%s): %s",
                camera_id,
                uptime,
                event.code,
                event.reason,
            )
            self._transition(session, StreamState.ERRORED, event.reason or "ffmpeg failed")
        self._schedule_reconnect(session)

    def _log_diagnostic(self, camera_id: str, event: ProcessEvent) -> None:
        kind = event.kind
        if kind == DiagnosticKind.CONNECTIVITY:
            logger.warning("Connection issue for %s: %s", camera_id, event.line)
        elif kind == DiagnosticKind.CONNECTED:
            logger.info("Connected to RTSP stream for %s", camera_id)
        elif kind == DiagnosticKind.STREAM_INFO:
            logger.info("Stream info for %s: %s", camera_id, event.line)
        elif kind == DiagnosticKind.OUTPUT_STARTED:
            logger.info("ffmpeg opened HLS output for %s", camera_id)
        else:
            logger.debug("ffmpeg[%s]: %s", camera_id, event.line)

    def _schedule_reconnect(self, session: StreamSession) -> None:
        camera_id = session.camera_id
        max_attempts = self._scheduler.policy.max_attempts
        if max_attempts and session.reconnect_attempts >= max_attempts:
            logger.error(
                "Giving up on %s after %d reconnect attempts",
                camera_id,
                session.reconnect_attempts,
            )
            session.message = EXHAUSTED_MESSAGE
            self._registry.publish(session.snapshot())
            return

        delay_ms = self._scheduler.schedule(
            camera_id,
            session.reconnect_attempts,
            functools.partial(self._reconnect, camera_id),
        )
        if delay_ms is not None:
            logger.info(
                "Scheduling reconnection for %s in %dms (attempt %d)",
                camera_id,
                delay_ms,
                session.reconnect_attempts + 1,
            )

    async def _reconnect(self, camera_id: str) -> None:
        session = self._sessions[camera_id]
        async with session.lock:
            if session.state not in _RECONNECTABLE_STATES:
                logger.debug(
                    "Reconnect for %s aborted: state is %s",
                    camera_id,
                    session.state,
                )
                return
            session.reconnect_attempts += 1
            self._transition(
                session,
                StreamState.RECONNECTING,
                f"Attempt {session.reconnect_attempts}",
            )
            await self._start_locked(session)

    def _retire(self, handle: ProcessHandle) -> None:
        handle.terminate()
        self._retiring.add(handle)
        self._spawn(self._reap(handle), name=f"stream-reap-{handle.camera_id}")

    async def _reap(self, handle: ProcessHandle) -> None:
        try:
            code = await handle.wait_closed()
        finally:
            self._retiring.discard(handle)
        logger.info("Stopped transcoder exited: camera=%s rc=%s", handle.camera_id, code)

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _transition(self, session: StreamSession, state: StreamState, message: str = "") -> None:
        previous = session.state
        session.state = state
        session.message = message
        logger.debug("Stream %s: %s -> %s", session.camera_id, previous, state)
        self._registry.publish(session.snapshot())

    def _uptime(self, session: StreamSession) -> float:
        if session.started_at is None:
            return 0.0
        return max(0.0, self._clock() - session.started_at)
