"""Reconnect delay computation and per-camera reconnect timers."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable

from streamkeeper.logging_setup import camera_log_context
from streamkeeper.models.config import ReconnectConfig

logger = logging.getLogger(__name__)

ReconnectCallback = Callable[[], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


def compute_delay_ms(
    attempt: int,
    *,
    initial_ms: int = 1000,
    multiplier: float = 1.5,
    max_ms: int = 30000,
) -> int:
    """Return `floor(min(initial * multiplier**attempt, max))` in milliseconds."""
    if attempt < 0:
        attempt = 0
    try:
        raw = initial_ms * math.pow(multiplier, attempt)
    except OverflowError:
        return max_ms
    if math.isinf(raw) or math.isnan(raw):
        return max_ms
    return int(math.floor(min(raw, max_ms)))


class BackoffScheduler:
    """Owns at most one pending reconnect timer per camera."""

    def __init__(self, policy: ReconnectConfig, *, sleep: SleepFn = asyncio.sleep) -> None:
        self._policy = policy
        self._sleep = sleep
        self._timers: dict[str, asyncio.Task[None]] = {}

    @property
    def policy(self) -> ReconnectConfig:
        return self._policy

    def delay_ms(self, attempt: int) -> int:
        return compute_delay_ms(
            attempt,
            initial_ms=self._policy.initial_delay_ms,
            multiplier=self._policy.backoff_multiplier,
            max_ms=self._policy.max_delay_ms,
        )

    def schedule(self, camera_id: str, attempt: int, callback: ReconnectCallback) -> int | None:
        """Arm a timer that awaits `callback` after the backoff delay.

        Returns the delay in milliseconds, or None when a timer is already
        pending for the camera (the request is ignored).
        """
        if self.is_pending(camera_id):
            return None
        delay_ms = self.delay_ms(attempt)
        task = asyncio.create_task(
            self._fire(camera_id, delay_ms, callback),
            name=f"reconnect-{camera_id}",
        )
        self._timers[camera_id] = task
        return delay_ms

    def is_pending(self, camera_id: str) -> bool:
        task = self._timers.get(camera_id)
        return task is not None and not task.done()

    def cancel(self, camera_id: str) -> bool:
        task = self._timers.pop(camera_id, None)
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for camera_id in list(self._timers):
            self.cancel(camera_id)

    async def _fire(self, camera_id: str, delay_ms: int, callback: ReconnectCallback) -> None:
        with camera_log_context(camera_id):
            await self._sleep(delay_ms / 1000.0)
            if self._timers.get(camera_id) is asyncio.current_task():
                del self._timers[camera_id]
            try:
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Reconnect callback failed for %s: %s", camera_id, exc, exc_info=exc)
