"""Latest-status registry with synchronous observer fan-out."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from streamkeeper.models.status import StatusRecord

logger = logging.getLogger(__name__)

StatusObserver = Callable[[StatusRecord], None]


class StatusRegistry:
    """Holds the most recent `StatusRecord` per camera.

    `publish` may be called from the event loop while API handlers read from
    worker threads, so the table is guarded by a lock. Observers run outside
    the lock in registration order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, StatusRecord] = {}
        self._observers: list[StatusObserver] = []

    def get(self, camera_id: str) -> StatusRecord | None:
        with self._lock:
            return self._records.get(camera_id)

    def get_all(self) -> dict[str, StatusRecord]:
        with self._lock:
            return dict(self._records)

    def publish(self, record: StatusRecord) -> None:
        with self._lock:
            self._records[record.camera_id] = record
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(record)
            except Exception as exc:
                logger.error(
                    "Status observer %r failed for %s: %s",
                    observer,
                    record.camera_id,
                    exc,
                    exc_info=exc,
                )

    def add_observer(self, observer: StatusObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: StatusObserver) -> None:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return
