"""Interface definitions for streamkeeper components."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from streamkeeper.streaming.command import StreamCommand
    from streamkeeper.streaming.events import ProcessEvent


class Shutdownable(ABC):
    """Async shutdown interface for managed components."""

    @abstractmethod
    async def shutdown(self, timeout: float | None = None) -> None:
        """Release resources and stop background work."""
        raise NotImplementedError


class ProcessHandle(ABC):
    """A running transcoder process as seen by the supervisor."""

    @property
    @abstractmethod
    def camera_id(self) -> str:
        raise NotImplementedError

    @property
    @abstractmethod
    def returncode(self) -> int | None:
        """Exit code, or None while the process is alive."""
        raise NotImplementedError

    @abstractmethod
    def events(self) -> AsyncIterator[ProcessEvent]:
        """Yield process events in order.

        Iteration ends right after the single terminal event (`exited`, or
        `failed` with a fatal failure kind).
        """
        raise NotImplementedError

    @abstractmethod
    def terminate(self) -> None:
        """Request graceful termination without blocking.

        Escalates to a hard kill if the process outlives the stop timeout.
        Safe to call repeatedly and after exit.
        """
        raise NotImplementedError

    @abstractmethod
    async def wait_closed(self, timeout: float | None = None) -> int | None:
        """Wait until the process has exited and its output is drained.

        Returns the exit code, or None if `timeout` elapsed first.
        """
        raise NotImplementedError


class ProcessLauncher(ABC):
    """Spawns transcoder processes."""

    @abstractmethod
    async def launch(self, command: StreamCommand) -> ProcessHandle:
        """Start the process described by `command`.

        Raises:
            LaunchError: If the process could not be spawned
        """
        raise NotImplementedError
