"""Mock implementations for testing."""

from tests.streamkeeper.mocks.launcher import FakeLauncher, FakeProcessHandle
from tests.streamkeeper.mocks.support import (
    InstantSleep,
    ManualSleep,
    RecordingObserver,
    make_config,
    settle,
    wait_until,
)

__all__ = [
    "FakeLauncher",
    "FakeProcessHandle",
    "InstantSleep",
    "ManualSleep",
    "RecordingObserver",
    "make_config",
    "settle",
    "wait_until",
]
