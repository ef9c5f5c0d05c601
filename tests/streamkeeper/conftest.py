"""Shared pytest fixtures for streamkeeper tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from streamkeeper.models.config import Config
from streamkeeper.streaming.status import StatusRegistry
from tests.streamkeeper.mocks import RecordingObserver, make_config


@pytest.fixture
def registry() -> StatusRegistry:
    return StatusRegistry()


@pytest.fixture
def observer(registry: StatusRegistry) -> RecordingObserver:
    recorder = RecordingObserver()
    registry.add_observer(recorder)
    return recorder


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Three-camera config writing HLS output under `tmp_path`."""
    return make_config(tmp_path, "cam1", "cam2", "cam3")
