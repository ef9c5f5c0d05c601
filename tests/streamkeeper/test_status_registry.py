"""Tests for the status registry and its observers."""

from __future__ import annotations

import logging

import pytest

from streamkeeper.models.enums import StreamState
from streamkeeper.models.status import StatusRecord
from streamkeeper.streaming.status import StatusRegistry


def _record(camera_id: str, status: StreamState, **kwargs: object) -> StatusRecord:
    return StatusRecord(
        camera_id=camera_id,
        camera_name=f"Camera {camera_id}",
        is_streaming=status == StreamState.STREAMING,
        reconnect_attempts=int(kwargs.get("reconnect_attempts", 0)),
        status=status,
        message=str(kwargs.get("message", "")),
    )


def test_publish_replaces_latest_record() -> None:
    registry = StatusRegistry()

    registry.publish(_record("cam1", StreamState.STARTING))
    registry.publish(_record("cam1", StreamState.STREAMING))
    registry.publish(_record("cam2", StreamState.ERRORED, message="boom"))

    assert registry.get("cam1").status == StreamState.STREAMING
    assert registry.get("cam2").message == "boom"
    assert registry.get("missing") is None
    assert set(registry.get_all()) == {"cam1", "cam2"}


def test_get_all_returns_a_copy() -> None:
    registry = StatusRegistry()
    registry.publish(_record("cam1", StreamState.IDLE))

    snapshot = registry.get_all()
    snapshot.clear()

    assert registry.get("cam1") is not None


def test_observers_run_in_registration_order() -> None:
    """Every observer sees every record, in the order they were added."""
    # Given: Two observers
    registry = StatusRegistry()
    calls: list[tuple[str, StreamState]] = []
    registry.add_observer(lambda r: calls.append(("first", r.status)))
    registry.add_observer(lambda r: calls.append(("second", r.status)))

    # When: Publishing two transitions
    registry.publish(_record("cam1", StreamState.STARTING))
    registry.publish(_record("cam1", StreamState.STREAMING))

    # Then: Calls are ordered per record and per observer
    assert calls == [
        ("first", StreamState.STARTING),
        ("second", StreamState.STARTING),
        ("first", StreamState.STREAMING),
        ("second", StreamState.STREAMING),
    ]


def test_failing_observer_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    """An observer exception is logged and later observers still run."""
    # Given: A failing observer registered before a healthy one
    registry = StatusRegistry()
    seen: list[StatusRecord] = []

    def _broken(_record: StatusRecord) -> None:
        raise RuntimeError("observer exploded")

    registry.add_observer(_broken)
    registry.add_observer(seen.append)

    # When: Publishing
    with caplog.at_level(logging.ERROR, logger="streamkeeper.streaming.status"):
        registry.publish(_record("cam1", StreamState.ERRORED))

    # Then: The record is stored, the healthy observer ran and the failure was logged
    assert registry.get("cam1").status == StreamState.ERRORED
    assert len(seen) == 1
    assert "observer exploded" in caplog.text


def test_remove_observer() -> None:
    registry = StatusRegistry()
    seen: list[StatusRecord] = []
    registry.add_observer(seen.append)

    registry.remove_observer(seen.append)
    registry.remove_observer(seen.append)
    registry.publish(_record("cam1", StreamState.IDLE))

    assert seen == []
