"""Tests for logging setup module."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from streamkeeper.logging_setup import camera_log_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging_root() -> None:
    """Restore root logger handlers/levels after each test."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    original_access_level = logging.getLogger("uvicorn.access").level
    original_asyncio_level = logging.getLogger("asyncio").level

    yield

    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in original_handlers:
        root.addHandler(handler)
    root.setLevel(original_level)
    logging.captureWarnings(False)
    logging.getLogger("uvicorn.access").setLevel(original_access_level)
    logging.getLogger("asyncio").setLevel(original_asyncio_level)


def _use_format(fmt: str) -> None:
    logging.getLogger().handlers[0].setFormatter(logging.Formatter(fmt))


class TestCameraInjection:
    """Tests for camera_id injection via configure_logging."""

    def test_default_camera_id_is_dash(self, capsys: pytest.CaptureFixture[str]) -> None:
        # Given: Logging configured and no camera context
        configure_logging(log_level="INFO")
        _use_format("%(camera_id)s %(message)s")

        # When: Logging a message
        logging.getLogger("test").info("hello")

        # Then: The placeholder id is used
        assert "- hello" in capsys.readouterr().out

    def test_context_tags_records(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Records logged inside camera_log_context carry the camera id."""
        # Given: Logging configured with a camera_id formatter
        configure_logging(log_level="INFO")
        _use_format("%(camera_id)s %(message)s")

        # When: Logging inside and after a camera context
        with camera_log_context("porch"):
            logging.getLogger("test").info("inside")
        logging.getLogger("test").info("outside")

        # Then: Only the inner record is tagged
        lines = capsys.readouterr().out.strip().splitlines()
        assert "porch inside" in lines
        assert "- outside" in lines

    def test_explicit_extra_wins(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="INFO")
        _use_format("%(camera_id)s %(message)s")

        with camera_log_context("porch"):
            logging.getLogger("test").info("status", extra={"camera_id": "yard"})

        assert "yard status" in capsys.readouterr().out

    def test_context_is_restored_after_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="INFO")
        _use_format("%(camera_id)s %(message)s")

        with pytest.raises(RuntimeError):
            with camera_log_context("porch"):
                raise RuntimeError("launch failed")
        logging.getLogger("test").info("after")

        assert "- after" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_context_propagates_to_spawned_tasks(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Tasks created inside the context keep the camera id."""
        # Given: Logging configured with a camera_id formatter
        configure_logging(log_level="INFO")
        _use_format("%(camera_id)s %(message)s")

        async def _work() -> None:
            await asyncio.sleep(0)
            logging.getLogger("test").info("from task")

        # When: Spawning a task inside the context and awaiting it outside
        with camera_log_context("garage"):
            task = asyncio.create_task(_work())
        await task

        # Then: The task's record is tagged
        assert "garage from task" in capsys.readouterr().out


class TestLoggingExtras:
    """Tests for JSON extras formatting."""

    def test_extras_render_as_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Extra fields are rendered as JSON on a new line."""
        # Given: Logging configured with JSON extra formatter
        configure_logging(log_level="INFO")

        # When: Logging with extra fields
        logging.getLogger("test").info(
            "test message",
            extra={"camera_id": "cam1", "attempt": 3, "delay_ms": 2250},
        )

        # Then: Extras are appended as JSON without camera_id
        lines = capsys.readouterr().out.strip().splitlines()
        assert "[cam1]" in lines[0]
        json_start = next(index for index, line in enumerate(lines) if line.strip().startswith("{"))
        extras = json.loads("\n".join(lines[json_start:]))
        assert extras == {"attempt": 3, "delay_ms": 2250}

    def test_console_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="warning")

        logging.getLogger("test").info("quiet")
        logging.getLogger("test").warning("loud")

        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out

    def test_custom_format_from_env(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CONSOLE_LOG_FORMAT", "custom|%(levelname)s|%(message)s")
        configure_logging(log_level="INFO")

        logging.getLogger("test").info("formatted")

        assert "custom|INFO|formatted" in capsys.readouterr().out

    def test_noisy_loggers_are_quieted(self) -> None:
        configure_logging(log_level="DEBUG")

        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING
