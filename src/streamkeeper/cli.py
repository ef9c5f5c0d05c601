"""CLI entrypoint for streamkeeper."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]

from streamkeeper.app import Application, load_app_config
from streamkeeper.config import ConfigError, load_env_settings
from streamkeeper.logging_setup import configure_logging
from streamkeeper.streaming.utils import _redact_rtsp_url


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for CLI."""
    configure_logging(log_level=level)


def _config_path(config: str | None) -> Path | None:
    return Path(config) if config else None


class StreamKeeper:
    """streamkeeper CLI - RTSP to HLS camera stream supervisor."""

    def run(self, config: str | None = None, log_level: str | None = None) -> None:
        """Supervise every configured camera and serve HLS until interrupted.

        Args:
            config: Path to YAML config file (environment variables when omitted)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL
        """
        try:
            setup_logging(log_level or load_env_settings().log_level)
            app_config = load_app_config(_config_path(config))
            app = Application(app_config)
            asyncio.run(app.run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            pass  # Handled by signal handlers

    def validate(self, config: str | None = None) -> None:
        """Validate configuration without running.

        Args:
            config: Path to YAML config file (environment variables when omitted)
        """
        try:
            cfg = load_app_config(_config_path(config))
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        source = config or "environment"
        print(f"✓ Config valid: {source}")
        print(f"  Cameras: {[camera.id for camera in cfg.cameras]}")
        print(f"  HLS output dir: {cfg.hls_output_dir}")
        print(
            "  Reconnect: "
            f"initial={cfg.reconnect.initial_delay_ms}ms "
            f"max={cfg.reconnect.max_delay_ms}ms "
            f"multiplier={cfg.reconnect.backoff_multiplier} "
            f"max_attempts={cfg.reconnect.max_attempts or 'unlimited'}"
        )
        print(f"  Server: {cfg.server.host}:{cfg.server.port} (enabled={cfg.server.enabled})")

    def cameras(self, config: str | None = None) -> None:
        """List configured cameras with credentials redacted.

        Args:
            config: Path to YAML config file (environment variables when omitted)
        """
        try:
            cfg = load_app_config(_config_path(config))
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        for camera in cfg.cameras:
            url = _redact_rtsp_url(camera.rtsp_url or "")
            print(f"{camera.id}\t{camera.name}\t{url}")


def main() -> None:
    """Main CLI entrypoint."""
    # Strip --help/-h when it's the only arg so Fire shows its commands list
    if len(sys.argv) == 2 and sys.argv[1] in ("--help", "-h"):
        sys.argv.pop()
    fire.Fire(StreamKeeper)


if __name__ == "__main__":
    main()
