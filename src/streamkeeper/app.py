"""Main application that wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from pathlib import Path
from typing import TYPE_CHECKING

from streamkeeper.api import APIServer, create_app
from streamkeeper.config import load_config, load_config_from_env
from streamkeeper.streaming.backoff import BackoffScheduler
from streamkeeper.streaming.launcher import FfmpegLauncher
from streamkeeper.streaming.manifest import ManifestProxy
from streamkeeper.streaming.segments import SegmentDirectoryManager
from streamkeeper.streaming.status import StatusRegistry
from streamkeeper.streaming.supervisor import StreamSupervisor

if TYPE_CHECKING:
    from streamkeeper.interfaces import ProcessLauncher
    from streamkeeper.models.config import Config
    from streamkeeper.models.status import StatusRecord

logger = logging.getLogger(__name__)


def load_app_config(config_path: Path | None) -> Config:
    """Load YAML config when a path is given, otherwise build it from the environment."""
    if config_path is not None:
        config = load_config(config_path)
        logger.info("Config loaded from %s", config_path)
        return config
    config = load_config_from_env()
    logger.info("Config loaded from environment")
    return config


class Application:
    """Main application that orchestrates all components.

    Handles component creation, lifecycle, and graceful shutdown.
    """

    def __init__(self, config: Config, *, launcher: ProcessLauncher | None = None) -> None:
        self._config = config
        hls_root = Path(config.hls_output_dir)

        self._registry = StatusRegistry()
        self._registry.add_observer(_log_status_change)
        self._directories = SegmentDirectoryManager(hls_root)
        self._scheduler = BackoffScheduler(config.reconnect)
        self._launcher = launcher or FfmpegLauncher(stop_timeout_s=config.reconnect.stop_timeout_s)
        self._supervisor = StreamSupervisor(
            config,
            registry=self._registry,
            directories=self._directories,
            launcher=self._launcher,
            scheduler=self._scheduler,
        )
        self._manifests = ManifestProxy(
            hls_root,
            hls_url_prefix=config.server.hls_url_prefix,
            target_duration=config.encoding.hls_time,
        )
        self._api_server: APIServer | None = None
        self._start_time: float | None = None

        # Shutdown state
        self._shutdown_event = asyncio.Event()
        self._shutdown_started = False

    async def run(self) -> None:
        """Run the application.

        Starts every camera and the API server, then runs until a shutdown signal.
        """
        logger.info("Starting streamkeeper with %d camera(s)...", len(self._config.cameras))
        self._setup_signal_handlers()

        if self._config.server.enabled:
            self._api_server = APIServer(
                create_app(self),
                self._config.server.host,
                self._config.server.port,
            )
            await self._api_server.start()

        self._start_time = time.time()
        await self._supervisor.start_all()
        logger.info("Application started. Supervising cameras: %s", self._supervisor.camera_ids)

        # Wait for shutdown signal
        await self._shutdown_event.wait()

        # Graceful shutdown
        await self.shutdown()

    def request_shutdown(self) -> None:
        """Ask a running application to shut down."""
        self._shutdown_started = True
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        if self._shutdown_started:
            logger.warning("Shutdown already in progress, ignoring signal")
            return

        logger.info("Received signal %s, initiating shutdown...", sig.name)
        self.request_shutdown()

    async def shutdown(self) -> None:
        """Graceful shutdown of all components."""
        logger.info("Shutting down application...")

        # Stop API server first to prevent new requests during shutdown.
        if self._api_server:
            await self._api_server.stop()

        await self._supervisor.shutdown(timeout=self._config.reconnect.stop_timeout_s + 1.0)

        logger.info("Application shutdown complete")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def supervisor(self) -> StreamSupervisor:
        return self._supervisor

    @property
    def registry(self) -> StatusRegistry:
        return self._registry

    @property
    def manifests(self) -> ManifestProxy:
        return self._manifests

    @property
    def uptime_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        return time.time() - self._start_time


def _log_status_change(record: StatusRecord) -> None:
    logger.info(
        "Status update: %s (%s) -> %s%s",
        record.camera_name,
        record.camera_id,
        record.status,
        f" ({record.message})" if record.message else "",
        extra={"camera_id": record.camera_id},
    )
