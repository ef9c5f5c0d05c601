"""Per-camera HLS output directory management."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_ARTIFACT_SUFFIXES = frozenset({".ts", ".m4s", ".m3u8"})


def _is_hls_artifact(path: Path) -> bool:
    return path.suffix in _ARTIFACT_SUFFIXES or path.name.endswith(".m3u8.tmp")


class SegmentDirectoryManager:
    """Keeps `<root>/<camera_id>` present and free of stale HLS artifacts."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, camera_id: str) -> Path:
        return self._root / camera_id

    def ensure(self, camera_id: str) -> Path:
        """Create the camera directory or purge its old segments and playlists.

        Blocking; call through `asyncio.to_thread` from the event loop.

        Raises:
            OSError: If the directory cannot be created
        """
        directory = self.path_for(camera_id)
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info("Created HLS output directory: %s", directory.resolve())
            return directory

        try:
            entries = list(directory.iterdir())
        except OSError as exc:
            logger.warning("Could not list HLS directory %s: %s", directory, exc)
            return directory

        removed = 0
        for entry in entries:
            if not _is_hls_artifact(entry):
                continue
            try:
                entry.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Failed to delete stale HLS file %s: %s", entry, exc)
        if removed:
            logger.info("Cleaned %d old HLS files for %s", removed, camera_id)
        return directory
