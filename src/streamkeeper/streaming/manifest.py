"""HLS playlist proxy: rewrites segment URIs and covers for missing playlists."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from streamkeeper.models.config import CAMERA_ID_PATTERN
from streamkeeper.streaming.command import PLAYLIST_NAME

logger = logging.getLogger(__name__)

MEDIA_TYPE = "application/vnd.apple.mpegurl"
_ENDLIST_TAG = "#EXT-X-ENDLIST"
_CAMERA_ID_RE = re.compile(CAMERA_ID_PATTERN)


def placeholder_playlist(target_duration: int) -> bytes:
    """Valid, empty live playlist served while the transcoder has not written one yet."""
    lines = [
        "#EXTM3U",
        "#EXT-X-VERSION:6",
        f"#EXT-X-TARGETDURATION:{target_duration}",
        "#EXT-X-MEDIA-SEQUENCE:0",
        "#EXT-X-INDEPENDENT-SEGMENTS",
        "# Stream is starting, please wait...",
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def _is_segment_line(line: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return False
    return not stripped.startswith("/") and "://" not in stripped


class ManifestProxy:
    """Serves per-camera playlists whose segment lines resolve under the HLS prefix."""

    def __init__(self, root: Path, *, hls_url_prefix: str = "/hls", target_duration: int = 2) -> None:
        self._root = Path(root)
        self._prefix = "/" + hls_url_prefix.strip("/") if hls_url_prefix.strip("/") else ""
        self._target_duration = target_duration

    def playlist_path(self, camera_id: str) -> Path:
        return self._root / camera_id / PLAYLIST_NAME

    def render(self, camera_id: str) -> bytes:
        """Return the rewritten playlist, or a placeholder when none is readable.

        Never raises: browsers keep polling the playlist, so a missing or
        unreadable file must still produce a valid manifest.
        """
        if not _CAMERA_ID_RE.fullmatch(camera_id):
            logger.warning("Refusing playlist for unsafe camera id %r", camera_id)
            return placeholder_playlist(self._target_duration)

        path = self.playlist_path(camera_id)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return placeholder_playlist(self._target_duration)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Error reading playlist %s: %s", path, exc)
            return placeholder_playlist(self._target_duration)

        return self.rewrite(camera_id, content).encode("utf-8")

    def rewrite(self, camera_id: str, content: str) -> str:
        out: list[str] = []
        for line in content.splitlines(keepends=True):
            body = line.rstrip("\r\n")
            if body.strip() == _ENDLIST_TAG:
                continue
            if _is_segment_line(body):
                ending = line[len(body) :]
                out.append(f"{self._prefix}/{camera_id}/{body.strip()}{ending}")
                continue
            out.append(line)
        return "".join(out)
