from __future__ import annotations

import logging
import os
import re
import shlex

logger = logging.getLogger(__name__)

_URL_CREDENTIALS_RE = re.compile(r"(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*://)[^/@\s]+@")


def _redact_rtsp_url(url: str) -> str:
    if "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    if "@" not in rest:
        return url
    _creds, host = rest.split("@", 1)
    return f"{scheme}://***:***@{host}"


def _redact_text(text: str) -> str:
    """Mask credentials of every URL embedded in free-form text (stderr lines)."""
    return _URL_CREDENTIALS_RE.sub(r"\g<scheme>***:***@", text)


def _format_cmd(cmd: list[str]) -> str:
    try:
        return shlex.join([str(x) for x in cmd])
    except Exception as exc:
        logger.warning("Failed to format command with shlex.join: %s", exc, exc_info=True)
        return " ".join([str(x) for x in cmd])


def _signal_process_group(pid: int, sig: int) -> bool:
    """Best-effort process-group signal for spawned ffmpeg trees."""
    if not hasattr(os, "killpg"):
        return False
    try:
        pgid = os.getpgid(pid)
    except OSError:
        return False
    try:
        os.killpg(pgid, sig)
        return True
    except OSError:
        return False
