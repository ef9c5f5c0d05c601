"""Configuration loading and validation."""

from __future__ import annotations

import json
import logging
import os
import re
import stat
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from streamkeeper.config.settings import EnvSettings
from streamkeeper.models.config import CameraConfig, Config

logger = logging.getLogger(__name__)
_SENSITIVE_MODE_MASK = 0o077
_CAMERAS_BLOCK_RE = re.compile(r"^CAMERAS=\[(.*?)\]$", re.MULTILINE | re.DOTALL)


class ConfigErrorCode(str, Enum):
    """Stable config error codes."""

    FILE_NOT_FOUND = "CONFIG_FILE_NOT_FOUND"
    YAML_INVALID = "CONFIG_YAML_INVALID"
    EMPTY_FILE = "CONFIG_EMPTY_FILE"
    ROOT_NOT_MAPPING = "CONFIG_ROOT_NOT_MAPPING"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    CAMERAS_JSON_INVALID = "CONFIG_CAMERAS_JSON_INVALID"
    NO_CAMERAS = "CONFIG_NO_CAMERAS"
    ENV_VAR_MISSING = "CONFIG_ENV_VAR_MISSING"
    UNKNOWN = "CONFIG_UNKNOWN"


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode = ConfigErrorCode.UNKNOWN,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.path = path
        self.__cause__ = cause


def load_config(path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML config file

    Returns:
        Validated Config instance with camera URLs resolved

    Raises:
        ConfigError: If file not found, YAML invalid, or validation fails
    """
    if not path.exists():
        raise ConfigError(
            f"Config file not found: {path}",
            code=ConfigErrorCode.FILE_NOT_FOUND,
            path=path,
        )
    _warn_if_permissive_config_mode(path)

    try:
        with path.open() as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}: {e}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=e,
        ) from e

    if raw is None:
        raise ConfigError(
            f"Config file is empty: {path}",
            code=ConfigErrorCode.EMPTY_FILE,
            path=path,
        )

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config must be a YAML mapping, got {type(raw).__name__}",
            code=ConfigErrorCode.ROOT_NOT_MAPPING,
            path=path,
        )

    return _validate(raw, path=path)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load and validate configuration from a dict (useful for testing).

    Raises:
        ConfigError: If validation fails or a camera URL env var is missing
    """
    return _validate(data, path=None)


def load_config_from_env(
    settings: EnvSettings | None = None,
    *,
    env_path: Path | None = None,
) -> Config:
    """Build configuration from environment variables.

    Cameras come from `CAMERAS` (JSON array). A multi-line `CAMERAS=[...]`
    block in `.env` is read directly because dotenv only keeps the first line
    of an unquoted value. `RTSP_URL` alone yields a single camera.

    Raises:
        ConfigError: If no cameras are configured, the JSON is invalid or an
            environment value has the wrong type
    """
    settings = settings or load_env_settings()
    env_path = env_path or Path(".env")

    cameras_json = settings.cameras
    if _looks_incomplete(cameras_json):
        cameras_json = _read_cameras_block(env_path) or cameras_json

    if cameras_json:
        cameras = [
            _drop_unknown_camera_keys(camera) for camera in parse_cameras_json(cameras_json)
        ]
    elif settings.rtsp_url:
        cameras = [{"id": "camera1", "name": "Camera 1", "rtsp_url": settings.rtsp_url}]
    else:
        raise ConfigError(
            "No camera configuration found. Set CAMERAS (JSON array) or RTSP_URL "
            "for a single camera.",
            code=ConfigErrorCode.NO_CAMERAS,
        )

    data: dict[str, Any] = {
        "hls_output_dir": settings.hls_output_dir,
        "cameras": cameras,
        "defaults": {
            "video_mode": settings.default_video_mode,
            "audio_mode": settings.default_audio_mode,
            "audio_stream_index": settings.default_audio_stream_index,
            "audio_encoding_mode": settings.default_audio_encoding_mode,
            "error_detection": settings.default_error_detection,
        },
        "encoding": {"video_bitrate": settings.video_bitrate},
        "server": {"host": settings.host, "port": settings.port},
    }
    return _validate(data, path=None)


def load_env_settings() -> EnvSettings:
    """Read environment settings, reporting bad values as a ConfigError."""
    try:
        return EnvSettings()
    except ValidationError as e:
        raise ConfigError(
            format_validation_error(e),
            code=ConfigErrorCode.VALIDATION_FAILED,
            cause=e,
        ) from e


def parse_cameras_json(raw: str) -> list[dict[str, Any]]:
    """Parse a `CAMERAS` JSON array, tolerating newlines and trailing commas."""
    cleaned = re.sub(r"\s*\n\s*", " ", raw)
    cleaned = re.sub(r"\s+", " ", cleaned)
    cleaned = re.sub(r",\s*}", "}", cleaned)
    cleaned = re.sub(r",\s*]", "]", cleaned)
    cleaned = re.sub(r"}\s*{", "}, {", cleaned).strip()

    try:
        cameras = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"Failed to parse CAMERAS configuration: {e}",
            code=ConfigErrorCode.CAMERAS_JSON_INVALID,
            cause=e,
        ) from e

    if not isinstance(cameras, list) or not cameras:
        raise ConfigError(
            "CAMERAS must be a non-empty JSON array",
            code=ConfigErrorCode.CAMERAS_JSON_INVALID,
        )
    if not all(isinstance(camera, dict) for camera in cameras):
        raise ConfigError(
            "CAMERAS entries must be JSON objects",
            code=ConfigErrorCode.CAMERAS_JSON_INVALID,
        )
    return cameras


def resolve_env_var(env_var_name: str, required: bool = True) -> str | None:
    """Resolve environment variable by name.

    Raises:
        ConfigError: If required and not found
    """
    value = os.environ.get(env_var_name)
    if value is None and required:
        raise ConfigError(
            f"Required environment variable not set: {env_var_name}",
            code=ConfigErrorCode.ENV_VAR_MISSING,
        )
    return value


def format_validation_error(e: ValidationError, path: Path | None = None) -> str:
    """Format Pydantic validation error for human readability."""
    prefix = f"Config validation failed ({path}):" if path else "Config validation failed:"
    errors = []
    for err in e.errors():
        loc = " -> ".join(str(x) for x in err["loc"])
        msg = err["msg"]
        errors.append(f"  {loc}: {msg}")
    return prefix + "\n" + "\n".join(errors)


def _validate(data: dict[str, Any], *, path: Path | None) -> Config:
    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            format_validation_error(e, path),
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=e,
        ) from e
    return _resolve_camera_urls(config)


def _resolve_camera_urls(config: Config) -> Config:
    """Replace `rtsp_url_env` references with the URL read from the environment."""
    resolved: list[CameraConfig] = []
    for camera in config.cameras:
        if not camera.rtsp_url_env:
            resolved.append(camera)
            continue
        env_value = resolve_env_var(camera.rtsp_url_env, required=camera.rtsp_url is None)
        if env_value:
            camera = camera.model_copy(update={"rtsp_url": env_value})
        if not camera.rtsp_url:
            raise ConfigError(
                f"Camera {camera.id}: environment variable {camera.rtsp_url_env} is empty",
                code=ConfigErrorCode.ENV_VAR_MISSING,
            )
        resolved.append(camera)
    return config.model_copy(update={"cameras": resolved})


def _drop_unknown_camera_keys(camera: dict[str, Any]) -> dict[str, Any]:
    """Strip keys of a CAMERAS entry that CameraConfig does not define."""
    allowed: set[str] = set()
    for name, field in CameraConfig.model_fields.items():
        allowed.add(name)
        allowed.add(field.alias or name)
    unknown = sorted(key for key in camera if key not in allowed)
    if unknown:
        logger.warning(
            "Ignoring unknown CAMERAS keys for %s: %s",
            camera.get("id", "<no id>"),
            ", ".join(unknown),
        )
    return {key: value for key, value in camera.items() if key in allowed}


def _looks_incomplete(value: str | None) -> bool:
    if not value:
        return True
    stripped = value.strip()
    return stripped == "[" or value.startswith("[\n")


def _read_cameras_block(env_path: Path) -> str | None:
    try:
        if not env_path.exists():
            return None
        content = env_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Error reading %s: %s", env_path, exc)
        return None
    match = _CAMERAS_BLOCK_RE.search(content)
    if match is None:
        return None
    return "[" + match.group(1) + "]"


def _warn_if_permissive_config_mode(path: Path) -> None:
    """Warn when config file mode exposes camera credentials to group/other users."""
    if os.name != "posix":
        return
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError:
        return
    if mode & _SENSITIVE_MODE_MASK:
        logger.warning(
            "Config file permissions are too permissive for credential-bearing config: path=%s mode=%04o expected=0600",
            path,
            mode,
        )
