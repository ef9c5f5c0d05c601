"""Configuration loading, environment settings and per-camera resolution."""

from streamkeeper.config.loader import (
    ConfigError,
    ConfigErrorCode,
    load_config,
    load_config_from_dict,
    load_config_from_env,
    load_env_settings,
    parse_cameras_json,
    resolve_env_var,
)
from streamkeeper.config.resolver import EffectiveConfig, resolve
from streamkeeper.config.settings import EnvSettings

__all__ = [
    "ConfigError",
    "ConfigErrorCode",
    "EffectiveConfig",
    "EnvSettings",
    "load_config",
    "load_config_from_dict",
    "load_config_from_env",
    "load_env_settings",
    "parse_cameras_json",
    "resolve",
    "resolve_env_var",
]
