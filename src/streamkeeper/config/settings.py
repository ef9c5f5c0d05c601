"""Environment-driven settings used when no YAML config file is given."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_DOTENV = Path(__file__).resolve().parents[3] / ".env"


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", _REPO_DOTENV),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    cameras: str | None = None  # JSON array of camera objects
    rtsp_url: str | None = None  # legacy single-camera setup
    hls_output_dir: str = "./hls"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    video_bitrate: str = "2048k"
    default_video_mode: str | None = None
    default_audio_mode: str | None = None
    default_audio_stream_index: str | None = None
    default_audio_encoding_mode: str | None = None
    default_error_detection: str | None = None

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return str(value).upper()
