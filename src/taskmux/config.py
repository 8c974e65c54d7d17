"""Configuration management for taskmux."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
import tempfile

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_artifact_dir() -> Path:
    return Path(tempfile.gettempdir())


class TaskmuxSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_dir: Path = Field(default_factory=_default_artifact_dir, validation_alias="LOG_DIR")
    status_dir: Path = Field(default_factory=_default_artifact_dir, validation_alias="STATUS_DIR")
    retention_days: int = Field(default=7, validation_alias="PRUNE_RETENTION_DAYS")
    summary_limit: int = Field(default=10, validation_alias="STATUS_SUMMARY_LIMIT")
    tail_lines: int = Field(default=50, validation_alias="TAIL_DEFAULT_LINES")
    tail_interval: float = Field(default=2.0, validation_alias="TAIL_DEFAULT_INTERVAL")
    tmux_path: str | None = Field(default=None, validation_alias="TASKMUX_TMUX_PATH")
    launch_grace_seconds: float = Field(default=1.0, validation_alias="TASKMUX_LAUNCH_GRACE")
    command_display_width: int = Field(default=60, validation_alias="TASKMUX_COMMAND_WIDTH")
    log_level: str = Field(default="WARNING", validation_alias="TASKMUX_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "TASKMUX_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("log_dir", "status_dir", mode="before")
    @classmethod
    def _parse_directory(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return _default_artifact_dir()
        return value

    @field_validator("retention_days")
    @classmethod
    def _validate_retention_days(cls, value: int) -> int:
        if value < 0:
            raise ValueError("PRUNE_RETENTION_DAYS must be >= 0")
        return value

    @field_validator("summary_limit", "tail_lines")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("STATUS_SUMMARY_LIMIT and TAIL_DEFAULT_LINES must be >= 1")
        return value

    @field_validator("tail_interval")
    @classmethod
    def _validate_tail_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("TAIL_DEFAULT_INTERVAL must be > 0")
        return value

    @field_validator("launch_grace_seconds")
    @classmethod
    def _validate_launch_grace(cls, value: float) -> float:
        if value < 0:
            raise ValueError("TASKMUX_LAUNCH_GRACE must be >= 0")
        return value

    @field_validator("command_display_width")
    @classmethod
    def _validate_display_width(cls, value: int) -> int:
        if value < 4:
            raise ValueError("TASKMUX_COMMAND_WIDTH must be >= 4")
        return value


@lru_cache(maxsize=1)
def get_settings() -> TaskmuxSettings:
    """Return cached settings instance."""

    settings = TaskmuxSettings()
    settings.log_dir = settings.log_dir.expanduser().resolve()
    settings.status_dir = settings.status_dir.expanduser().resolve()
    return settings


__all__ = ["TaskmuxSettings", "get_settings"]
