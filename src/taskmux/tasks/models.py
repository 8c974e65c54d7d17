"""Task request and launch result models."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..storage import StatusRecord

ENV_KEY_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
# tmux rewrites "." and ":" in session names; whitespace breaks targets and "/" breaks file names.
_INVALID_TYPE_CHARS = re.compile(r"[\s.:/]")


class TaskRequest(BaseModel):
    """Validated description of a task to launch."""

    type: str = Field(..., description="Caller-chosen label, e.g. build or test.")
    command: list[str] = Field(..., description="Argument vector to execute.")
    workdir: Path | None = Field(
        default=None,
        description="Directory to run in; defaults to the launcher's current directory.",
    )
    env: list[str] = Field(
        default_factory=list,
        description="Ordered KEY=VALUE environment overrides.",
    )
    notify: bool = Field(default=False, description="Send a desktop notification on completion.")

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Task type must not be empty")
        if _INVALID_TYPE_CHARS.search(normalized):
            raise ValueError("Task type must not contain whitespace, '.', ':' or '/'")
        return normalized

    @field_validator("command", mode="before")
    @classmethod
    def _ensure_command(cls, value: Any):  # type: ignore[override]
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)) or not value:
            raise ValueError("No command provided")
        if all(not str(item).strip() for item in value):
            raise ValueError("No command provided")
        return [str(item) for item in value]

    @field_validator("env", mode="before")
    @classmethod
    def _validate_env(cls, value: Any):  # type: ignore[override]
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise TypeError("Environment overrides must be a sequence of KEY=VALUE strings")
        for item in value:
            key, sep, _ = str(item).partition("=")
            if not sep:
                raise ValueError(f"Environment override must be KEY=VALUE: {item}")
            if not ENV_KEY_PATTERN.fullmatch(key):
                raise ValueError(f"Invalid environment variable name: {key}")
        return [str(item) for item in value]

    @property
    def env_pairs(self) -> list[tuple[str, str]]:
        pairs = []
        for item in self.env:
            key, _, value = item.partition("=")
            pairs.append((key, value))
        return pairs


@dataclass(slots=True)
class LaunchedTask:
    name: str
    log_file: Path
    status_file: Path
    workdir: Path
    alive: bool
    initial_output: str
    record: StatusRecord | None = None


__all__ = ["ENV_KEY_PATTERN", "LaunchedTask", "TaskRequest"]
