"""Data models for persisted task artifacts."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from pathlib import Path


@dataclass(slots=True)
class StatusRecord:
    """Completion metadata written once by the wrapped command.

    Every field is kept as the string found in the status file; missing
    fields are empty strings.
    """

    exit_code: str = ""
    command: str = ""
    started_at: str = ""
    started_epoch: str = ""
    finished_at: str = ""
    finished_epoch: str = ""
    duration_seconds: str = ""
    log_file: str = ""
    workdir: str = ""
    env_vars: str = ""

    @property
    def returncode(self) -> int | None:
        try:
            return int(self.exit_code)
        except ValueError:
            return None

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def duration(self) -> int | None:
        try:
            return int(self.duration_seconds)
        except ValueError:
            return None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in fields(cls))


@dataclass(slots=True)
class StoredStatus:
    name: str
    path: Path
    modified_at: datetime
    record: StatusRecord


__all__ = ["StatusRecord", "StoredStatus"]
