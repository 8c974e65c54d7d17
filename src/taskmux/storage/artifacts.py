"""On-disk artifact store for task logs and status records."""

from __future__ import annotations

import logging
import time
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from .codec import read_status_file
from .models import StatusRecord, StoredStatus

logger = logging.getLogger(__name__)

SESSION_PREFIX = "task-"
LOG_SUFFIX = ".log"
STATUS_SUFFIX = ".status"
# Left behind when the wrapper dies between writing and renaming a record.
PARTIAL_STATUS_SUFFIX = f"{STATUS_SUFFIX}.tmp"
_SECONDS_PER_DAY = 86_400


class ArtifactStore:
    """Owns the log and status directories and the files inside them."""

    def __init__(self, log_dir: Path, status_dir: Path, *, retention_days: int = 7) -> None:
        self._log_dir = Path(log_dir)
        self._status_dir = Path(status_dir)
        self._retention_days = retention_days

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    @property
    def status_dir(self) -> Path:
        return self._status_dir

    def ensure_directories(self) -> None:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._status_dir.mkdir(parents=True, exist_ok=True)

    def log_path(self, name: str) -> Path:
        return self._log_dir / f"{name}{LOG_SUFFIX}"

    def status_path(self, name: str) -> Path:
        return self._status_dir / f"{name}{STATUS_SUFFIX}"

    def prune(self, now: float | None = None) -> list[Path]:
        """Delete task artifacts older than the retention window.

        Deletion failures are ignored; concurrent prunes may race on the same
        files and the loser simply skips them.
        """

        if self._retention_days <= 0:
            return []

        cutoff = (now if now is not None else time.time()) - self._retention_days * _SECONDS_PER_DAY
        removed: list[Path] = []
        patterns = (
            (self._log_dir, LOG_SUFFIX),
            (self._status_dir, STATUS_SUFFIX),
            (self._status_dir, PARTIAL_STATUS_SUFFIX),
        )
        for directory, suffix in patterns:
            if not directory.is_dir():
                continue
            for path in directory.glob(f"{SESSION_PREFIX}*{suffix}"):
                try:
                    if path.stat().st_mtime >= cutoff:
                        continue
                    path.unlink()
                except OSError as exc:
                    logger.debug("Skipping artifact during prune", extra={"path": str(path), "error": str(exc)})
                    continue
                logger.debug("Pruned artifact", extra={"path": str(path)})
                removed.append(path)
        return removed

    def read_status(self, name: str) -> StatusRecord | None:
        return read_status_file(self.status_path(name))

    def remove_status(self, name: str) -> bool:
        """Best-effort removal of a status record; returns whether a file was removed."""

        try:
            self.status_path(name).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.debug("Could not remove status file", extra={"session": name, "error": str(exc)})
            return False
        return True

    def recent_statuses(self, limit: int) -> list[StoredStatus]:
        """Return up to ``limit`` status records, newest first by modification time."""

        if limit <= 0 or not self._status_dir.is_dir():
            return []

        candidates: list[tuple[float, Path]] = []
        for path in self._status_dir.glob(f"{SESSION_PREFIX}*{STATUS_SUFFIX}"):
            try:
                candidates.append((path.stat().st_mtime, path))
            except OSError:
                continue
        candidates.sort(key=lambda item: item[0], reverse=True)

        results: list[StoredStatus] = []
        for mtime, path in candidates:
            record = read_status_file(path)
            if record is None:
                continue
            results.append(
                StoredStatus(
                    name=path.name[: -len(STATUS_SUFFIX)],
                    path=path,
                    modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
                    record=record,
                )
            )
            if len(results) >= limit:
                break
        return results

    def read_log(self, name: str) -> str | None:
        try:
            return self.log_path(name).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None

    def read_log_tail(self, name: str, lines: int) -> str | None:
        """Return the last ``lines`` lines of a log, or ``None`` if it does not exist."""

        try:
            with self.log_path(name).open("r", encoding="utf-8", errors="replace") as handle:
                tail = deque(handle, maxlen=max(lines, 0))
        except FileNotFoundError:
            return None
        return "".join(tail).rstrip("\n")


__all__ = ["ArtifactStore", "LOG_SUFFIX", "PARTIAL_STATUS_SUFFIX", "SESSION_PREFIX", "STATUS_SUFFIX"]
