"""Read-only queries over live sessions and stored artifacts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator

from ..config import TaskmuxSettings
from ..errors import NotFoundError, SessionHostError
from ..host import TmuxHost
from ..storage import SESSION_PREFIX, ArtifactStore, StatusRecord, StoredStatus
from .formatting import outcome_label

CHECK_OUTPUT_LINES = 30


@dataclass(slots=True)
class CheckReport:
    name: str
    alive: bool
    output: str
    record: StatusRecord | None
    log_file: str | None


@dataclass(slots=True)
class StatusReport:
    name: str
    state: str
    alive: bool
    record: StatusRecord | None


@dataclass(slots=True)
class LiveTask:
    name: str
    created_at: datetime | None
    record: StatusRecord | None


@dataclass(slots=True)
class TaskListing:
    live: list[LiveTask] = field(default_factory=list)
    history: list[StoredStatus] = field(default_factory=list)


@dataclass(slots=True)
class TailSnapshot:
    taken_at: datetime
    name: str
    output: str
    final: bool


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskInspector:
    """Answer check, status, list and tail queries."""

    def __init__(self, host: TmuxHost, store: ArtifactStore, settings: TaskmuxSettings) -> None:
        self._host = host
        self._store = store
        self._settings = settings

    async def check(self, name: str) -> CheckReport:
        record = self._store.read_status(name)
        log_path = self._store.log_path(name)
        log_file = str(log_path) if log_path.exists() else None

        if await self._host.is_alive(name):
            try:
                output = await self._host.capture_output(name, CHECK_OUTPUT_LINES)
            except SessionHostError:
                # Ended between the liveness probe and the capture.
                record = self._store.read_status(name)
            else:
                return CheckReport(name=name, alive=True, output=output, record=record, log_file=log_file)

        if record is None and log_file is None:
            raise NotFoundError(f"Session not found: {name}")
        output = self._store.read_log_tail(name, CHECK_OUTPUT_LINES) or ""
        return CheckReport(name=name, alive=False, output=output, record=record, log_file=log_file)

    async def status(self, name: str) -> StatusReport:
        alive = await self._host.is_alive(name)
        record = self._store.read_status(name)
        if record is None:
            if not alive:
                raise NotFoundError(f"No status record for {name}")
            return StatusReport(name=name, state="running", alive=True, record=None)
        return StatusReport(name=name, state=outcome_label(record), alive=alive, record=record)

    def summary(self, limit: int | None = None) -> list[StoredStatus]:
        return self._store.recent_statuses(limit or self._settings.summary_limit)

    async def list_tasks(self, limit: int | None = None) -> TaskListing:
        live = [
            LiveTask(
                name=session.name,
                created_at=(
                    datetime.fromtimestamp(session.created_at, tz=timezone.utc)
                    if session.created_at is not None
                    else None
                ),
                record=self._store.read_status(session.name),
            )
            for session in await self._host.list_sessions(SESSION_PREFIX)
        ]
        return TaskListing(live=live, history=self.summary(limit))

    async def tail(
        self,
        name: str,
        *,
        interval: float | None = None,
        lines: int | None = None,
        stop: asyncio.Event | None = None,
    ) -> AsyncIterator[TailSnapshot]:
        """Yield output snapshots until the session ends or ``stop`` is set.

        While the session is alive a snapshot is produced every ``interval``
        seconds; after it ends one final snapshot is read from the log file.
        """

        interval = interval if interval is not None else self._settings.tail_interval
        lines = lines if lines is not None else self._settings.tail_lines

        if not await self._host.is_alive(name) and not self._store.log_path(name).exists():
            raise NotFoundError(f"Session not found: {name}")

        while await self._host.is_alive(name):
            try:
                output = await self._host.capture_output(name, lines)
            except SessionHostError:
                break
            yield TailSnapshot(taken_at=_now(), name=name, output=output, final=False)
            if await _wait_or_stop(stop, interval):
                return

        if stop is not None and stop.is_set():
            return
        output = self._store.read_log_tail(name, lines) or ""
        yield TailSnapshot(taken_at=_now(), name=name, output=output, final=True)


async def _wait_or_stop(stop: asyncio.Event | None, interval: float) -> bool:
    """Sleep for ``interval``; return True if ``stop`` fired first."""

    if stop is None:
        await asyncio.sleep(interval)
        return False
    try:
        await asyncio.wait_for(stop.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return False
    return True


__all__ = [
    "CheckReport",
    "LiveTask",
    "StatusReport",
    "TailSnapshot",
    "TaskInspector",
    "TaskListing",
]
