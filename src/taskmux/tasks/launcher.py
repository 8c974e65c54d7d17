"""Launch tasks into detached sessions."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Sequence

from pydantic import ValidationError

from ..config import TaskmuxSettings
from ..errors import InvalidArgumentError, NotFoundError, SessionHostError
from ..host import TmuxHost
from ..storage import SESSION_PREFIX, ArtifactStore
from .models import LaunchedTask, TaskRequest
from .wrapper import build_wrapper_script

logger = logging.getLogger(__name__)

INITIAL_OUTPUT_LINES = 20


def _validation_message(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        message = str(error.get("msg", "invalid value"))
        messages.append(message.removeprefix("Value error, "))
    return "; ".join(messages)


def build_request(
    task_type: str,
    command: Sequence[str],
    *,
    workdir: str | Path | None = None,
    env: Sequence[str] = (),
    notify: bool = False,
) -> TaskRequest:
    """Validate launch arguments, raising :class:`InvalidArgumentError`."""

    try:
        return TaskRequest(
            type=task_type,
            command=list(command),
            workdir=Path(workdir) if workdir is not None else None,
            env=list(env),
            notify=notify,
        )
    except ValidationError as exc:
        raise InvalidArgumentError(_validation_message(exc)) from exc


class TaskLauncher:
    """Allocate a session name, prepare artifacts and start the wrapped command."""

    def __init__(
        self,
        host: TmuxHost,
        store: ArtifactStore,
        settings: TaskmuxSettings,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._host = host
        self._store = store
        self._settings = settings
        self._clock = clock

    async def launch(self, request: TaskRequest) -> LaunchedTask:
        workdir = self._resolve_workdir(request.workdir)

        self._store.ensure_directories()
        self._store.prune()

        name = await self._allocate_name(request.type)
        log_file = self._store.log_path(name)
        status_file = self._store.status_path(name)
        self._store.remove_status(name)
        log_file.touch()

        script = build_wrapper_script(
            name=name,
            command=request.command,
            log_file=log_file,
            status_file=status_file,
            workdir=workdir,
            env=request.env_pairs,
            notify=request.notify,
        )
        await self._host.create(name, script, workdir)
        logger.info(
            "Task session created",
            extra={"session": name, "log_file": str(log_file), "workdir": str(workdir)},
        )

        if self._settings.launch_grace_seconds:
            await asyncio.sleep(self._settings.launch_grace_seconds)

        alive = await self._host.is_alive(name)
        initial_output = ""
        record = None
        if alive:
            try:
                initial_output = await self._host.capture_output(name, INITIAL_OUTPUT_LINES)
            except SessionHostError:
                alive = False
        if not alive:
            record = self._store.read_status(name)
            if record is None or not record.succeeded:
                logger.warning("Task session ended during launch grace period", extra={"session": name})
            initial_output = self._store.read_log(name) or ""

        return LaunchedTask(
            name=name,
            log_file=log_file,
            status_file=status_file,
            workdir=workdir,
            alive=alive,
            initial_output=initial_output,
            record=record,
        )

    @staticmethod
    def _resolve_workdir(workdir: Path | None) -> Path:
        if workdir is None:
            return Path.cwd()
        candidate = workdir.expanduser()
        if not candidate.is_dir():
            raise NotFoundError(f"Working directory not found: {workdir}")
        return candidate.resolve()

    async def _allocate_name(self, task_type: str) -> str:
        """Return ``task-<type>-<epoch>``, moving to the next free second on collision."""

        epoch = int(self._clock())
        while True:
            name = f"{SESSION_PREFIX}{task_type}-{epoch}"
            if not self._store.log_path(name).exists() and not await self._host.is_alive(name):
                return name
            epoch += 1


__all__ = ["TaskLauncher", "build_request"]
