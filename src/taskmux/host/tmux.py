"""Async adapter for the tmux session host."""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..errors import HostNotFoundError, LaunchFailureError, SessionHostError
from .utils import sanitize_environment

logger = logging.getLogger(__name__)

_NO_SERVER_MARKERS = ("no server running", "error connecting to", "no sessions")


@dataclass(slots=True)
class HostResult:
    """Holds the outcome of a tmux invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(slots=True)
class HostSession:
    """A live session reported by the host."""

    name: str
    created_at: int | None = None


def _target(name: str) -> str:
    # "=" forces an exact session name match instead of tmux's prefix matching.
    return f"={name}"


def _strip_trailing_blank_lines(text: str) -> str:
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


class TmuxHost:
    """Execute tmux commands asynchronously."""

    def __init__(self, executable: Path | None = None) -> None:
        self._executable_path = self._resolve_executable(executable)

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise HostNotFoundError(f"tmux executable not found at {candidate}")

        binary = shutil.which("tmux")
        if binary is None:
            raise HostNotFoundError(
                "tmux is not installed (brew install tmux / apt-get install tmux / dnf install tmux)"
            )
        return Path(binary)

    async def create(self, name: str, command: str, workdir: Path | None = None) -> None:
        """Start a detached session running ``command`` under bash."""

        if workdir is not None:
            result = await self._invoke(
                "new-session", "-d", "-s", name, "-c", str(workdir), "bash", "-c", command
            )
            if result.ok:
                return
            logger.warning(
                "Directory-scoped session creation failed, retrying with cd prefix",
                extra={"session": name, "workdir": str(workdir), "stderr": result.stderr.strip()},
            )
            command = f"cd -- {shlex.quote(str(workdir))} || exit 1\n{command}"

        result = await self._invoke("new-session", "-d", "-s", name, "bash", "-c", command)
        if not result.ok:
            diagnostics = result.stderr.strip() or result.stdout.strip()
            raise LaunchFailureError(
                f"tmux could not create session {name}: {diagnostics or 'exit code ' + str(result.returncode)}",
                diagnostics=diagnostics,
            )

    async def is_alive(self, name: str) -> bool:
        result = await self._invoke("has-session", "-t", _target(name))
        return result.ok

    async def capture_output(self, name: str, lines: int) -> str:
        result = await self._invoke(
            "capture-pane", "-p", "-t", f"{_target(name)}:", "-S", f"-{max(lines, 1)}"
        )
        if not result.ok:
            raise SessionHostError(
                f"Could not capture output of {name}: {result.stderr.strip()}"
            )
        return _strip_trailing_blank_lines(result.stdout)

    async def kill(self, name: str) -> bool:
        result = await self._invoke("kill-session", "-t", _target(name))
        return result.ok

    async def list_sessions(self, prefix: str = "") -> list[HostSession]:
        result = await self._invoke(
            "list-sessions", "-F", "#{session_name}\t#{session_created}"
        )
        if not result.ok:
            message = result.stderr.strip().lower()
            if any(marker in message for marker in _NO_SERVER_MARKERS):
                return []
            raise SessionHostError(f"Could not list tmux sessions: {result.stderr.strip()}")

        sessions: list[HostSession] = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            name, _, created = line.partition("\t")
            if not name.startswith(prefix):
                continue
            sessions.append(
                HostSession(name=name, created_at=int(created) if created.isdigit() else None)
            )
        return sessions

    async def attach(self, name: str) -> int:
        """Attach the caller's terminal to a session and wait for detach."""

        cmd = [str(self._executable_path), "attach-session", "-t", _target(name)]
        process = await asyncio.create_subprocess_exec(*cmd, env=sanitize_environment())
        return await process.wait()

    async def _invoke(self, *args: str) -> HostResult:
        cmd = [str(self._executable_path), *args]
        logger.debug("Invoking tmux", extra={"tmux_args": args})
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return HostResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeSessionHost(TmuxHost):
    """Test double that keeps sessions in memory."""

    def __init__(  # type: ignore[override]
        self,
        sessions: Iterable[str] | None = None,
        *,
        outputs: dict[str, str] | None = None,
        fail_create: bool = False,
    ) -> None:
        self._executable_path = Path("/tmp/fake-tmux")
        self.sessions: dict[str, str] = {name: "" for name in (sessions or [])}
        self.outputs: dict[str, str] = dict(outputs or {})
        self.fail_create = fail_create
        self.created: list[tuple[str, str, Path | None]] = []
        self.killed: list[str] = []
        self.attached: list[str] = []

    async def create(self, name: str, command: str, workdir: Path | None = None) -> None:  # type: ignore[override]
        if self.fail_create:
            raise LaunchFailureError(f"tmux could not create session {name}", diagnostics="fake failure")
        self.created.append((name, command, workdir))
        self.sessions[name] = command

    async def is_alive(self, name: str) -> bool:  # type: ignore[override]
        return name in self.sessions

    async def capture_output(self, name: str, lines: int) -> str:  # type: ignore[override]
        if name not in self.sessions:
            raise SessionHostError(f"Could not capture output of {name}: can't find session")
        output = self.outputs.get(name, "").splitlines()
        return "\n".join(output[-lines:])

    async def kill(self, name: str) -> bool:  # type: ignore[override]
        if self.sessions.pop(name, None) is None:
            return False
        self.killed.append(name)
        return True

    async def list_sessions(self, prefix: str = "") -> list[HostSession]:  # type: ignore[override]
        return [HostSession(name=name) for name in self.sessions if name.startswith(prefix)]

    async def attach(self, name: str) -> int:  # type: ignore[override]
        self.attached.append(name)
        return 0

    def end(self, name: str) -> None:
        """Simulate the hosted command exiting."""

        self.sessions.pop(name, None)


__all__ = ["FakeSessionHost", "HostResult", "HostSession", "TmuxHost"]
