"""Terminate task sessions and clear their status records."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import NotFoundError, SessionHostError
from ..host import TmuxHost
from ..storage import SESSION_PREFIX, ArtifactStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class KillOutcome:
    name: str
    killed: bool
    status_removed: bool
    error: str | None = None


class SessionTerminator:
    def __init__(self, host: TmuxHost, store: ArtifactStore) -> None:
        self._host = host
        self._store = store

    async def kill(self, name: str) -> KillOutcome:
        if not await self._host.is_alive(name):
            raise NotFoundError(f"Session not found: {name}")
        if not await self._host.kill(name):
            raise SessionHostError(f"Could not kill session {name}")
        return KillOutcome(name=name, killed=True, status_removed=self._store.remove_status(name))

    async def kill_all(self) -> list[KillOutcome]:
        """Kill every live ``task-`` session; failures are reported per session."""

        outcomes: list[KillOutcome] = []
        for session in await self._host.list_sessions(SESSION_PREFIX):
            error = None
            try:
                killed = await self._host.kill(session.name)
            except SessionHostError as exc:
                killed = False
                error = str(exc)
            if not killed:
                error = error or "kill-session failed"
                logger.warning("Could not kill task session", extra={"session": session.name, "error": error})
            outcomes.append(
                KillOutcome(
                    name=session.name,
                    killed=killed,
                    status_removed=self._store.remove_status(session.name),
                    error=error,
                )
            )
        return outcomes


__all__ = ["KillOutcome", "SessionTerminator"]
