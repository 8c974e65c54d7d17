"""Error taxonomy shared by the taskmux components."""

from __future__ import annotations


class TaskmuxError(RuntimeError):
    """Base class for taskmux errors; carries the CLI exit code."""

    exit_code = 1


class InvalidArgumentError(TaskmuxError):
    """Raised for bad flags, an empty command or a malformed env key."""


class NotFoundError(TaskmuxError):
    """Raised when a workdir, session or status record does not exist."""


class LaunchFailureError(TaskmuxError):
    """Raised when the session host cannot create a session."""

    def __init__(self, message: str, *, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class SessionHostError(TaskmuxError):
    """Raised when a session host call fails unexpectedly."""


class HostNotFoundError(SessionHostError):
    """Raised when the tmux executable cannot be located."""

    exit_code = 127


__all__ = [
    "TaskmuxError",
    "InvalidArgumentError",
    "NotFoundError",
    "LaunchFailureError",
    "SessionHostError",
    "HostNotFoundError",
]
