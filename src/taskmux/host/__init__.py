"""Session host adapters."""

from .tmux import FakeSessionHost, HostResult, HostSession, TmuxHost

__all__ = [
    "FakeSessionHost",
    "HostResult",
    "HostSession",
    "TmuxHost",
]
