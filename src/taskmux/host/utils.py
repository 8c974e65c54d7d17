"""Utility helpers for the tmux host adapter."""

from __future__ import annotations

import os

# tmux refuses to attach from inside another client while these are set.
_SANITIZED_VARS = {
    "TMUX",
    "TMUX_PANE",
}


def sanitize_environment() -> dict[str, str]:
    """Return a client environment suitable for an interactive attach."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    return env
