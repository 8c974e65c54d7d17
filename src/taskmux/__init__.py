"""Detached task runner built on tmux sessions."""

__version__ = "0.1.0"

__all__ = ["__version__"]
