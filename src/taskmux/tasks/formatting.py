"""Pure display helpers."""

from __future__ import annotations

from ..storage import StatusRecord

ELLIPSIS = "..."


def format_duration(seconds: int | None) -> str:
    """Render a duration as ``45s``, ``2m 05s`` or ``1h 02m 03s``."""

    if seconds is None or seconds < 0:
        return "-"
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def abbreviate(text: str, width: int) -> str:
    """Collapse whitespace and truncate ``text`` to ``width`` characters."""

    collapsed = " ".join(text.split())
    if len(collapsed) <= width:
        return collapsed
    if width <= len(ELLIPSIS):
        return collapsed[:width]
    return collapsed[: width - len(ELLIPSIS)] + ELLIPSIS


def outcome_label(record: StatusRecord | None) -> str:
    if record is None:
        return "unknown"
    code = record.returncode
    if code is None:
        return "unknown"
    return "success" if code == 0 else "failure"


__all__ = ["abbreviate", "format_duration", "outcome_label"]
