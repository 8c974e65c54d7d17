"""Status record encoding.

A status file is a flat list of shell assignments, one per field::

    EXIT_CODE=0
    COMMAND='npm run build'
    STARTED_AT=2024-10-21T14:01:03Z

Values use POSIX single-quote rules, so the file stays sourceable by a
shell while being decoded here without touching any ambient scope.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import asdict
from pathlib import Path
from typing import Mapping

from .models import StatusRecord

FIELD_KEYS: dict[str, str] = {name: name.upper() for name in StatusRecord.field_names()}
_KEY_FIELDS: dict[str, str] = {key: name for name, key in FIELD_KEYS.items()}


def encode_fields(values: Mapping[str, str]) -> str:
    """Encode ``field name -> value`` pairs as assignment lines.

    Fields are emitted in record order; names outside the record are rejected.
    """

    unknown = set(values) - set(FIELD_KEYS)
    if unknown:
        raise ValueError(f"Unknown status record fields: {', '.join(sorted(unknown))}")
    lines = [
        f"{key}={shlex.quote(str(values[name]))}"
        for name, key in FIELD_KEYS.items()
        if name in values
    ]
    return "\n".join(lines) + "\n" if lines else ""


def encode_record(record: StatusRecord) -> str:
    return encode_fields(asdict(record))


def decode_record(text: str) -> StatusRecord:
    """Decode assignment text into a :class:`StatusRecord`.

    Unknown keys are ignored and missing keys stay empty.
    """

    values: dict[str, str] = {}
    lexer = shlex.shlex(text, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = "#"
    for token in lexer:
        key, sep, value = token.partition("=")
        if not sep:
            continue
        name = _KEY_FIELDS.get(key)
        if name is not None:
            values[name] = value
    return StatusRecord(**values)


def read_status_file(path: Path) -> StatusRecord | None:
    """Return the decoded record, or ``None`` when the file does not exist."""

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    try:
        return decode_record(text)
    except ValueError:
        # Unbalanced quotes from a truncated file; keep what is parseable line by line.
        return _decode_lines(text)


def _decode_lines(text: str) -> StatusRecord:
    values: dict[str, str] = {}
    for line in text.splitlines():
        try:
            record = decode_record(line)
        except ValueError:
            continue
        values.update({name: value for name, value in asdict(record).items() if value})
    return StatusRecord(**values)


def write_status_file(path: Path, record: StatusRecord) -> None:
    """Write ``record`` atomically through a temporary sibling file."""

    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(encode_record(record), encoding="utf-8")
    os.replace(tmp_path, path)


__all__ = [
    "FIELD_KEYS",
    "decode_record",
    "encode_fields",
    "encode_record",
    "read_status_file",
    "write_status_file",
]
