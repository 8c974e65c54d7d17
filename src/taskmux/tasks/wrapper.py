"""Build the bash script that the session host runs for a task."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Sequence

from ..storage.codec import encode_fields

SUCCESS_TRAILER = "Task completed successfully."
FAILURE_TRAILER = "Task failed with exit code"


def render_command(command: Sequence[str]) -> str:
    """Render the caller's command as shell text.

    A single argument is taken as a shell snippet (``run build "npm run build"``);
    several arguments are quoted one by one.
    """

    if len(command) == 1:
        return command[0]
    return shlex.join(command)


def render_env(pairs: Sequence[tuple[str, str]]) -> str:
    return " ".join(f"{key}={shlex.quote(value)}" for key, value in pairs)


def build_wrapper_script(
    *,
    name: str,
    command: Sequence[str],
    log_file: Path,
    status_file: Path,
    workdir: Path,
    env: Sequence[tuple[str, str]] = (),
    notify: bool = False,
) -> str:
    """Return the bash source executed inside the task's session.

    The script tees combined output to ``log_file``, keeps the command's own
    exit code, appends a trailer line and writes the status record in a
    single rename once the command has finished.
    """

    command_text = render_command(command)
    log = shlex.quote(str(log_file))
    status = shlex.quote(str(status_file))
    status_tmp = shlex.quote(f"{status_file}.tmp")
    static_fields = encode_fields(
        {
            "command": command_text,
            "log_file": str(log_file),
            "workdir": str(workdir),
            "env_vars": render_env(env),
        }
    )

    lines: list[str] = []
    for key, value in env:
        lines.append(f"export {key}={shlex.quote(value)}")
    lines += [
        "read -r __tm_started_epoch __tm_started_at < <(date -u '+%s %Y-%m-%dT%H:%M:%SZ')",
        "{",
        command_text,
        f"}} 2>&1 | tee -a {log}",
        "__tm_exit=${PIPESTATUS[0]}",
        'if [ "$__tm_exit" -eq 0 ]; then',
        f"  echo {shlex.quote(SUCCESS_TRAILER)} | tee -a {log}",
        "else",
        f'  echo "{FAILURE_TRAILER} $__tm_exit" | tee -a {log}',
        "fi",
        "read -r __tm_finished_epoch __tm_finished_at < <(date -u '+%s %Y-%m-%dT%H:%M:%SZ')",
        "__tm_duration=$((__tm_finished_epoch - __tm_started_epoch))",
        "{",
        "  printf 'EXIT_CODE=%s\\n' \"$__tm_exit\"",
        "  printf 'STARTED_AT=%s\\n' \"$__tm_started_at\"",
        "  printf 'STARTED_EPOCH=%s\\n' \"$__tm_started_epoch\"",
        "  printf 'FINISHED_AT=%s\\n' \"$__tm_finished_at\"",
        "  printf 'FINISHED_EPOCH=%s\\n' \"$__tm_finished_epoch\"",
        "  printf 'DURATION_SECONDS=%s\\n' \"$__tm_duration\"",
        f"  printf '%s' {shlex.quote(static_fields)}",
        f"}} > {status_tmp} && mv -f {status_tmp} {status}",
    ]
    if notify:
        lines += _notify_lines(name)
    lines.append('exit "$__tm_exit"')
    return "\n".join(lines) + "\n"


def _notify_lines(name: str) -> list[str]:
    title = shlex.quote(f"taskmux: {name}")
    return [
        'if [ "$__tm_exit" -eq 0 ]; then',
        f"  __tm_message={shlex.quote(f'{name} completed successfully')}",
        "else",
        f'  __tm_message={shlex.quote(name)}" failed with exit code $__tm_exit"',
        "fi",
        "if command -v notify-send >/dev/null 2>&1; then",
        f'  notify-send {title} "$__tm_message" >/dev/null 2>&1 || true',
        "elif command -v osascript >/dev/null 2>&1; then",
        "  osascript -e 'on run argv' -e 'display notification (item 1 of argv) with title (item 2 of argv)'"
        f' -e \'end run\' "$__tm_message" {title} >/dev/null 2>&1 || true',
        "fi",
    ]


__all__ = [
    "FAILURE_TRAILER",
    "SUCCESS_TRAILER",
    "build_wrapper_script",
    "render_command",
    "render_env",
]
