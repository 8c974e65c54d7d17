"""Command-line front end for taskmux."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict, dataclass
from pathlib import Path

from pydantic import ValidationError

from . import __version__
from .config import TaskmuxSettings, get_settings
from .errors import InvalidArgumentError, NotFoundError, TaskmuxError
from .host import TmuxHost
from .storage import ArtifactStore, StatusRecord, StoredStatus
from .tasks import (
    CheckReport,
    LaunchedTask,
    SessionTerminator,
    StatusReport,
    TailSnapshot,
    TaskInspector,
    TaskLauncher,
    TaskListing,
    abbreviate,
    build_request,
    format_duration,
    outcome_label,
)


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI; records go to stderr."""

    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


@dataclass(slots=True)
class Runtime:
    settings: TaskmuxSettings
    host: TmuxHost
    store: ArtifactStore

    @property
    def launcher(self) -> TaskLauncher:
        return TaskLauncher(self.host, self.store, self.settings)

    @property
    def inspector(self) -> TaskInspector:
        return TaskInspector(self.host, self.store, self.settings)

    @property
    def terminator(self) -> SessionTerminator:
        return SessionTerminator(self.host, self.store)


def load_host(settings: TaskmuxSettings) -> TmuxHost:
    return TmuxHost(Path(settings.tmux_path) if settings.tmux_path else None)


def load_runtime(settings: TaskmuxSettings) -> Runtime:
    store = ArtifactStore(
        settings.log_dir, settings.status_dir, retention_days=settings.retention_days
    )
    return Runtime(settings=settings, host=load_host(settings), store=store)


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _record_lines(record: StatusRecord, *, width: int) -> list[str]:
    return [
        f"Exit code: {record.exit_code or '?'} ({outcome_label(record)})",
        f"Command: {abbreviate(record.command, width)}",
        f"Started: {record.started_at or '-'}",
        f"Finished: {record.finished_at or '-'}",
        f"Duration: {format_duration(record.duration)}",
        f"Workdir: {record.workdir or '-'}",
        f"Env: {record.env_vars or '-'}",
        f"Log file: {record.log_file or '-'}",
    ]


def render_launch(task: LaunchedTask) -> str:
    lines = [
        "Task started in tmux session",
        f"Session: {task.name}",
        f"Log file: {task.log_file}",
        f"Status file: {task.status_file}",
        f"Workdir: {task.workdir}",
        "Monitoring commands:",
        f"  taskmux check {task.name}",
        f"  taskmux tail {task.name}",
        f"  taskmux attach {task.name}",
        f"  taskmux kill {task.name}",
    ]
    if task.alive:
        lines += ["Initial output:", task.initial_output or "(Waiting for output...)"]
    elif task.record is not None and task.record.succeeded:
        lines += ["Task finished during startup", task.initial_output]
    else:
        lines += ["Session ended immediately - check if command is valid", task.initial_output]
    return "\n".join(lines)


def render_check(report: CheckReport, *, width: int) -> str:
    if report.alive:
        lines = [f"Session '{report.name}' is running"]
        if report.record is not None:
            lines += [f"Started: {report.record.started_at or '-'}", f"Workdir: {report.record.workdir or '-'}"]
        lines += ["Recent output:", report.output]
        return "\n".join(lines)

    lines = [f"Session '{report.name}' has completed"]
    if report.record is not None:
        lines += _record_lines(report.record, width=width)
    else:
        lines.append("Outcome unknown: no status record (killed before completion?)")
    if report.log_file:
        lines += [f"Log file found: {report.log_file}", "Last lines of log:", report.output]
    return "\n".join(lines)


def render_status(report: StatusReport, *, width: int) -> str:
    lines = [f"{report.name}: {report.state}" + (" (session alive)" if report.alive else "")]
    if report.record is not None:
        lines += _record_lines(report.record, width=width)
    return "\n".join(lines)


def _summary_line(entry: StoredStatus, *, width: int) -> str:
    record = entry.record
    return (
        f"  {entry.name}: exit {record.exit_code or '?'} ({outcome_label(record)}) "
        f"{format_duration(record.duration)} {abbreviate(record.command, width)}"
    )


def render_summary(entries: list[StoredStatus], *, width: int) -> str:
    if not entries:
        return "  No status files found"
    return "\n".join(_summary_line(entry, width=width) for entry in entries)


def render_listing(listing: TaskListing, *, width: int) -> str:
    lines = ["Active task sessions:"]
    if not listing.live:
        lines.append("  No active task sessions")
    for task in listing.live:
        started = task.record.started_at if task.record else None
        if not started and task.created_at is not None:
            started = task.created_at.strftime("%Y-%m-%dT%H:%M:%SZ")
        workdir = task.record.workdir if task.record else ""
        lines.append(f"  {task.name}  started {started or '-'}" + (f"  in {workdir}" if workdir else ""))
    lines.append("Recent task statuses:")
    lines.append(render_summary(listing.history, width=width))
    return "\n".join(lines)


def render_snapshot(snapshot: TailSnapshot) -> str:
    stamp = snapshot.taken_at.strftime("%Y-%m-%d %H:%M:%S")
    if snapshot.final:
        header = f"[{stamp}] Session '{snapshot.name}' ended; last lines of log:"
    else:
        header = f"[{stamp}] {snapshot.name}"
    return f"{header}\n{snapshot.output}"


def cmd_run(args: argparse.Namespace, runtime: Runtime) -> int:
    request = build_request(
        args.type, args.command, workdir=args.workdir, env=args.env or [], notify=args.notify
    )
    launched = asyncio.run(runtime.launcher.launch(request))
    print(render_launch(launched))
    return 0


def cmd_check(args: argparse.Namespace, runtime: Runtime) -> int:
    report = asyncio.run(runtime.inspector.check(args.name))
    if args.json:
        _print_json(asdict(report))
    else:
        print(render_check(report, width=runtime.settings.command_display_width))
    return 0


def cmd_list(args: argparse.Namespace, runtime: Runtime) -> int:
    listing = asyncio.run(runtime.inspector.list_tasks(args.limit))
    if args.json:
        _print_json(asdict(listing))
    else:
        print(render_listing(listing, width=runtime.settings.command_display_width))
    return 0


def cmd_status(args: argparse.Namespace, runtime: Runtime) -> int:
    width = runtime.settings.command_display_width
    if args.name is None:
        entries = runtime.inspector.summary()
        if args.json:
            _print_json([asdict(entry) for entry in entries])
        else:
            print("Recent task statuses:")
            print(render_summary(entries, width=width))
        return 0

    report = asyncio.run(runtime.inspector.status(args.name))
    if args.json:
        _print_json(asdict(report))
    else:
        print(render_status(report, width=width))
    return 0


def cmd_tail(args: argparse.Namespace, runtime: Runtime) -> int:
    async def _follow() -> None:
        async for snapshot in runtime.inspector.tail(
            args.name, interval=args.interval, lines=args.lines
        ):
            print(render_snapshot(snapshot), flush=True)

    try:
        asyncio.run(_follow())
    except KeyboardInterrupt:
        print("Stopped tailing; the task keeps running.", file=sys.stderr)
    return 0


def cmd_attach(args: argparse.Namespace, runtime: Runtime) -> int:
    if not asyncio.run(runtime.host.is_alive(args.name)):
        raise NotFoundError(f"Session not found: {args.name}")
    print(f"Attaching to session: {args.name}")
    print("Press Ctrl+b then d to detach without killing the session")
    return asyncio.run(runtime.host.attach(args.name))


def cmd_kill(args: argparse.Namespace, runtime: Runtime) -> int:
    if args.name != "all":
        outcome = asyncio.run(runtime.terminator.kill(args.name))
        print(f"Killed session: {outcome.name}")
        return 0

    outcomes = asyncio.run(runtime.terminator.kill_all())
    if not outcomes:
        print("No task sessions to kill")
        return 0
    print("Killing all task sessions:")
    for outcome in outcomes:
        if outcome.killed:
            print(f"  Killed: {outcome.name}")
        else:
            print(f"  Failed: {outcome.name} ({outcome.error})")
    return 0 if all(outcome.killed for outcome in outcomes) else 1


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        raise InvalidArgumentError(message)


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {value}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return number


_RUN_VALUE_OPTIONS = {"--workdir", "--env"}
_RUN_FLAG_OPTIONS = {"--notify", "-h", "--help"}


def split_run_arguments(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split ``run`` arguments into (type and options, command vector).

    Options are recognised up to an explicit ``--`` or the first bare word
    after the task type; everything after that belongs to the command.
    """

    options: list[str] = []
    rest = list(argv)
    seen_type = False
    while rest:
        token = rest[0]
        if token == "--":
            rest.pop(0)
            break
        if token in _RUN_VALUE_OPTIONS:
            options += rest[:2]
            del rest[:2]
        elif token in _RUN_FLAG_OPTIONS or token.startswith(("--workdir=", "--env=")):
            options.append(rest.pop(0))
        elif not seen_type:
            seen_type = True
            options.append(rest.pop(0))
        else:
            break
    return options, rest


EPILOG = """\
examples:
  taskmux run build "npm run build"
  taskmux run test --workdir ./api --env CI=1 -- pytest --verbose
  taskmux run server --notify "python -m http.server 8000"
  taskmux check task-build-1729519263
  taskmux tail task-server-1729519263 --interval 5
  taskmux kill all

environment:
  LOG_DIR, STATUS_DIR, PRUNE_RETENTION_DAYS, STATUS_SUMMARY_LIMIT,
  TAIL_DEFAULT_LINES, TAIL_DEFAULT_INTERVAL
"""


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="taskmux",
        description="Execute long-running tasks in managed tmux sessions with logging.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd")

    p_run = sub.add_parser(
        "run",
        help="Run a command in a new tmux session",
        usage="taskmux run <type> [--workdir DIR] [--env KEY=VALUE]... [--notify] [--] <command...>",
    )
    p_run.add_argument("type", help="Task type label, e.g. build, test, deploy, server")
    p_run.add_argument("--workdir", help="Directory to run the command in")
    p_run.add_argument(
        "--env", action="append", metavar="KEY=VALUE", help="Environment override (repeatable)"
    )
    p_run.add_argument("--notify", action="store_true", help="Send a desktop notification on completion")
    p_run.set_defaults(command=[])
    p_run.set_defaults(func=cmd_run)

    p_check = sub.add_parser("check", help="Check status and output of a session")
    p_check.add_argument("name")
    p_check.add_argument("--json", action="store_true", help="Output JSON")
    p_check.set_defaults(func=cmd_check)

    p_list = sub.add_parser("list", help="List active task sessions and recent statuses")
    p_list.add_argument("--limit", type=_positive_int, default=None, help="Historical entries to show")
    p_list.add_argument("--json", action="store_true", help="Output JSON")
    p_list.set_defaults(func=cmd_list)

    p_status = sub.add_parser("status", help="Show a task's status record, or a summary of recent ones")
    p_status.add_argument("name", nargs="?")
    p_status.add_argument("--json", action="store_true", help="Output JSON")
    p_status.set_defaults(func=cmd_status)

    p_tail = sub.add_parser("tail", help="Follow a session's output until it ends")
    p_tail.add_argument("name")
    p_tail.add_argument("--interval", type=_positive_float, default=None, help="Seconds between snapshots")
    p_tail.add_argument("--lines", type=_positive_int, default=None, help="Lines per snapshot")
    p_tail.set_defaults(func=cmd_tail)

    p_attach = sub.add_parser("attach", help="Attach to an interactive session")
    p_attach.add_argument("name")
    p_attach.set_defaults(func=cmd_attach)

    p_kill = sub.add_parser("kill", help="Kill a session, or all task sessions with 'all'")
    p_kill.add_argument("name")
    p_kill.set_defaults(func=cmd_kill)

    sub.add_parser("help", help="Show this help message")

    return parser


def _load_settings() -> TaskmuxSettings:
    try:
        return get_settings()
    except ValidationError as exc:
        raise InvalidArgumentError(f"Invalid configuration: {exc}") from exc


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        argv = list(sys.argv[1:] if argv is None else argv)
        command: list[str] = []
        if argv and argv[0] == "run":
            run_options, command = split_run_arguments(argv[1:])
            argv = ["run", *run_options]
        args = parser.parse_args(argv)
        if args.cmd == "run":
            args.command = command
        if not hasattr(args, "func"):
            parser.print_help()
            return 0

        settings = _load_settings()
        configure_logging(settings.log_level)
        return args.func(args, load_runtime(settings))
    except TaskmuxError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
