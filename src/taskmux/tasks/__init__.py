"""Task lifecycle components: launch, inspect, terminate."""

from .formatting import abbreviate, format_duration, outcome_label
from .inspector import CheckReport, LiveTask, StatusReport, TailSnapshot, TaskInspector, TaskListing
from .launcher import TaskLauncher, build_request
from .models import LaunchedTask, TaskRequest
from .terminator import KillOutcome, SessionTerminator
from .wrapper import build_wrapper_script

__all__ = [
    "CheckReport",
    "KillOutcome",
    "LaunchedTask",
    "LiveTask",
    "SessionTerminator",
    "StatusReport",
    "TailSnapshot",
    "TaskInspector",
    "TaskLauncher",
    "TaskListing",
    "TaskRequest",
    "abbreviate",
    "build_request",
    "build_wrapper_script",
    "format_duration",
    "outcome_label",
]
