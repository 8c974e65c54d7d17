from __future__ import annotations

import asyncio
import os
import time

import pytest

from taskmux.config import TaskmuxSettings
from taskmux.errors import NotFoundError
from taskmux.host import FakeSessionHost
from taskmux.storage import ArtifactStore, StatusRecord, write_status_file
from taskmux.tasks import TaskInspector


class EndingHost(FakeSessionHost):
    """Session that ends after a fixed number of captures."""

    def __init__(self, name: str, captures: int) -> None:
        super().__init__([name], outputs={name: "step 1\nstep 2"})
        self._remaining = captures

    async def capture_output(self, name: str, lines: int) -> str:  # type: ignore[override]
        output = await super().capture_output(name, lines)
        self._remaining -= 1
        if self._remaining <= 0:
            self.end(name)
        return output


def collect(inspector: TaskInspector, name: str, **kwargs):
    async def _run():
        return [snapshot async for snapshot in inspector.tail(name, **kwargs)]

    return asyncio.run(_run())


def test_check_live_session(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    host = FakeSessionHost(["task-build-1"], outputs={"task-build-1": "compiling..."})
    store.log_path("task-build-1").touch()

    report = asyncio.run(TaskInspector(host, store, settings).check("task-build-1"))

    assert report.alive
    assert report.output == "compiling..."
    assert report.record is None
    assert report.log_file == str(store.log_path("task-build-1"))


def test_check_finished_session(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    store.log_path("task-build-1").write_text("ok\nTask completed successfully.\n", encoding="utf-8")
    write_status_file(store.status_path("task-build-1"), StatusRecord(exit_code="0", duration_seconds="12"))

    report = asyncio.run(TaskInspector(FakeSessionHost(), store, settings).check("task-build-1"))

    assert not report.alive
    assert report.record.succeeded
    assert report.output == "ok\nTask completed successfully."


def test_check_killed_session_reports_unknown_outcome(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    store.log_path("task-build-1").write_text("half way\n", encoding="utf-8")

    report = asyncio.run(TaskInspector(FakeSessionHost(), store, settings).check("task-build-1"))

    assert report.record is None
    assert report.output == "half way"


def test_check_unknown_session(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(TaskInspector(FakeSessionHost(), store, settings).check("task-nope-1"))


def test_status_states(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    host = FakeSessionHost(["task-run-1"])
    write_status_file(store.status_path("task-done-1"), StatusRecord(exit_code="3"))
    inspector = TaskInspector(host, store, settings)

    assert asyncio.run(inspector.status("task-run-1")).state == "running"
    assert asyncio.run(inspector.status("task-done-1")).state == "failure"
    with pytest.raises(NotFoundError):
        asyncio.run(inspector.status("task-missing-1"))


def test_list_is_bounded_and_newest_first(store: ArtifactStore, tmp_path) -> None:
    settings = TaskmuxSettings(
        LOG_DIR=str(tmp_path / "logs"), STATUS_DIR=str(tmp_path / "status"), STATUS_SUMMARY_LIMIT=3
    )
    for index in range(6):
        path = store.status_path(f"task-job-{index}")
        write_status_file(path, StatusRecord(exit_code="0", command=f"job {index}"))
        stamp = time.time() - (6 - index) * 60
        os.utime(path, (stamp, stamp))
    write_status_file(store.status_path("task-live-1"), StatusRecord(workdir="/srv"))
    host = FakeSessionHost(["task-live-1", "unrelated"])

    listing = asyncio.run(TaskInspector(host, store, settings).list_tasks())

    assert [task.name for task in listing.live] == ["task-live-1"]
    assert listing.live[0].record.workdir == "/srv"
    assert len(listing.history) == 3
    assert listing.history[0].name == "task-live-1"
    assert [entry.name for entry in listing.history[1:]] == ["task-job-5", "task-job-4"]


def test_tail_yields_snapshots_then_log(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    name = "task-server-1"
    store.log_path(name).write_text("step 1\nstep 2\nTask completed successfully.\n", encoding="utf-8")
    host = EndingHost(name, captures=2)

    snapshots = collect(TaskInspector(host, store, settings), name, interval=0.01, lines=2)

    assert [snapshot.final for snapshot in snapshots] == [False, False, True]
    assert snapshots[0].output == "step 1\nstep 2"
    assert snapshots[-1].output == "step 2\nTask completed successfully."


def test_tail_stops_when_event_is_set(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    name = "task-server-1"
    host = FakeSessionHost([name], outputs={name: "serving"})
    inspector = TaskInspector(host, store, settings)

    async def _run():
        stop = asyncio.Event()
        seen = []
        async for snapshot in inspector.tail(name, interval=5, stop=stop):
            seen.append(snapshot)
            stop.set()
        return seen

    snapshots = asyncio.run(asyncio.wait_for(_run(), timeout=2))

    assert len(snapshots) == 1
    assert not snapshots[0].final
    assert host.sessions == {name: ""}


def test_tail_unknown_session(store: ArtifactStore, settings: TaskmuxSettings) -> None:
    with pytest.raises(NotFoundError):
        collect(TaskInspector(FakeSessionHost(), store, settings), "task-nope-1")
