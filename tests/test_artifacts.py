from __future__ import annotations

import os
import time
from pathlib import Path

from taskmux.storage import ArtifactStore, StatusRecord, write_status_file

DAY = 86_400


def age(path: Path, seconds: float) -> None:
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


def test_paths_derive_from_session_name(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "logs/", tmp_path / "status")

    assert store.log_path("task-build-1") == tmp_path / "logs" / "task-build-1.log"
    assert store.status_path("task-build-1") == tmp_path / "status" / "task-build-1.status"


def test_ensure_directories_creates_both(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "a" / "logs", tmp_path / "b" / "status")
    store.ensure_directories()
    store.ensure_directories()

    assert store.log_dir.is_dir()
    assert store.status_dir.is_dir()


def test_prune_removes_only_old_task_artifacts(store: ArtifactStore) -> None:
    old_log = store.log_path("task-build-1")
    old_status = store.status_path("task-build-1")
    fresh_log = store.log_path("task-build-2")
    unrelated = store.log_dir / "notes.log"
    for path in (old_log, old_status, fresh_log, unrelated):
        path.write_text("x", encoding="utf-8")
    for path in (old_log, old_status, unrelated):
        age(path, 8 * DAY)

    removed = store.prune()

    assert sorted(removed) == sorted([old_log, old_status])
    assert fresh_log.exists()
    assert unrelated.exists()


def test_prune_removes_stale_partial_status_files(store: ArtifactStore) -> None:
    stale = store.status_dir / "task-build-1.status.tmp"
    fresh = store.status_dir / "task-build-2.status.tmp"
    for path in (stale, fresh):
        path.write_text("EXIT_CODE=0\n", encoding="utf-8")
    age(stale, 8 * DAY)

    assert store.prune() == [stale]
    assert fresh.exists()
    assert store.recent_statuses(10) == []


def test_prune_twice_removes_nothing_the_second_time(store: ArtifactStore) -> None:
    path = store.log_path("task-test-1")
    path.write_text("x", encoding="utf-8")
    age(path, 30 * DAY)

    assert store.prune() == [path]
    assert store.prune() == []


def test_prune_disabled_with_zero_retention(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path, tmp_path, retention_days=0)
    path = store.log_path("task-test-1")
    path.write_text("x", encoding="utf-8")
    age(path, 365 * DAY)

    assert store.prune() == []
    assert path.exists()


def test_prune_tolerates_missing_directories(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "nope", tmp_path / "nada")
    assert store.prune() == []


def test_recent_statuses_are_bounded_and_newest_first(store: ArtifactStore) -> None:
    for index in range(5):
        path = store.status_path(f"task-job-{index}")
        write_status_file(path, StatusRecord(exit_code=str(index)))
        age(path, (5 - index) * 60)

    entries = store.recent_statuses(3)

    assert [entry.name for entry in entries] == ["task-job-4", "task-job-3", "task-job-2"]
    assert entries[0].record.exit_code == "4"


def test_remove_status_is_best_effort(store: ArtifactStore) -> None:
    write_status_file(store.status_path("task-a-1"), StatusRecord(exit_code="0"))

    assert store.remove_status("task-a-1") is True
    assert store.remove_status("task-a-1") is False


def test_read_log_tail(store: ArtifactStore) -> None:
    store.log_path("task-a-1").write_text("".join(f"line {i}\n" for i in range(10)), encoding="utf-8")

    assert store.read_log_tail("task-a-1", 2) == "line 8\nline 9"
    assert store.read_log_tail("task-missing", 2) is None
