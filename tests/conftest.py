from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from taskmux.config import TaskmuxSettings, get_settings
from taskmux.host import FakeSessionHost
from taskmux.storage import ArtifactStore


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> TaskmuxSettings:
    return TaskmuxSettings(
        LOG_DIR=str(tmp_path / "logs"),
        STATUS_DIR=str(tmp_path / "status"),
        TASKMUX_LAUNCH_GRACE=0,
        TAIL_DEFAULT_INTERVAL=0.01,
    )


@pytest.fixture
def store(settings: TaskmuxSettings) -> ArtifactStore:
    artifact_store = ArtifactStore(
        settings.log_dir, settings.status_dir, retention_days=settings.retention_days
    )
    artifact_store.ensure_directories()
    return artifact_store


class BashSessionHost(FakeSessionHost):
    """Fake host that runs the wrapped command to completion with bash on create."""

    def __init__(self) -> None:
        super().__init__()
        self.results: dict[str, subprocess.CompletedProcess[str]] = {}

    async def create(self, name, command, workdir=None):  # type: ignore[override]
        self.created.append((name, command, workdir))
        self.results[name] = subprocess.run(
            ["bash", "-c", command],
            cwd=str(workdir) if workdir is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture
def fake_host() -> FakeSessionHost:
    return FakeSessionHost()


@pytest.fixture
def bash_host() -> BashSessionHost:
    return BashSessionHost()
