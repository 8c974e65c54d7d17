from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from taskmux.errors import HostNotFoundError, LaunchFailureError
from taskmux.host import FakeSessionHost, TmuxHost
from taskmux.host.utils import sanitize_environment


def write_tmux(tmp_path: Path, body: str) -> Path:
    script = tmp_path / "tmux"
    script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    script.chmod(0o755)
    return script


def test_tmux_host_passes_create_arguments(tmp_path: Path) -> None:
    calls = tmp_path / "calls"
    script = write_tmux(tmp_path, f'printf "%s|" "$@" >> "{calls}"\necho >> "{calls}"\n')

    host = TmuxHost(script)
    asyncio.run(host.create("task-build-1", "make all", tmp_path))

    recorded = calls.read_text(encoding="utf-8").splitlines()
    assert recorded == [f"new-session|-d|-s|task-build-1|-c|{tmp_path}|bash|-c|make all|"]


def test_tmux_host_falls_back_to_cd_prefix(tmp_path: Path) -> None:
    calls = tmp_path / "calls"
    script = write_tmux(
        tmp_path,
        f'for arg in "$@"; do [ "$arg" = "-c" ] && [ "$5" = "-c" ] && {{ echo "unknown flag -c" >&2; exit 1; }}; done\n'
        f'printf "%s\\n" "$@" > "{calls}"\n',
    )

    host = TmuxHost(script)
    asyncio.run(host.create("task-build-2", "make all", tmp_path))

    args = calls.read_text(encoding="utf-8")
    assert "-s\ntask-build-2\nbash\n-c\n" in args
    assert f"cd -- {tmp_path} || exit 1\nmake all" in args


def test_tmux_host_create_failure_raises(tmp_path: Path) -> None:
    script = write_tmux(tmp_path, 'echo "duplicate session: task-x" >&2\nexit 1\n')

    host = TmuxHost(script)
    with pytest.raises(LaunchFailureError) as excinfo:
        asyncio.run(host.create("task-x", "true"))

    assert "duplicate session" in excinfo.value.diagnostics


def test_tmux_host_lists_sessions_by_prefix(tmp_path: Path) -> None:
    script = write_tmux(
        tmp_path,
        'printf "task-build-1\\t1700000000\\nscratch\\t1700000001\\ntask-test-2\\t1700000002\\n"\n',
    )

    sessions = asyncio.run(TmuxHost(script).list_sessions("task-"))

    assert [session.name for session in sessions] == ["task-build-1", "task-test-2"]
    assert sessions[0].created_at == 1700000000


def test_tmux_host_list_without_server_is_empty(tmp_path: Path) -> None:
    script = write_tmux(tmp_path, 'echo "no server running on /tmp/tmux-0/default" >&2\nexit 1\n')

    assert asyncio.run(TmuxHost(script).list_sessions("task-")) == []


def test_tmux_host_liveness_uses_exact_target(tmp_path: Path) -> None:
    script = write_tmux(tmp_path, '[ "$3" = "=task-live" ]\n')

    host = TmuxHost(script)
    assert asyncio.run(host.is_alive("task-live"))
    assert not asyncio.run(host.is_alive("task-gone"))


def test_tmux_host_capture_strips_trailing_blank_lines(tmp_path: Path) -> None:
    script = write_tmux(tmp_path, 'printf "line 1\\nline 2\\n\\n\\n"\n')

    output = asyncio.run(TmuxHost(script).capture_output("task-a", 10))

    assert output == "line 1\nline 2"


def test_tmux_not_found(tmp_path: Path) -> None:
    with pytest.raises(HostNotFoundError) as excinfo:
        TmuxHost(tmp_path / "missing")
    assert excinfo.value.exit_code == 127


def test_fake_session_host_records_lifecycle() -> None:
    fake = FakeSessionHost(["other"], outputs={"task-a": "one\ntwo\nthree"})

    asyncio.run(fake.create("task-a", "echo hi"))

    assert asyncio.run(fake.is_alive("task-a"))
    assert asyncio.run(fake.capture_output("task-a", 2)) == "two\nthree"
    assert [s.name for s in asyncio.run(fake.list_sessions("task-"))] == ["task-a"]
    assert asyncio.run(fake.kill("task-a"))
    assert fake.killed == ["task-a"]


def test_sanitize_environment_strips_tmux(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TMUX", "/tmp/tmux-1000/default,1,0")
    monkeypatch.setenv("TMUX_PANE", "%3")
    monkeypatch.setenv("KEEP_ME", "1")
    env = sanitize_environment()
    assert "TMUX" not in env
    assert "TMUX_PANE" not in env
    assert env["KEEP_ME"] == "1"
