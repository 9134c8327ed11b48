"""Tests for typed command execution helpers."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from beadline import exec as exec_util


def test_subprocess_command_runner_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """Runner returns typed output and forwards execution options."""
    calls: dict[str, object] = {}

    def fake_run(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        calls["argv"] = argv
        calls["kwargs"] = kwargs
        return subprocess.CompletedProcess(argv, 0, stdout="ok", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    request = exec_util.CommandRequest(
        argv=("bd", "list"),
        cwd=Path("/tmp"),
        env={"BEADS_DIR": "/tmp/beads"},
        timeout_seconds=5.0,
        stdin=subprocess.DEVNULL,
    )
    result = exec_util.SubprocessCommandRunner().run(request)

    assert result == exec_util.CommandResult(
        argv=("bd", "list"),
        returncode=0,
        stdout="ok",
        stderr="",
    )
    assert calls["argv"] == ["bd", "list"]
    run_kwargs = calls["kwargs"]
    assert isinstance(run_kwargs, dict)
    assert run_kwargs["cwd"] == Path("/tmp")
    assert run_kwargs["env"] == {"BEADS_DIR": "/tmp/beads"}
    assert run_kwargs["stdout"] == subprocess.PIPE
    assert run_kwargs["stderr"] == subprocess.PIPE
    assert run_kwargs["timeout"] == 5.0
    assert run_kwargs["stdin"] == subprocess.DEVNULL


def test_merge_stderr_folds_streams(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        captured.update(kwargs)
        return subprocess.CompletedProcess(argv, 1, stdout="E501 line too long", stderr=None)

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = exec_util.run_with_runner(exec_util.shell_request("ruff check ."))

    assert captured["stderr"] == subprocess.STDOUT
    assert result is not None
    assert not result.ok
    assert result.output == "E501 line too long"


def test_subprocess_command_runner_returns_none_when_missing_executable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Runner returns None when executable is not found."""

    def fake_run(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        del argv, kwargs
        raise FileNotFoundError

    monkeypatch.setattr(subprocess, "run", fake_run)

    request = exec_util.CommandRequest(argv=("claude", "--print"))
    assert exec_util.SubprocessCommandRunner().run(request) is None
    assert exec_util.missing_command_detail(request) == "missing required command: claude"


def test_subprocess_command_runner_reports_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        raise subprocess.TimeoutExpired(argv, 1.0, output="partial")

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = exec_util.SubprocessCommandRunner().run(
        exec_util.CommandRequest(argv=("sleep", "10"), timeout_seconds=1.0)
    )

    assert result is not None
    assert result.timed_out
    assert result.returncode == 124
    assert result.stdout == "partial"


def test_command_failure_detail_includes_output() -> None:
    request = exec_util.CommandRequest(argv=("bd", "close", "bd-1"))
    result = exec_util.CommandResult(
        argv=request.argv, returncode=1, stdout="", stderr="no such issue\n"
    )

    assert exec_util.command_failure_detail(request, result) == (
        "command failed: bd close bd-1\nno such issue"
    )
