"""Typed boundary for the external tools Beadline drives (bd, git, agent, linters)."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True)
class CommandRequest:
    """One external command invocation.

    ``merge_stderr`` folds stderr into stdout so tools that interleave the two
    (the agent CLI, lint runners) read back as a single transcript.
    """

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    capture_output: bool = True
    merge_stderr: bool = False
    timeout_seconds: float | None = None
    stdin: int | None = None


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Return whichever stream carries the command's diagnostics."""
        return (self.stderr or self.stdout or "").strip()


class CommandRunner(Protocol):
    """Runs a request; ``None`` means the executable could not be found."""

    def run(self, request: CommandRequest) -> CommandResult | None: ...


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


def _subprocess_kwargs(request: CommandRequest) -> dict[str, object]:
    kwargs: dict[str, object] = {
        "cwd": request.cwd,
        "env": request.env,
        "check": False,
        "text": True,
    }
    if request.capture_output:
        kwargs["stdout"] = subprocess.PIPE
        kwargs["stderr"] = subprocess.STDOUT if request.merge_stderr else subprocess.PIPE
    if request.timeout_seconds is not None:
        kwargs["timeout"] = request.timeout_seconds
    if request.stdin is not None:
        kwargs["stdin"] = request.stdin
    return kwargs


class SubprocessCommandRunner:
    """``CommandRunner`` backed by ``subprocess.run``."""

    def run(self, request: CommandRequest) -> CommandResult | None:
        try:
            completed = subprocess.run(list(request.argv), **_subprocess_kwargs(request))
        except FileNotFoundError:
            return None
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                argv=request.argv,
                returncode=TIMEOUT_RETURNCODE,
                stdout=_text(exc.stdout),
                stderr=_text(exc.stderr),
                timed_out=True,
            )
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=_text(completed.stdout),
            stderr=_text(completed.stderr),
        )


_DEFAULT_COMMAND_RUNNER: CommandRunner = SubprocessCommandRunner()


def run_with_runner(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    return (runner or _DEFAULT_COMMAND_RUNNER).run(request)


def format_argv(argv: tuple[str, ...]) -> str:
    """Render argv the way a user would type it.

    Example:
        >>> format_argv(("bd", "comments", "add", "bd-1", "Plan: two tasks"))
        "bd comments add bd-1 'Plan: two tasks'"
    """
    return shlex.join(argv)


def missing_command_detail(request: CommandRequest) -> str:
    if not request.argv:
        return "missing required command"
    return f"missing required command: {request.argv[0]}"


def command_failure_detail(request: CommandRequest, result: CommandResult) -> str:
    detail = f"command failed: {format_argv(request.argv)}"
    if result.output:
        return f"{detail}\n{result.output}"
    return detail


def shell_request(
    command: str,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandRequest:
    """Build a request that runs an opaque command string through the shell.

    Example:
        >>> shell_request("ruff check .").argv
        ('sh', '-c', 'ruff check .')
    """
    return CommandRequest(
        argv=("sh", "-c", command),
        cwd=cwd,
        env=env,
        merge_stderr=True,
        stdin=subprocess.DEVNULL,
    )
