"""Agent invocation with per-issue session continuity."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

from . import exec, log, protocol
from .beads import IssueStore
from .sessions import SessionStore

MISSING_AGENT_RETURNCODE = 127


@dataclass(frozen=True)
class AgentSpec:
    """Describe how to start and resume a non-interactive agent CLI."""

    command: tuple[str, ...]
    session_flag: str = "--session-id"
    resume_flag: str = "--resume"
    unattended_flags: tuple[str, ...] = ("--print", "--dangerously-skip-permissions")

    def build_start_command(self, session_id: str, prompt: str) -> list[str]:
        """Build argv for a fresh session that adopts ``session_id``.

        Example:
            >>> AgentSpec(command=("claude",)).build_start_command("s1", "hi")
            ['claude', '--session-id', 's1', '--print', '--dangerously-skip-permissions', 'hi']
        """
        return [*self.command, self.session_flag, session_id, *self.unattended_flags, prompt]

    def build_resume_command(self, session_id: str, prompt: str) -> list[str]:
        return [*self.command, self.resume_flag, session_id, *self.unattended_flags, prompt]


@dataclass(frozen=True)
class AgentRun:
    output: str
    returncode: int


class AgentRuntime(Protocol):
    """Agent-side session operations."""

    def start(self, session_id: str, prompt: str, *, cwd: Path) -> AgentRun: ...

    def resume(self, session_id: str, prompt: str, *, cwd: Path) -> AgentRun: ...


@dataclass
class CliAgentRuntime:
    """``AgentRuntime`` that shells out to an agent CLI such as ``claude``."""

    spec: AgentSpec
    env: Mapping[str, str] | None = None
    runner: exec.CommandRunner | None = None

    def _run(self, argv: list[str], cwd: Path) -> AgentRun:
        request = exec.CommandRequest(
            argv=tuple(argv),
            cwd=cwd,
            env=self.env,
            merge_stderr=True,
            stdin=subprocess.DEVNULL,
        )
        result = exec.run_with_runner(request, runner=self.runner)
        if result is None:
            return AgentRun(
                output=exec.missing_command_detail(request),
                returncode=MISSING_AGENT_RETURNCODE,
            )
        return AgentRun(output=result.stdout, returncode=result.returncode)

    def start(self, session_id: str, prompt: str, *, cwd: Path) -> AgentRun:
        return self._run(self.spec.build_start_command(session_id, prompt), cwd)

    def resume(self, session_id: str, prompt: str, *, cwd: Path) -> AgentRun:
        return self._run(self.spec.build_resume_command(session_id, prompt), cwd)


@dataclass
class AgentInvoker:
    """Run a phase prompt for an issue, resuming its session when one exists."""

    store: IssueStore
    sessions: SessionStore
    runtime: AgentRuntime

    def invoke(self, issue_id: str, prompt: str, *, cwd: Path) -> protocol.AgentOutcome:
        session_id = self.sessions.get_or_create_session(issue_id)
        full_prompt = protocol.with_ask_instructions(prompt, issue_id)
        before = protocol.open_question_blockers(self.store, issue_id)
        if self.sessions.session_exists(session_id):
            log.info(f"Resuming session {session_id} for issue {issue_id}")
            run = self.runtime.resume(session_id, full_prompt, cwd=cwd)
        else:
            log.info(f"Starting new session {session_id} for issue {issue_id}")
            run = self.runtime.start(session_id, full_prompt, cwd=cwd)
        if run.output.strip():
            log.info(run.output.rstrip(), issue=issue_id)
        if run.returncode != 0:
            log.warning(f"agent exited with status {run.returncode} for issue {issue_id}")
        return protocol.classify(
            self.store,
            issue_id,
            before=before,
            output=run.output,
            returncode=run.returncode,
        )
