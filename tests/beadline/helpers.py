"""In-memory stand-ins for the issue store, git, and the agent CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from beadline import protocol
from beadline.agents import AgentRun
from beadline.config import PipelineConfig
from beadline.engine import PhaseEngine
from beadline.exec import CommandRequest, CommandResult
from beadline.models import Comment, Issue


@dataclass
class FakeIssueStore:
    """Dictionary-backed ``IssueStore`` that records every mutation."""

    issues: dict[str, dict[str, object]] = field(default_factory=dict)
    comments: dict[str, list[str]] = field(default_factory=dict)
    calls: list[tuple[object, ...]] = field(default_factory=list)
    _counter: int = 0

    def add(
        self,
        issue_id: str,
        *,
        title: str = "",
        description: str = "",
        labels: tuple[str, ...] = (),
        status: str = "open",
        dependencies: tuple[str, ...] = (),
    ) -> None:
        self.issues[issue_id] = {
            "id": issue_id,
            "title": title,
            "description": description,
            "status": status,
            "labels": list(labels),
            "dependencies": list(dependencies),
        }

    def labels(self, issue_id: str) -> list[str]:
        return list(self.issues[issue_id]["labels"])  # type: ignore[arg-type]

    def created(self) -> list[dict[str, object]]:
        return [issue for issue in self.issues.values() if issue.get("created")]

    def create_issue(
        self,
        title: str,
        *,
        description: str | None = None,
        labels: tuple[str, ...] = (),
        parent: str | None = None,
        ephemeral: bool = False,
    ) -> str:
        self._counter += 1
        issue_id = f"bd-new{self._counter}"
        self.issues[issue_id] = {
            "id": issue_id,
            "title": title,
            "description": description or "",
            "status": "open",
            "labels": list(labels),
            "dependencies": [],
            "parent": parent,
            "ephemeral": ephemeral,
            "created": True,
        }
        self.calls.append(("create", issue_id, title))
        return issue_id

    def show_issue(self, issue_id: str) -> Issue | None:
        payload = self.issues.get(issue_id)
        if payload is None:
            return None
        return Issue.model_validate(payload)

    def add_label(self, issue_id: str, label: str) -> None:
        self.calls.append(("label-add", issue_id, label))
        labels = self.issues[issue_id]["labels"]
        assert isinstance(labels, list)
        if label not in labels:
            labels.append(label)

    def remove_label(self, issue_id: str, label: str) -> bool:
        self.calls.append(("label-remove", issue_id, label))
        labels = self.issues[issue_id]["labels"]
        assert isinstance(labels, list)
        if label in labels:
            labels.remove(label)
            return True
        return False

    def update_status(self, issue_id: str, status: str) -> bool:
        self.calls.append(("status", issue_id, status))
        self.issues[issue_id]["status"] = status
        return True

    def update_type(self, issue_id: str, issue_type: str) -> bool:
        self.issues[issue_id]["issue_type"] = issue_type
        return True

    def add_dependency(self, issue_id: str, depends_on: str) -> None:
        self.calls.append(("dep-add", issue_id, depends_on))
        deps = self.issues[issue_id]["dependencies"]
        assert isinstance(deps, list)
        deps.append(depends_on)

    def add_comment(self, issue_id: str, text: str) -> None:
        self.calls.append(("comment", issue_id, text))
        self.comments.setdefault(issue_id, []).append(text)

    def list_comments(self, issue_id: str) -> list[Comment]:
        return [Comment(text=text) for text in self.comments.get(issue_id, [])]

    def list_issues(self, *, parent: str | None = None) -> list[Issue]:
        return [
            Issue.model_validate(payload)
            for payload in self.issues.values()
            if parent is None or payload.get("parent") == parent
        ]

    def close_issue(self, issue_id: str, *, reason: str) -> None:
        self.calls.append(("close", issue_id, reason))
        self.issues[issue_id]["status"] = "closed"
        self.issues[issue_id]["close_reason"] = reason


@dataclass
class FakeVcs:
    """``VersionControl`` fake; worktrees are plain directories on disk."""

    rebase_ok: bool = True
    conflicts: list[str] = field(default_factory=list)
    ff_ok: bool = True
    staged_changes: bool = False
    calls: list[tuple[object, ...]] = field(default_factory=list)

    def add_worktree(self, path: Path, branch: str, *, create_branch: bool) -> bool:
        self.calls.append(("worktree-add", path, branch, create_branch))
        path.mkdir(parents=True, exist_ok=True)
        return True

    def remove_worktree(self, path: Path, *, force: bool = True) -> bool:
        self.calls.append(("worktree-remove", path, force))
        if path.exists():
            path.rmdir()
        return True

    def delete_branch(self, branch: str) -> bool:
        self.calls.append(("branch-delete", branch))
        return True

    def fetch(self, remote: str, ref: str) -> bool:
        self.calls.append(("fetch", remote, ref))
        return True

    def rebase(self, worktree: Path, onto: str) -> bool:
        self.calls.append(("rebase", worktree, onto))
        return self.rebase_ok

    def conflicting_files(self, worktree: Path) -> list[str]:
        return list(self.conflicts)

    def continue_rebase(self, worktree: Path) -> bool:
        return True

    def abort_rebase(self, worktree: Path) -> bool:
        self.calls.append(("rebase-abort", worktree))
        return True

    def checkout(self, ref: str) -> None:
        self.calls.append(("checkout", ref))

    def merge_ff_only(self, branch: str) -> bool:
        self.calls.append(("merge-ff", branch))
        return self.ff_ok

    def stage_all(self, worktree: Path) -> None:
        self.calls.append(("stage", worktree))

    def has_staged_changes(self, worktree: Path) -> bool:
        return self.staged_changes

    def commit(self, worktree: Path, message: str) -> bool:
        self.calls.append(("commit", worktree, message))
        return True

    def names(self) -> list[object]:
        return [call[0] for call in self.calls]


AgentBehavior = Callable[[str, str, Path], AgentRun]


@dataclass
class ScriptedAgentRuntime:
    """``AgentRuntime`` whose runs are driven by a callback per invocation."""

    behavior: AgentBehavior | None = None
    returncode: int = 0
    runs: list[tuple[str, str, str, Path]] = field(default_factory=list)

    def _run(self, mode: str, session_id: str, prompt: str, cwd: Path) -> AgentRun:
        self.runs.append((mode, session_id, prompt, cwd))
        if self.behavior is not None:
            return self.behavior(session_id, prompt, cwd)
        return AgentRun(output="done", returncode=self.returncode)

    def start(self, session_id: str, prompt: str, *, cwd: Path) -> AgentRun:
        return self._run("start", session_id, prompt, cwd)

    def resume(self, session_id: str, prompt: str, *, cwd: Path) -> AgentRun:
        return self._run("resume", session_id, prompt, cwd)


def asking_agent(store: FakeIssueStore, issue_id: str, question: str) -> AgentBehavior:
    """Behavior that files a question blocker the way an agent would."""

    def behave(session_id: str, prompt: str, cwd: Path) -> AgentRun:
        protocol.ask_human(store, issue_id, question)
        return AgentRun(output="need input", returncode=0)

    return behave


@dataclass
class RecordingShellRunner:
    """``CommandRunner`` for lint tool commands keyed by command text."""

    returncodes: dict[str, int] = field(default_factory=dict)
    requests: list[CommandRequest] = field(default_factory=list)

    def run(self, request: CommandRequest) -> CommandResult | None:
        self.requests.append(request)
        command = request.argv[-1]
        return CommandResult(
            argv=request.argv,
            returncode=self.returncodes.get(command, 0),
            stdout="",
            stderr="",
        )

    def commands(self) -> list[str]:
        return [request.argv[-1] for request in self.requests]


def make_config(tmp_path: Path, **overrides: object) -> PipelineConfig:
    data: dict[str, object] = {
        "lease_dir": tmp_path / "leases",
        "agent": {"sessions_dir": tmp_path / "sessions"},
    }
    data.update(overrides)
    return PipelineConfig.model_validate(data)


def make_engine(
    tmp_path: Path,
    *,
    store: FakeIssueStore | None = None,
    vcs: FakeVcs | None = None,
    runtime: ScriptedAgentRuntime | None = None,
    shell_runner: RecordingShellRunner | None = None,
    **config_overrides: object,
) -> PhaseEngine:
    repo_root = tmp_path / "repo"
    repo_root.mkdir(exist_ok=True)
    return PhaseEngine.create(
        repo_root,
        make_config(tmp_path, **config_overrides),
        store=store or FakeIssueStore(),
        vcs=vcs or FakeVcs(),
        runtime=runtime or ScriptedAgentRuntime(),
        shell_runner=shell_runner or RecordingShellRunner(),
    )
