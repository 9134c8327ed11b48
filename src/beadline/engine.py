"""Phase state machine that moves issues through the pipeline.

One call processes one batch of issues for one phase. Each issue is handled in
isolation: failures are logged against that issue and the batch moves on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Literal

from . import exec, log, paths, phases, prompts, protocol
from .agents import AgentInvoker, AgentRuntime, AgentSpec, CliAgentRuntime
from .beads import BeadsStore, IssueStore, beads_env, open_dependencies
from .config import PipelineConfig
from .errors import IssueFailure, VersionControlError
from .git import GitRepository, VersionControl
from .lease import LeaseHeld, issue_lease
from .merge import IntegrationController, MergeOutcome
from .models import BatchEntry, Issue
from .phases import Phase
from .sessions import SessionStore
from .workspace import WorkspaceManager

ADVANCE_ON_BEST_EFFORT = "advance-on-best-effort"
STYLE_COMMIT_MESSAGE = "style: auto-format and lint fixes"

IssueStatus = Literal[
    "advanced",
    "awaiting-input",
    "halted",
    "skipped",
    "failed",
    "merged",
    "escalated",
]


@dataclass(frozen=True)
class IssueReport:
    issue_id: str
    status: IssueStatus
    detail: str = ""
    blocker_id: str | None = None


@dataclass
class BatchReport:
    phase: str
    results: list[IssueReport] = field(default_factory=list)

    @property
    def failed(self) -> list[IssueReport]:
        return [result for result in self.results if result.status == "failed"]

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class PhaseEngine:
    """Run pipeline phases for issues of one repository."""

    repo_root: Path
    config: PipelineConfig
    store: IssueStore
    vcs: VersionControl
    invoker: AgentInvoker
    workspaces: WorkspaceManager
    integrator: IntegrationController
    shell_runner: exec.CommandRunner | None = None

    @classmethod
    def create(
        cls,
        repo_root: Path,
        config: PipelineConfig,
        *,
        store: IssueStore | None = None,
        vcs: VersionControl | None = None,
        runtime: AgentRuntime | None = None,
        shell_runner: exec.CommandRunner | None = None,
    ) -> PhaseEngine:
        """Wire an engine, defaulting each collaborator to its CLI adapter."""
        active_store = store or BeadsStore(repo_root, beads_dir=config.beads_dir)
        active_vcs = vcs or GitRepository(repo_root)
        active_runtime = runtime or CliAgentRuntime(
            AgentSpec(command=config.agent.command),
            env=beads_env(config.beads_dir),
        )
        sessions = SessionStore(active_store, config.agent.resolved_sessions_dir)
        invoker = AgentInvoker(active_store, sessions, active_runtime)
        workspaces = WorkspaceManager(
            active_vcs,
            repo_root,
            worktrees_dir=config.worktrees_dir,
            branch_prefix=config.branch_prefix,
        )
        integrator = IntegrationController(
            active_store,
            active_vcs,
            workspaces,
            invoker,
            trunk=config.trunk,
            remote=config.remote,
        )
        return cls(
            repo_root=repo_root,
            config=config,
            store=active_store,
            vcs=active_vcs,
            invoker=invoker,
            workspaces=workspaces,
            integrator=integrator,
            shell_runner=shell_runner,
        )

    def run_batch(self, entries: Iterable[BatchEntry], phase_name: str) -> BatchReport:
        """Run ``phase_name`` for every entry; an unknown phase fails up front."""
        phase = phases.get_phase(phase_name)
        report = BatchReport(phase=phase.name)
        for entry in entries:
            try:
                result = self.process_issue(entry, phase)
            except IssueFailure as exc:
                log.error(f"{phase.name} failed for {entry.id}: {exc}")
                result = IssueReport(entry.id, "failed", detail=str(exc))
            report.results.append(result)
        return report

    def process_issue(self, entry: BatchEntry, phase: Phase) -> IssueReport:
        lease_file = paths.lease_path(self.config.resolved_lease_dir, self.repo_root, entry.id)
        try:
            with issue_lease(lease_file, entry.id):
                return self._process_leased(entry, phase)
        except LeaseHeld:
            log.warning(f"Skipping {entry.id}: another run holds its lease")
            return IssueReport(entry.id, "skipped", detail="lease held")

    def _process_leased(self, entry: BatchEntry, phase: Phase) -> IssueReport:
        issue = self.store.show_issue(entry.id)
        if issue is None:
            log.warning(f"Skipping {entry.id}: issue not found")
            return IssueReport(entry.id, "skipped", detail="not found")
        skip_reason = self._ineligible_reason(issue, phase)
        if skip_reason:
            log.debug(f"Skipping {issue.id}: {skip_reason}")
            return IssueReport(issue.id, "skipped", detail=skip_reason)
        title = entry.title or issue.title
        return self._handlers()[phase.name](issue, title)

    def _ineligible_reason(self, issue: Issue, phase: Phase) -> str | None:
        if issue.is_closed:
            return "issue is closed"
        if not phase.accepts(issue.labels):
            current = ", ".join(phases.current_pipeline_labels(issue.labels)) or "none"
            return f"label {current} is not ready for {phase.name}"
        blockers = open_dependencies(self.store, issue)
        if blockers:
            return "blocked by " + ", ".join(blocker.id for blocker in blockers)
        return None

    def _handlers(self) -> dict[str, Callable[[Issue, str], IssueReport]]:
        return {
            "planning": self._plan,
            "implement": self._implement,
            "lint": self._lint,
            "review": self._review,
            "test": self._test,
            "human-review": self._human_review,
            "merge": self._merge,
        }

    # Label transitions

    def _enter(self, issue: Issue, phase: Phase) -> None:
        for label in phases.current_pipeline_labels(issue.labels):
            if label != phase.active_label:
                self.store.remove_label(issue.id, label)
        if phase.active_label and not issue.has_label(phase.active_label):
            self.store.add_label(issue.id, phase.active_label)

    def _advance(self, issue_id: str, phase: Phase) -> None:
        if phase.active_label:
            self.store.remove_label(issue_id, phase.active_label)
        self.store.add_label(issue_id, phase.exit_label)

    def _run_agent(
        self, issue_id: str, phase: Phase, prompt: str, *, cwd: Path
    ) -> IssueReport | None:
        """Invoke the agent; return a report when the phase must stop here."""
        outcome = self.invoker.invoke(issue_id, prompt, cwd=cwd)
        if isinstance(outcome, protocol.AgentAwaitingInput):
            log.info(f"{issue_id} is waiting on question {outcome.blocker_id}")
            return IssueReport(
                issue_id,
                "awaiting-input",
                detail=f"{phase.name} paused",
                blocker_id=outcome.blocker_id,
            )
        if outcome.failed:
            if not self.config.advance_on_best_effort:
                log.warning(f"Agent failed during {phase.name} for {issue_id}; keeping label")
                return IssueReport(issue_id, "halted", detail="agent failed")
            log.warning(
                f"Agent failed during {phase.name} for {issue_id}; "
                f"advancing ({ADVANCE_ON_BEST_EFFORT})"
            )
        return None

    # Phase procedures

    def _plan(self, issue: Issue, title: str) -> IssueReport:
        phase = phases.get_phase("planning")
        log.info(f"Planning: {issue.id} - {title}")
        self._enter(issue, phase)
        log.info("Running agent for planning...")
        stopped = self._run_agent(
            issue.id,
            phase,
            prompts.planning_prompt(issue.id, title, issue.description),
            cwd=self.repo_root,
        )
        if stopped:
            return stopped
        blocker_id = protocol.create_gate_blocker(
            self.store,
            issue.id,
            f"Approve plan for {issue.id}",
            protocol.NEEDS_HUMAN_APPROVAL,
        )
        self._advance(issue.id, phase)
        return IssueReport(issue.id, "advanced", detail=phase.exit_label, blocker_id=blocker_id)

    def _implement(self, issue: Issue, title: str) -> IssueReport:
        phase = phases.get_phase("implement")
        log.info(f"Implementing: {issue.id} - {title}")
        children = tuple(
            f"{child.id}: {child.title}" for child in self.store.list_issues(parent=issue.id)
        )
        workspace = self.workspaces.ensure_workspace(issue.id)
        self._enter(issue, phase)
        self.store.update_status(issue.id, "in_progress")
        log.info(f"Running agent for implementation in {workspace.path}...")
        stopped = self._run_agent(
            issue.id,
            phase,
            prompts.implement_prompt(issue.id, title, issue.description, children),
            cwd=workspace.path,
        )
        if stopped:
            return stopped
        self._advance(issue.id, phase)
        return IssueReport(issue.id, "advanced", detail=phase.exit_label)

    def _lint(self, issue: Issue, title: str) -> IssueReport:
        phase = phases.get_phase("lint")
        log.info(f"Linting: {issue.id}")
        self._enter(issue, phase)
        workspace = self.workspaces.ensure_workspace(issue.id)
        commands = self.config.commands

        if commands.format:
            log.info(f"Running format: {commands.format}")
            self._run_tool(issue.id, commands.format, cwd=workspace.path)
        lint_failed = False
        if commands.lint:
            log.info(f"Running lint: {commands.lint}")
            lint_failed = not self._run_tool(issue.id, commands.lint, cwd=workspace.path)
        if commands.type:
            log.info(f"Running type check: {commands.type}")
            if not self._run_tool(issue.id, commands.type, cwd=workspace.path):
                lint_failed = True

        if lint_failed:
            log.info("Lint/type check failed, running agent to fix...")
            stopped = self._run_agent(
                issue.id,
                phase,
                prompts.lint_fix_prompt(
                    issue.id, lint_command=commands.lint, type_command=commands.type
                ),
                cwd=workspace.path,
            )
            if stopped:
                return stopped

        self._commit_leftovers(workspace.path)
        self._advance(issue.id, phase)
        return IssueReport(issue.id, "advanced", detail=phase.exit_label)

    def _review(self, issue: Issue, title: str) -> IssueReport:
        phase = phases.get_phase("review")
        log.info(f"Reviewing: {issue.id}")
        self._enter(issue, phase)
        workspace = self.workspaces.ensure_workspace(issue.id)
        stopped = self._run_agent(
            issue.id,
            phase,
            prompts.review_prompt(issue.id, trunk=self.config.trunk),
            cwd=workspace.path,
        )
        if stopped:
            return stopped
        self._advance(issue.id, phase)
        return IssueReport(issue.id, "advanced", detail=phase.exit_label)

    def _test(self, issue: Issue, title: str) -> IssueReport:
        phase = phases.get_phase("test")
        log.info(f"Testing: {issue.id}")
        self._enter(issue, phase)
        workspace = self.workspaces.ensure_workspace(issue.id)
        stopped = self._run_agent(
            issue.id, phase, prompts.testing_prompt(issue.id), cwd=workspace.path
        )
        if stopped:
            return stopped
        self._advance(issue.id, phase)
        return IssueReport(issue.id, "advanced", detail=phase.exit_label)

    def _human_review(self, issue: Issue, title: str) -> IssueReport:
        phase = phases.get_phase("human-review")
        log.info(f"Setting up human review: {issue.id}")
        blocker_id = protocol.create_gate_blocker(
            self.store,
            issue.id,
            f"Human review needed: {issue.id}",
            protocol.NEEDS_HUMAN_REVIEW,
        )
        self._enter(issue, phase)
        self._advance(issue.id, phase)
        log.info(f"Human review required - close {blocker_id} when approved")
        return IssueReport(issue.id, "advanced", detail=phase.exit_label, blocker_id=blocker_id)

    def _merge(self, issue: Issue, title: str) -> IssueReport:
        log.info(f"Merging: {issue.id}")
        result = self.integrator.integrate(issue.id)
        if result.outcome.merged:
            return IssueReport(issue.id, "merged", detail=result.outcome.value)
        if result.outcome is MergeOutcome.ESCALATED:
            return IssueReport(
                issue.id, "escalated", detail=result.outcome.value, blocker_id=result.blocker_id
            )
        if result.outcome is MergeOutcome.AWAITING_INPUT:
            return IssueReport(
                issue.id,
                "awaiting-input",
                detail=result.outcome.value,
                blocker_id=result.blocker_id,
            )
        return IssueReport(issue.id, "halted", detail=result.outcome.value)

    # Helpers

    def _run_tool(self, issue_id: str, command: str, *, cwd: Path) -> bool:
        result = exec.run_with_runner(
            exec.shell_request(command, cwd=cwd), runner=self.shell_runner
        )
        if result is None:
            log.warning(f"could not run: {command}", issue=issue_id)
            return False
        if result.stdout.strip():
            log.info(result.stdout.rstrip(), issue=issue_id)
        return result.ok

    def _commit_leftovers(self, worktree: Path) -> None:
        try:
            self.vcs.stage_all(worktree)
            if self.vcs.has_staged_changes(worktree):
                if not self.vcs.commit(worktree, STYLE_COMMIT_MESSAGE):
                    log.warning(f"could not commit formatting changes in {worktree}")
        except VersionControlError as exc:
            log.warning(f"could not stage formatting changes in {worktree}: {exc}")
