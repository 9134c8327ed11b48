"""Rebase-and-fast-forward integration of an issue branch into trunk.

Trunk only ever gains rebased commits through ``merge --ff-only``; a branch
that cannot fast-forward is escalated to a human instead of merged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from . import log, phases, prompts, protocol
from .agents import AgentInvoker
from .beads import IssueStore
from .errors import VersionControlError
from .git import VersionControl
from .workspace import WorkspaceManager


class MergeOutcome(str, Enum):
    MERGED = "merged"
    MERGED_AFTER_RESOLUTION = "merged-after-resolution"
    ESCALATED = "escalated"
    REBASE_FAILED = "rebase-failed"
    AWAITING_INPUT = "awaiting-input"
    WORKSPACE_MISSING = "workspace-missing"

    @property
    def merged(self) -> bool:
        return self in {MergeOutcome.MERGED, MergeOutcome.MERGED_AFTER_RESOLUTION}


@dataclass(frozen=True)
class MergeResult:
    outcome: MergeOutcome
    blocker_id: str | None = None


def merge_failed_title(issue_id: str) -> str:
    return f"Merge failed for {issue_id} - manual intervention needed"


@dataclass
class IntegrationController:
    store: IssueStore
    vcs: VersionControl
    workspaces: WorkspaceManager
    invoker: AgentInvoker
    trunk: str = "main"
    remote: str = "origin"

    def integrate(self, issue_id: str) -> MergeResult:
        """Rebase the issue branch onto trunk and fast-forward trunk to it."""
        workspace = self.workspaces.workspace_for(issue_id)
        if not workspace.path.exists():
            log.warning(f"Workspace {workspace.path} is missing; leaving {issue_id} untouched")
            return MergeResult(MergeOutcome.WORKSPACE_MISSING)

        log.info(f"Rebasing {workspace.branch} on {self.trunk}...")
        if not self.vcs.fetch(self.remote, self.trunk):
            log.debug(f"fetch {self.remote} {self.trunk} failed; rebasing on local {self.trunk}")

        resolved_by_agent = False
        if not self.vcs.rebase(workspace.path, self.trunk):
            conflicts = self.vcs.conflicting_files(workspace.path)
            if not conflicts:
                self.vcs.abort_rebase(workspace.path)
                log.warning(f"Rebase failed for unknown reason: {issue_id}")
                return MergeResult(MergeOutcome.REBASE_FAILED)
            log.info("Rebase failed - conflicts detected. Using agent to resolve...")
            outcome = self.invoker.invoke(
                issue_id,
                prompts.conflict_prompt(issue_id, trunk=self.trunk, conflicts=conflicts),
                cwd=workspace.path,
            )
            if isinstance(outcome, protocol.AgentAwaitingInput):
                log.info(f"Conflict resolution for {issue_id} is waiting on {outcome.blocker_id}")
                return MergeResult(MergeOutcome.AWAITING_INPUT, blocker_id=outcome.blocker_id)
            resolved_by_agent = True

        if self._fast_forward(workspace.branch):
            self.workspaces.destroy_workspace(issue_id)
            self._mark_merged(issue_id)
            log.success(f"Merged and closed: {issue_id}")
            if resolved_by_agent:
                return MergeResult(MergeOutcome.MERGED_AFTER_RESOLUTION)
            return MergeResult(MergeOutcome.MERGED)

        log.warning("Fast-forward merge failed - branch may need manual intervention")
        self.store.add_label(issue_id, phases.MERGE_FAILED)
        blocker_id = protocol.create_gate_blocker(
            self.store,
            issue_id,
            merge_failed_title(issue_id),
            protocol.NEEDS_HUMAN_APPROVAL,
        )
        return MergeResult(MergeOutcome.ESCALATED, blocker_id=blocker_id)

    def _fast_forward(self, branch: str) -> bool:
        try:
            self.vcs.checkout(self.trunk)
        except VersionControlError as exc:
            log.warning(f"could not check out {self.trunk}: {exc}")
            return False
        return self.vcs.merge_ff_only(branch)

    def _mark_merged(self, issue_id: str) -> None:
        for label in (phases.HUMAN_APPROVED, phases.AWAITING_HUMAN_REVIEW, phases.MERGE_FAILED):
            self.store.remove_label(issue_id, label)
        self.store.add_label(issue_id, phases.MERGED)
        self.store.close_issue(issue_id, reason=f"Merged to {self.trunk}")
