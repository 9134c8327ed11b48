"""Per-issue branch and worktree lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from . import log, paths
from .errors import VersionControlError
from .git import VersionControl


@dataclass(frozen=True)
class Workspace:
    issue_id: str
    path: Path
    branch: str


@dataclass
class WorkspaceManager:
    """Create and remove the isolated working copy owned by one issue."""

    vcs: VersionControl
    repo_root: Path
    worktrees_dir: str = paths.DEFAULT_WORKTREES_DIRNAME
    branch_prefix: str = paths.DEFAULT_BRANCH_PREFIX

    def workspace_for(self, issue_id: str) -> Workspace:
        return Workspace(
            issue_id=issue_id,
            path=paths.worktree_path(self.repo_root, issue_id, worktrees_dir=self.worktrees_dir),
            branch=paths.work_branch(issue_id, prefix=self.branch_prefix),
        )

    def ensure_workspace(self, issue_id: str) -> Workspace:
        """Create the issue's branch and worktree unless they already exist.

        A branch left over from an earlier partial run is checked out instead
        of recreated. Any remaining failure is logged and the derived workspace
        is still returned.
        """
        workspace = self.workspace_for(issue_id)
        if workspace.path.exists():
            return workspace
        if self.vcs.add_worktree(workspace.path, workspace.branch, create_branch=True):
            log.debug(f"Created worktree {workspace.path} on {workspace.branch}")
            return workspace
        if self.vcs.add_worktree(workspace.path, workspace.branch, create_branch=False):
            log.debug(f"Attached worktree {workspace.path} to existing {workspace.branch}")
            return workspace
        log.warning(f"Worktree exists or error: {workspace.path}")
        return workspace

    def destroy_workspace(self, issue_id: str) -> None:
        """Remove the worktree and local branch; failures are only logged."""
        workspace = self.workspace_for(issue_id)
        try:
            if not self.vcs.remove_worktree(workspace.path, force=True):
                log.warning(f"could not remove worktree {workspace.path}")
            if not self.vcs.delete_branch(workspace.branch):
                log.warning(f"could not delete branch {workspace.branch}")
        except VersionControlError as exc:
            log.warning(f"workspace cleanup failed for {issue_id}: {exc}")
