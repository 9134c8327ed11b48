"""Git boundary used by the workspace manager and the merge controller."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from . import exec
from .errors import VersionControlError


class VersionControl(Protocol):
    """Version-control operations the engine relies on.

    Operations whose failure is an expected outcome return ``bool``; the rest
    raise ``VersionControlError``.
    """

    def add_worktree(self, path: Path, branch: str, *, create_branch: bool) -> bool: ...

    def remove_worktree(self, path: Path, *, force: bool = True) -> bool: ...

    def delete_branch(self, branch: str) -> bool: ...

    def fetch(self, remote: str, ref: str) -> bool: ...

    def rebase(self, worktree: Path, onto: str) -> bool: ...

    def conflicting_files(self, worktree: Path) -> list[str]: ...

    def continue_rebase(self, worktree: Path) -> bool: ...

    def abort_rebase(self, worktree: Path) -> bool: ...

    def checkout(self, ref: str) -> None: ...

    def merge_ff_only(self, branch: str) -> bool: ...

    def stage_all(self, worktree: Path) -> None: ...

    def has_staged_changes(self, worktree: Path) -> bool: ...

    def commit(self, worktree: Path, message: str) -> bool: ...


def git_command(args: list[str], *, git_path: str | None = None) -> list[str]:
    """Build a git command using an optional executable path.

    Example:
        >>> git_command(["status"])
        ['git', 'status']
    """
    resolved = git_path.strip() if isinstance(git_path, str) else ""
    if not resolved:
        resolved = "git"
    return [resolved, *args]


@dataclass
class GitRepository:
    """``VersionControl`` backed by the ``git`` CLI for one repository."""

    repo_root: Path
    git_path: str | None = None
    runner: exec.CommandRunner | None = None

    def _run(self, args: list[str], *, cwd: Path | None = None) -> exec.CommandResult:
        directory = cwd or self.repo_root
        request = exec.CommandRequest(
            argv=tuple(git_command(["-C", str(directory), *args], git_path=self.git_path)),
            stdin=subprocess.DEVNULL,
        )
        result = exec.run_with_runner(request, runner=self.runner)
        if result is None:
            raise VersionControlError(exec.missing_command_detail(request))
        return result

    def _run_checked(self, args: list[str], *, cwd: Path | None = None) -> exec.CommandResult:
        result = self._run(args, cwd=cwd)
        if not result.ok:
            detail = result.output or f"git {' '.join(args)} failed"
            raise VersionControlError(detail, result=result)
        return result

    def add_worktree(self, path: Path, branch: str, *, create_branch: bool) -> bool:
        if create_branch:
            args = ["worktree", "add", "-b", branch, str(path)]
        else:
            args = ["worktree", "add", str(path), branch]
        return self._run(args).ok

    def remove_worktree(self, path: Path, *, force: bool = True) -> bool:
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(str(path))
        return self._run(args).ok

    def delete_branch(self, branch: str) -> bool:
        return self._run(["branch", "-d", branch]).ok

    def fetch(self, remote: str, ref: str) -> bool:
        return self._run(["fetch", remote, ref]).ok

    def rebase(self, worktree: Path, onto: str) -> bool:
        return self._run(["rebase", onto], cwd=worktree).ok

    def conflicting_files(self, worktree: Path) -> list[str]:
        result = self._run(["diff", "--name-only", "--diff-filter=U"], cwd=worktree)
        if not result.ok:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def continue_rebase(self, worktree: Path) -> bool:
        return self._run(["-c", "core.editor=true", "rebase", "--continue"], cwd=worktree).ok

    def abort_rebase(self, worktree: Path) -> bool:
        return self._run(["rebase", "--abort"], cwd=worktree).ok

    def checkout(self, ref: str) -> None:
        self._run_checked(["checkout", ref])

    def merge_ff_only(self, branch: str) -> bool:
        return self._run(["merge", "--ff-only", branch]).ok

    def stage_all(self, worktree: Path) -> None:
        self._run_checked(["add", "-A"], cwd=worktree)

    def has_staged_changes(self, worktree: Path) -> bool:
        result = self._run(["diff", "--cached", "--quiet"], cwd=worktree)
        return result.returncode == 1

    def commit(self, worktree: Path, message: str) -> bool:
        return self._run(["commit", "-m", message], cwd=worktree).ok
