"""Path helpers for deriving per-issue workspaces and Beadline data files."""

from __future__ import annotations

import hashlib
from pathlib import Path

from platformdirs import user_data_dir

BEADLINE_APP_NAME = "beadline"
CONFIG_DIRNAME = ".beadline"
CONFIG_FILENAME = "config.json"
LEASES_DIRNAME = "leases"
DEFAULT_WORKTREES_DIRNAME = ".worktrees"
DEFAULT_BRANCH_PREFIX = "work/"


def beadline_data_dir() -> Path:
    """Return the per-user data directory for Beadline.

    Example:
        >>> beadline_data_dir().name == BEADLINE_APP_NAME
        True
    """
    return Path(user_data_dir(BEADLINE_APP_NAME))


def default_lease_dir() -> Path:
    """Return the directory holding per-issue lease files."""
    return beadline_data_dir() / LEASES_DIRNAME


def repo_config_path(repo_root: Path) -> Path:
    """Return the optional per-repository config file path.

    Example:
        >>> repo_config_path(Path("/repo")).as_posix()
        '/repo/.beadline/config.json'
    """
    return repo_root / CONFIG_DIRNAME / CONFIG_FILENAME


def worktree_path(
    repo_root: Path, issue_id: str, *, worktrees_dir: str = DEFAULT_WORKTREES_DIRNAME
) -> Path:
    """Return the working-copy path derived from an issue identifier.

    Example:
        >>> worktree_path(Path("/repo"), "bd-7").as_posix()
        '/repo/.worktrees/bd-7'
    """
    return repo_root / worktrees_dir / issue_id


def work_branch(issue_id: str, *, prefix: str = DEFAULT_BRANCH_PREFIX) -> str:
    """Return the branch name derived from an issue identifier.

    Example:
        >>> work_branch("bd-7")
        'work/bd-7'
    """
    return f"{prefix}{issue_id}"


def lease_path(lease_dir: Path, repo_root: Path, issue_id: str) -> Path:
    """Return the lease file for one issue of one repository.

    Issues are keyed per repository so two repositories sharing an issue
    prefix never contend for the same lease.
    """
    digest = hashlib.sha256(str(repo_root.resolve()).encode("utf-8")).hexdigest()[:12]
    safe_id = issue_id.replace("/", "_").replace("\\", "_")
    return lease_dir / digest / f"{safe_id}.lock"
