import shutil
import subprocess
from pathlib import Path

import pytest

from beadline import exec as exec_util
from beadline.errors import VersionControlError
from beadline.git import GitRepository, git_command


class RecordingRunner:
    def __init__(self, returncode: int = 0, stdout: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.requests: list[exec_util.CommandRequest] = []

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.requests.append(request)
        return exec_util.CommandResult(
            argv=request.argv, returncode=self.returncode, stdout=self.stdout, stderr=""
        )


def test_git_command_uses_custom_executable() -> None:
    assert git_command(["status"], git_path="/usr/local/bin/git") == [
        "/usr/local/bin/git",
        "status",
    ]


def test_add_worktree_creates_branch() -> None:
    runner = RecordingRunner()
    repo = GitRepository(Path("/repo"), runner=runner)

    assert repo.add_worktree(Path("/repo/.worktrees/bd-1"), "work/bd-1", create_branch=True)
    assert repo.add_worktree(Path("/repo/.worktrees/bd-1"), "work/bd-1", create_branch=False)

    assert [request.argv for request in runner.requests] == [
        ("git", "-C", "/repo", "worktree", "add", "-b", "work/bd-1", "/repo/.worktrees/bd-1"),
        ("git", "-C", "/repo", "worktree", "add", "/repo/.worktrees/bd-1", "work/bd-1"),
    ]


def test_rebase_runs_inside_worktree() -> None:
    runner = RecordingRunner(returncode=1)
    repo = GitRepository(Path("/repo"), runner=runner)

    assert repo.rebase(Path("/wt"), "main") is False
    assert runner.requests[0].argv == ("git", "-C", "/wt", "rebase", "main")


def test_conflicting_files_lists_unmerged_paths() -> None:
    runner = RecordingRunner(stdout="a.py\n\nsrc/b.py\n")
    repo = GitRepository(Path("/repo"), runner=runner)

    assert repo.conflicting_files(Path("/wt")) == ["a.py", "src/b.py"]


def test_has_staged_changes_reads_diff_exit_status() -> None:
    assert GitRepository(Path("/r"), runner=RecordingRunner(1)).has_staged_changes(Path("/r"))
    assert not GitRepository(Path("/r"), runner=RecordingRunner(0)).has_staged_changes(Path("/r"))


def test_checkout_failure_raises() -> None:
    repo = GitRepository(Path("/repo"), runner=RecordingRunner(returncode=1))

    with pytest.raises(VersionControlError):
        repo.checkout("main")


def test_missing_git_raises() -> None:
    class MissingRunner:
        def run(self, request: exec_util.CommandRequest) -> None:
            return None

    repo = GitRepository(Path("/repo"), runner=MissingRunner())

    with pytest.raises(VersionControlError, match="missing required command: git"):
        repo.fetch("origin", "main")


def _git(cwd: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", "-C", str(cwd), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout.strip()


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_rebase_then_fast_forward_keeps_trunk_linear(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for name in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(name, "Beadline Test")
    for name in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(name, "test@example.com")
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    _git(repo_root, "init", "-q")
    _git(repo_root, "symbolic-ref", "HEAD", "refs/heads/main")
    (repo_root / "base.txt").write_text("base\n", encoding="utf-8")
    _git(repo_root, "add", "base.txt")
    _git(repo_root, "commit", "-q", "-m", "base")

    repo = GitRepository(repo_root)
    worktree = repo_root / ".worktrees" / "bd-1"
    assert repo.add_worktree(worktree, "work/bd-1", create_branch=True)
    (worktree / "feature.txt").write_text("feature\n", encoding="utf-8")
    repo.stage_all(worktree)
    assert repo.has_staged_changes(worktree)
    assert repo.commit(worktree, "feat: add feature")

    (repo_root / "trunk.txt").write_text("trunk\n", encoding="utf-8")
    _git(repo_root, "add", "trunk.txt")
    _git(repo_root, "commit", "-q", "-m", "trunk moved")

    assert repo.rebase(worktree, "main")
    repo.checkout("main")
    assert repo.merge_ff_only("work/bd-1")

    merges = _git(repo_root, "rev-list", "--merges", "main")
    assert merges == ""
    assert _git(repo_root, "log", "-1", "--format=%s", "main") == "feat: add feature"
    assert repo.remove_worktree(worktree)
    assert repo.delete_branch("work/bd-1")
    assert not worktree.exists()


def test_continue_rebase_never_opens_an_editor() -> None:
    runner = RecordingRunner()
    repo = GitRepository(Path("/repo"), runner=runner)

    assert repo.continue_rebase(Path("/wt"))
    assert runner.requests[0].argv == (
        "git",
        "-C",
        "/wt",
        "-c",
        "core.editor=true",
        "rebase",
        "--continue",
    )
