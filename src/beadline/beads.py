"""Beads CLI boundary for the phase engine.

The engine only talks to the issue store through ``IssueStore``; ``BeadsStore``
implements it on top of the ``bd`` command line so tests can substitute an
in-memory fake.
"""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from . import exec, log
from .errors import IssueStoreError
from .models import Comment, Issue


class IssueStore(Protocol):
    """Issue-store operations the engine relies on."""

    def create_issue(
        self,
        title: str,
        *,
        description: str | None = None,
        labels: tuple[str, ...] = (),
        parent: str | None = None,
        ephemeral: bool = False,
    ) -> str: ...

    def show_issue(self, issue_id: str) -> Issue | None: ...

    def add_label(self, issue_id: str, label: str) -> None: ...

    def remove_label(self, issue_id: str, label: str) -> bool: ...

    def update_status(self, issue_id: str, status: str) -> bool: ...

    def update_type(self, issue_id: str, issue_type: str) -> bool: ...

    def add_dependency(self, issue_id: str, depends_on: str) -> None: ...

    def add_comment(self, issue_id: str, text: str) -> None: ...

    def list_comments(self, issue_id: str) -> list[Comment]: ...

    def list_issues(self, *, parent: str | None = None) -> list[Issue]: ...

    def close_issue(self, issue_id: str, *, reason: str) -> None: ...


def beads_env(beads_dir: Path | None, base: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment mapping with ``BEADS_DIR`` set when configured."""
    env = dict(os.environ if base is None else base)
    if beads_dir is not None:
        env["BEADS_DIR"] = str(beads_dir)
    return env


def _parse_json_objects(raw: str) -> list[dict[str, object]]:
    text = raw.strip()
    if not text:
        return []
    payload = json.loads(text)
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        return [payload]
    return []


def _decode_json(result: exec.CommandResult) -> list[dict[str, object]]:
    try:
        return _parse_json_objects(result.stdout)
    except json.JSONDecodeError as exc:
        raise IssueStoreError(f"failed to parse bd json output: {exc}", result=result) from exc


def parse_created_id(stdout: str) -> str:
    """Extract the new issue id from ``bd create --silent`` output.

    Example:
        >>> parse_created_id("bd-a1b2\\n")
        'bd-a1b2'
    """
    for line in stdout.splitlines():
        cleaned = line.strip()
        if cleaned:
            return cleaned.split()[0]
    raise ValueError("bd create returned no issue id")


@dataclass
class BeadsStore:
    """``IssueStore`` backed by the ``bd`` CLI, run from the repository root."""

    repo_root: Path
    beads_dir: Path | None = None
    runner: exec.CommandRunner | None = None
    _env: dict[str, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._env = beads_env(self.beads_dir)

    def _request(self, args: list[str]) -> exec.CommandRequest:
        return exec.CommandRequest(
            argv=("bd", *args),
            cwd=self.repo_root,
            env=self._env,
            stdin=subprocess.DEVNULL,
        )

    def run(self, args: list[str], *, allow_failure: bool = False) -> exec.CommandResult | None:
        """Run a ``bd`` command.

        Raises ``IssueStoreError`` when ``bd`` is missing or exits non-zero,
        unless ``allow_failure`` is set, in which case the raw result (or
        ``None`` for a missing executable) is returned.
        """
        request = self._request(args)
        result = exec.run_with_runner(request, runner=self.runner)
        if result is None:
            if allow_failure:
                return None
            raise IssueStoreError(exec.missing_command_detail(request))
        if not result.ok and not allow_failure:
            raise IssueStoreError(exec.command_failure_detail(request, result), result=result)
        return result

    def run_json(self, args: list[str]) -> list[dict[str, object]]:
        command = list(args)
        if "--json" not in command:
            command.append("--json")
        result = self.run(command)
        assert result is not None
        return _decode_json(result)

    def create_issue(
        self,
        title: str,
        *,
        description: str | None = None,
        labels: tuple[str, ...] = (),
        parent: str | None = None,
        ephemeral: bool = False,
    ) -> str:
        args = ["create", "--title", title]
        if ephemeral:
            args.append("--wisp")
        if description:
            args.extend(["--description", description])
        if labels:
            args.extend(["--labels", ",".join(labels)])
        if parent:
            args.extend(["--parent", parent])
        args.append("--silent")
        result = self.run(args)
        assert result is not None
        try:
            return parse_created_id(result.stdout)
        except ValueError as exc:
            raise IssueStoreError(str(exc), result=result) from exc

    def show_issue(self, issue_id: str) -> Issue | None:
        """Return the issue, or ``None`` when ``bd show`` cannot find it."""
        args = ["show", issue_id, "--json"]
        result = self.run(args, allow_failure=True)
        if result is None:
            raise IssueStoreError(exec.missing_command_detail(self._request(args)))
        if not result.ok:
            log.debug(f"bd show {issue_id} failed: {result.output}")
            return None
        payload = _decode_json(result)
        if not payload:
            return None
        try:
            return Issue.model_validate(payload[0])
        except ValidationError as exc:
            raise IssueStoreError(f"invalid issue payload for {issue_id}: {exc}") from exc

    def add_label(self, issue_id: str, label: str) -> None:
        self.run(["label", "add", issue_id, label])

    def remove_label(self, issue_id: str, label: str) -> bool:
        result = self.run(["label", "remove", issue_id, label], allow_failure=True)
        return result is not None and result.ok

    def update_status(self, issue_id: str, status: str) -> bool:
        result = self.run(["update", issue_id, "--status", status], allow_failure=True)
        if result is None or not result.ok:
            log.warning(f"could not set status {status!r} on {issue_id}")
            return False
        return True

    def update_type(self, issue_id: str, issue_type: str) -> bool:
        result = self.run(["update", issue_id, "--type", issue_type], allow_failure=True)
        return result is not None and result.ok

    def add_dependency(self, issue_id: str, depends_on: str) -> None:
        self.run(["dep", "add", issue_id, depends_on])

    def add_comment(self, issue_id: str, text: str) -> None:
        self.run(["comments", "add", issue_id, text])

    def list_comments(self, issue_id: str) -> list[Comment]:
        comments: list[Comment] = []
        for item in self.run_json(["comments", issue_id]):
            try:
                comments.append(Comment.model_validate(item))
            except ValidationError:
                continue
        return comments

    def list_issues(self, *, parent: str | None = None) -> list[Issue]:
        args = ["list"]
        if parent:
            args.extend(["--parent", parent])
        issues: list[Issue] = []
        for item in self.run_json(args):
            try:
                issues.append(Issue.model_validate(item))
            except ValidationError:
                continue
        return issues

    def close_issue(self, issue_id: str, *, reason: str) -> None:
        self.run(["close", issue_id, "--reason", reason])


def open_dependencies(store: IssueStore, issue: Issue) -> list[Issue]:
    """Return the dependencies of ``issue`` that are not yet closed.

    A dependency that cannot be read counts as open so the issue stays gated.
    """
    blockers: list[Issue] = []
    for dependency_id in issue.dependency_ids:
        dependency = store.show_issue(dependency_id)
        if dependency is None:
            blockers.append(Issue(id=dependency_id, status="unavailable"))
            continue
        if dependency.is_closed:
            continue
        blockers.append(dependency)
    return blockers
