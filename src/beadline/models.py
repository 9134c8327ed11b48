"""Pydantic models for issue-store payloads and batch input."""

from __future__ import annotations

import json
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidInvocationError

_DEPENDENCY_ID_PATTERN = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)\b")
TERMINAL_STATUSES = frozenset({"closed", "done"})


def _clean_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _is_parent_child_relation(value: object) -> bool:
    if isinstance(value, dict):
        for key in ("relation", "dependency_type", "type"):
            relation = value.get(key)
            if isinstance(relation, str) and relation.strip().lower() == "parent-child":
                return True
        return False
    if isinstance(value, str):
        return "parent-child" in value.lower()
    return False


def _extract_dependency_id(value: object) -> str | None:
    if _is_parent_child_relation(value):
        return None
    if isinstance(value, dict):
        for key in ("id", "depends_on_id"):
            issue_id = _clean_str(value.get(key))
            if issue_id:
                return issue_id
        nested_issue = value.get("issue")
        if isinstance(nested_issue, dict):
            return _clean_str(nested_issue.get("id"))
        return None
    if not isinstance(value, str):
        return None
    match = _DEPENDENCY_ID_PATTERN.match(value.strip())
    if not match:
        return None
    return match.group(1).strip() or None


class Issue(BaseModel):
    """Validated issue payload as returned by ``bd show --json``.

    Example:
        >>> issue = Issue.model_validate({"id": "bd-1", "labels": ["to-lint", "to-lint"]})
        >>> issue.labels
        ('to-lint',)
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    title: str = ""
    description: str = ""
    status: str | None = None
    labels: tuple[str, ...] = ()
    parent_id: str | None = Field(default=None, alias="parent")
    dependency_ids: tuple[str, ...] = Field(default=(), alias="dependencies")

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> object:
        normalized = _clean_str(value)
        if normalized is None:
            raise ValueError("missing issue id")
        return normalized

    @field_validator("title", "description", mode="before")
    @classmethod
    def _normalize_text(cls, value: object) -> object:
        if value is None:
            return ""
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        cleaned = _clean_str(value)
        return cleaned.lower() if cleaned else None

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, value: object) -> tuple[str, ...]:
        if not isinstance(value, list | tuple):
            return ()
        normalized: list[str] = []
        seen: set[str] = set()
        for entry in value:
            label = _clean_str(entry)
            if not label or label in seen:
                continue
            seen.add(label)
            normalized.append(label)
        return tuple(normalized)

    @field_validator("parent_id", mode="before")
    @classmethod
    def _normalize_parent(cls, value: object) -> object:
        if isinstance(value, dict):
            return _clean_str(value.get("id"))
        return _clean_str(value)

    @field_validator("dependency_ids", mode="before")
    @classmethod
    def _normalize_dependencies(cls, value: object) -> tuple[str, ...]:
        if not isinstance(value, list | tuple):
            return ()
        deps: list[str] = []
        seen: set[str] = set()
        for entry in value:
            dep_id = _extract_dependency_id(entry)
            if not dep_id or dep_id in seen:
                continue
            seen.add(dep_id)
            deps.append(dep_id)
        return tuple(deps)

    @property
    def is_closed(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def has_label(self, label: str) -> bool:
        return label in self.labels


class Comment(BaseModel):
    """Issue comment payload; only the text is relied upon."""

    model_config = ConfigDict(extra="allow")

    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _normalize_text(cls, value: object) -> object:
        if value is None:
            return ""
        return value


class BatchEntry(BaseModel):
    """One issue handed to a phase run by the scheduler."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> object:
        normalized = _clean_str(value)
        if normalized is None:
            raise ValueError("missing issue id")
        return normalized

    @field_validator("title", mode="before")
    @classmethod
    def _normalize_title(cls, value: object) -> object:
        return _clean_str(value) or ""


def load_batch(path: Path) -> list[BatchEntry]:
    """Load a scheduler batch file (a JSON array of ``{id, title}`` objects).

    Entries without an identifier are skipped.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidInvocationError(f"cannot read batch file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidInvocationError(f"batch file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise InvalidInvocationError(f"batch file {path} must contain a JSON array")
    entries: list[BatchEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            entries.append(BatchEntry.model_validate(item))
        except ValidationError:
            continue
    return entries
