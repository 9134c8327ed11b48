"""Configuration for Beadline pipeline runs.

Settings come from an optional ``<repo>/.beadline/config.json`` file, validated
with Pydantic models, and are then overlaid by environment variables set by the
scheduler for each repository.

Example:
    >>> from pathlib import Path
    >>> config = load_config(Path("/nonexistent"), env={"LINT_CMD": "ruff check ."})
    >>> config.commands.lint
    'ruff check .'
    >>> config.trunk
    'main'
"""

from __future__ import annotations

import json
import os
import shlex
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import paths
from .errors import InvalidInvocationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

COMMAND_ENV_VARS = {
    "lint": "LINT_CMD",
    "type": "TYPE_CMD",
    "format": "FORMAT_CMD",
}


def _parse_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
    return None


def _optional_command(value: object) -> object:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    return value


class ToolCommands(BaseModel):
    """Per-repository lint, type-check, and auto-format commands.

    Each command is an opaque shell string; ``None`` skips the step.
    """

    model_config = ConfigDict(extra="forbid")

    lint: str | None = None
    type: str | None = None
    format: str | None = None

    @field_validator("lint", "type", "format", mode="before")
    @classmethod
    def _normalize_command(cls, value: object) -> object:
        return _optional_command(value)


class AgentConfig(BaseModel):
    """How the coding agent is launched and where it keeps its sessions."""

    model_config = ConfigDict(extra="forbid")

    command: tuple[str, ...] = ("claude",)
    sessions_dir: Path = Path("~/.claude/projects")

    @field_validator("command", mode="before")
    @classmethod
    def _split_command(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(shlex.split(value))
        return value

    @field_validator("command")
    @classmethod
    def _require_command(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("agent command must not be empty")
        return value

    @property
    def resolved_sessions_dir(self) -> Path:
        return self.sessions_dir.expanduser()


class PipelineConfig(BaseModel):
    """Effective settings for one repository."""

    model_config = ConfigDict(extra="forbid")

    trunk: str = "main"
    remote: str = "origin"
    worktrees_dir: str = paths.DEFAULT_WORKTREES_DIRNAME
    branch_prefix: str = paths.DEFAULT_BRANCH_PREFIX
    agent: AgentConfig = Field(default_factory=AgentConfig)
    commands: ToolCommands = Field(default_factory=ToolCommands)
    advance_on_best_effort: bool = True
    beads_dir: Path | None = None
    lease_dir: Path | None = None

    @field_validator("trunk", "remote", "worktrees_dir", mode="before")
    @classmethod
    def _require_text(cls, value: object) -> object:
        if isinstance(value, str):
            cleaned = value.strip()
            if not cleaned:
                raise ValueError("must not be empty")
            return cleaned
        return value

    @property
    def resolved_lease_dir(self) -> Path:
        if self.lease_dir is not None:
            return self.lease_dir.expanduser()
        return paths.default_lease_dir()


def _load_payload(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidInvocationError(f"cannot read config {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise InvalidInvocationError(f"config {path} must contain a JSON object")
    return payload


def _apply_env(payload: dict[str, object], env: Mapping[str, str]) -> dict[str, object]:
    merged = dict(payload)
    commands = merged.get("commands")
    command_payload = dict(commands) if isinstance(commands, dict) else {}
    for key, env_var in COMMAND_ENV_VARS.items():
        if env_var in env:
            command_payload[key] = env[env_var]
    merged["commands"] = command_payload

    trunk = env.get("BEADLINE_TRUNK")
    if trunk and trunk.strip():
        merged["trunk"] = trunk
    agent_command = env.get("BEADLINE_AGENT")
    if agent_command and agent_command.strip():
        agent = merged.get("agent")
        agent_payload = dict(agent) if isinstance(agent, dict) else {}
        agent_payload["command"] = agent_command
        merged["agent"] = agent_payload
    advance = _parse_bool(env.get("BEADLINE_ADVANCE_ON_BEST_EFFORT"))
    if advance is not None:
        merged["advance_on_best_effort"] = advance
    return merged


def load_config(repo_root: Path, *, env: Mapping[str, str] | None = None) -> PipelineConfig:
    """Load the effective pipeline config for a repository.

    Args:
        repo_root: Target repository root.
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        Validated ``PipelineConfig``.

    Raises:
        InvalidInvocationError: When the config file is unreadable or invalid.
    """
    env_map = os.environ if env is None else env
    config_path = paths.repo_config_path(repo_root)
    payload = _apply_env(_load_payload(config_path), env_map)
    try:
        return PipelineConfig.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInvocationError(f"invalid config {config_path}: {exc}") from exc
