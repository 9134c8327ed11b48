"""Agent session identifiers persisted as issue comments.

Every issue owns exactly one session identifier for its lifetime. It is stored
as a ``claude-session:<uuid>`` comment on the issue, so all phases resume the
same agent conversation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from . import log
from .beads import IssueStore

SESSION_MARKER = "claude-session:"


def parse_session_marker(text: str) -> str | None:
    """Return the session id embedded in a comment, if it is a marker.

    Example:
        >>> parse_session_marker("claude-session:1234")
        '1234'
        >>> parse_session_marker("Plan: split into tasks") is None
        True
    """
    stripped = text.strip()
    if not stripped.startswith(SESSION_MARKER):
        return None
    session_id = stripped[len(SESSION_MARKER) :].strip()
    return session_id or None


def new_session_id() -> str:
    return str(uuid.uuid4())


def session_marker(session_id: str) -> str:
    return f"{SESSION_MARKER}{session_id}"


def session_exists_on_disk(sessions_dir: Path, session_id: str) -> bool:
    """Return whether the agent runtime has stored state for ``session_id``.

    Session state lives somewhere below ``sessions_dir`` as a file or directory
    whose name starts with the identifier.
    """
    if not session_id or not sessions_dir.is_dir():
        return False
    try:
        return any(True for _ in sessions_dir.rglob(f"{session_id}*"))
    except OSError:
        return False


@dataclass
class SessionStore:
    """Map issues to durable agent session identifiers."""

    store: IssueStore
    sessions_dir: Path
    new_id: Callable[[], str] = new_session_id

    def find_session(self, issue_id: str) -> str | None:
        for comment in self.store.list_comments(issue_id):
            session_id = parse_session_marker(comment.text)
            if session_id:
                return session_id
        return None

    def get_or_create_session(self, issue_id: str) -> str:
        """Return the issue's session id, recording a new one on first use."""
        existing = self.find_session(issue_id)
        if existing:
            return existing
        session_id = self.new_id()
        self.store.add_comment(issue_id, session_marker(session_id))
        log.debug(f"Recorded session {session_id} on {issue_id}")
        return session_id

    def session_exists(self, session_id: str) -> bool:
        return session_exists_on_disk(self.sessions_dir, session_id)
