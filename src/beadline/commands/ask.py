"""Implementation for the ``beadline ask`` command."""

from __future__ import annotations

from pathlib import Path

from .. import protocol
from ..beads import BeadsStore
from ..config import load_config
from ..errors import BeadlineError
from ..io import die, say


def ask_question(args: object) -> None:
    """File a question blocker against an issue and print its id."""
    repo_root = Path(str(getattr(args, "repo", ".") or ".")).expanduser().resolve()
    issue_id = str(getattr(args, "issue_id"))
    question = str(getattr(args, "question", "") or "")
    context = str(getattr(args, "context", "") or "")
    try:
        config = load_config(repo_root)
        store = BeadsStore(repo_root, beads_dir=config.beads_dir)
        blocker_id = protocol.ask_human(store, issue_id, question, context)
    except ValueError as exc:
        die(str(exc))
    except BeadlineError as exc:
        die(str(exc))
    say(blocker_id)
