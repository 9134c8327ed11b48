"""Command implementations exposed by the Beadline CLI."""

from .ask import ask_question
from .phases import list_phases
from .process import process_issues

__all__ = [
    "ask_question",
    "list_phases",
    "process_issues",
]
