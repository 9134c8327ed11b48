"""Ask-and-resume convention between the engine and the coding agent.

The agent never blocks on a prompt. When it needs a human decision it files a
question blocker, makes the main issue depend on it, and stops. The engine
learns about the pause from the issue store, not from the agent's text.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import log
from .beads import IssueStore, open_dependencies

NEEDS_HUMAN_INPUT = "needs-human-input"
NEEDS_HUMAN_APPROVAL = "needs-human-approval"
NEEDS_HUMAN_REVIEW = "needs-human-review"
QUESTION_TITLE_PREFIX = "Question: "


@dataclass(frozen=True)
class AgentCompleted:
    """The agent ran to completion (successfully or not) without asking."""

    output: str
    returncode: int = 0

    @property
    def failed(self) -> bool:
        return self.returncode != 0


@dataclass(frozen=True)
class AgentAwaitingInput:
    """The agent paused on a question blocker that a human must close."""

    blocker_id: str
    output: str = ""


AgentOutcome = AgentCompleted | AgentAwaitingInput


def ask_instructions(issue_id: str) -> str:
    """Return the instruction block appended to every phase prompt."""
    return f"""
IMPORTANT: If you need clarification or are unsure about something:
1. Do NOT guess or make assumptions
2. Create a wisp blocker immediately (ephemeral, won't pollute beads):
   bd create --wisp --title "{QUESTION_TITLE_PREFIX}<brief question>" \\
     --description "<detailed context and options>" \\
     --labels {NEEDS_HUMAN_INPUT} --silent
3. Make the main issue depend on it:
   bd dep add {issue_id} <wisp-id>
4. Stop immediately - do not continue working
5. Human will close the wisp with their answer: bd close <wisp-id> --reason "answer"
"""


def with_ask_instructions(prompt: str, issue_id: str) -> str:
    return f"{prompt.rstrip()}\n\n{ask_instructions(issue_id).strip()}\n"


def ask_human(store: IssueStore, issue_id: str, question: str, context: str = "") -> str:
    """File a question blocker for ``issue_id`` and return the blocker id.

    The blocker description always restates the question so it survives even
    when no further context is supplied.
    """
    question_text = question.strip()
    if not question_text:
        raise ValueError("question must not be empty")
    description = question_text
    if context.strip():
        description = f"{question_text}\n\n{context.strip()}"
    blocker_id = store.create_issue(
        f"{QUESTION_TITLE_PREFIX}{question_text}",
        description=description,
        labels=(NEEDS_HUMAN_INPUT,),
        ephemeral=True,
    )
    store.add_dependency(issue_id, blocker_id)
    log.info(f"Created question blocker {blocker_id} for {issue_id}")
    return blocker_id


def create_gate_blocker(store: IssueStore, issue_id: str, title: str, label: str) -> str:
    """Create a process-gate blocker (approval or review) and link it."""
    blocker_id = store.create_issue(title, labels=(label,))
    store.add_dependency(issue_id, blocker_id)
    log.info(f"Created blocker: {blocker_id}")
    return blocker_id


def open_question_blockers(store: IssueStore, issue_id: str) -> tuple[str, ...]:
    """Return ids of open ``needs-human-input`` blockers gating ``issue_id``."""
    issue = store.show_issue(issue_id)
    if issue is None:
        return ()
    return tuple(
        blocker.id
        for blocker in open_dependencies(store, issue)
        if blocker.has_label(NEEDS_HUMAN_INPUT)
    )


def classify(
    store: IssueStore,
    issue_id: str,
    *,
    before: tuple[str, ...],
    output: str,
    returncode: int,
) -> AgentOutcome:
    """Turn a finished agent run into a tagged outcome.

    Any question blocker that appeared during the run means the agent asked;
    this takes precedence over the process exit status.
    """
    after = open_question_blockers(store, issue_id)
    new_blockers = [blocker_id for blocker_id in after if blocker_id not in before]
    if new_blockers:
        return AgentAwaitingInput(blocker_id=new_blockers[0], output=output)
    return AgentCompleted(output=output, returncode=returncode)
