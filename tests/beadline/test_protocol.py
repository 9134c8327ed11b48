import pytest

from beadline import protocol
from tests.beadline.helpers import FakeIssueStore


def test_ask_human_files_one_linked_blocker() -> None:
    store = FakeIssueStore()
    store.add("bd-1")

    blocker_id = protocol.ask_human(store, "bd-1", "  Which database?  ", "Postgres or SQLite")

    blocker = store.issues[blocker_id]
    assert blocker["title"] == "Question: Which database?"
    assert blocker["labels"] == ["needs-human-input"]
    assert blocker["ephemeral"] is True
    assert blocker["description"] == "Which database?\n\nPostgres or SQLite"
    assert store.issues["bd-1"]["dependencies"] == [blocker_id]


def test_ask_human_rejects_empty_question() -> None:
    store = FakeIssueStore()
    store.add("bd-1")

    with pytest.raises(ValueError):
        protocol.ask_human(store, "bd-1", "   ")

    assert store.calls == []


def test_classify_reports_new_question_blockers_only() -> None:
    store = FakeIssueStore()
    store.add("bd-1")
    old = protocol.ask_human(store, "bd-1", "Old question")
    before = protocol.open_question_blockers(store, "bd-1")

    untouched = protocol.classify(store, "bd-1", before=before, output="ok", returncode=3)
    new = protocol.ask_human(store, "bd-1", "New question")
    asked = protocol.classify(store, "bd-1", before=before, output="", returncode=0)

    assert before == (old,)
    assert untouched == protocol.AgentCompleted(output="ok", returncode=3)
    assert untouched.failed
    assert asked == protocol.AgentAwaitingInput(blocker_id=new, output="")


def test_gate_blockers_are_not_questions() -> None:
    store = FakeIssueStore()
    store.add("bd-1")
    protocol.create_gate_blocker(store, "bd-1", "Approve plan for bd-1", "needs-human-approval")

    assert protocol.open_question_blockers(store, "bd-1") == ()


def test_prompt_instructions_reference_issue() -> None:
    prompt = protocol.with_ask_instructions("Do the work.\n", "bd-7")

    assert prompt.startswith("Do the work.\n\nIMPORTANT")
    assert "bd dep add bd-7 <wisp-id>" in prompt
    assert "--labels needs-human-input" in prompt
