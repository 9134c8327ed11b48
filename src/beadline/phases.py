"""Pipeline phases and the labels that encode an issue's position.

Example:
    >>> get_phase("lint").exit_label
    'to-review'
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import UnknownPhaseError

NEEDS_PLANNING = "needs-planning"
PLANNING = "planning"
PENDING_APPROVAL = "pending-approval"
APPROVED = "approved"
IMPLEMENTING = "implementing"
TO_LINT = "to-lint"
LINTING = "linting"
TO_REVIEW = "to-review"
REVIEWING = "reviewing"
REVIEWED = "reviewed"
TESTING = "testing"
TESTED = "tested"
AWAITING_HUMAN_REVIEW = "awaiting-human-review"
HUMAN_APPROVED = "human-approved"
MERGED = "merged"
MERGE_FAILED = "merge-failed"

PIPELINE_LABELS = (
    NEEDS_PLANNING,
    PLANNING,
    PENDING_APPROVAL,
    APPROVED,
    IMPLEMENTING,
    TO_LINT,
    LINTING,
    TO_REVIEW,
    REVIEWING,
    REVIEWED,
    TESTING,
    TESTED,
    AWAITING_HUMAN_REVIEW,
    HUMAN_APPROVED,
    MERGED,
)


@dataclass(frozen=True)
class Phase:
    """One pipeline stage.

    Attributes:
        name: Phase name used on the command line.
        entry_labels: Labels that make an issue ready for this phase.
        active_label: In-progress marker while the phase runs, if any.
        exit_label: Label that gates the following phase.
        accepts_unlabeled: Whether an issue without any pipeline label may enter.
    """

    name: str
    entry_labels: tuple[str, ...]
    active_label: str | None
    exit_label: str
    accepts_unlabeled: bool = False

    @property
    def accepted_labels(self) -> tuple[str, ...]:
        if self.active_label is None:
            return self.entry_labels
        return (*self.entry_labels, self.active_label)

    def accepts(self, labels: tuple[str, ...]) -> bool:
        """Return whether an issue carrying ``labels`` may run this phase."""
        current = [label for label in labels if label in PIPELINE_LABELS]
        if not current:
            return self.accepts_unlabeled
        return any(label in self.accepted_labels for label in current)


PHASES: dict[str, Phase] = {
    phase.name: phase
    for phase in (
        Phase("planning", (NEEDS_PLANNING,), PLANNING, PENDING_APPROVAL, accepts_unlabeled=True),
        Phase("implement", (PENDING_APPROVAL, APPROVED), IMPLEMENTING, TO_LINT),
        Phase("lint", (TO_LINT,), LINTING, TO_REVIEW),
        Phase("review", (TO_REVIEW,), REVIEWING, REVIEWED),
        Phase("test", (REVIEWED,), TESTING, TESTED),
        Phase("human-review", (TESTED,), None, AWAITING_HUMAN_REVIEW),
        Phase("merge", (AWAITING_HUMAN_REVIEW, HUMAN_APPROVED), None, MERGED),
    )
}
PHASE_NAMES = tuple(PHASES)


def get_phase(name: str) -> Phase:
    """Return the named phase or raise ``UnknownPhaseError``."""
    phase = PHASES.get(name.strip())
    if phase is None:
        raise UnknownPhaseError(name, PHASE_NAMES)
    return phase


def current_pipeline_labels(labels: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(label for label in labels if label in PIPELINE_LABELS)
