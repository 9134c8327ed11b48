"""Failure contracts for the phase engine.

Errors local to one issue derive from ``IssueFailure`` and are contained by the
batch runner. ``InvalidInvocationError`` aborts the whole run before any issue
is touched. Programmer bugs raise normal exceptions.
"""

from __future__ import annotations

from typing import Literal

from .exec import CommandResult

BeadlineFailureCode = Literal[
    "invalid_invocation",
    "issue_store_failed",
    "version_control_failed",
]


class BeadlineError(Exception):
    """Expected engine failure carrying a stable code."""

    def __init__(self, code: BeadlineFailureCode, message: str) -> None:
        super().__init__(message)
        self.code = code


class InvalidInvocationError(BeadlineError):
    """Bad arguments or configuration; aborts the whole batch."""

    def __init__(self, message: str) -> None:
        super().__init__("invalid_invocation", message)


class UnknownPhaseError(InvalidInvocationError):
    """Requested phase name is not part of the pipeline."""

    def __init__(self, phase: str, known: tuple[str, ...]) -> None:
        super().__init__(f"Unknown phase: {phase} (expected one of: {', '.join(known)})")
        self.phase = phase


class IssueFailure(BeadlineError):
    """Failure confined to the issue being processed."""

    def __init__(
        self,
        code: BeadlineFailureCode,
        message: str,
        *,
        result: CommandResult | None = None,
    ) -> None:
        super().__init__(code, message)
        self.result = result


class IssueStoreError(IssueFailure):
    """An issue-store (``bd``) operation failed."""

    def __init__(self, message: str, *, result: CommandResult | None = None) -> None:
        super().__init__("issue_store_failed", message, result=result)


class VersionControlError(IssueFailure):
    """A version-control (``git``) operation failed."""

    def __init__(self, message: str, *, result: CommandResult | None = None) -> None:
        super().__init__("version_control_failed", message, result=result)
