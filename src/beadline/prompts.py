"""Phase prompt rendering helpers.

The ask-and-resume instruction block is appended by the agent invoker, not
here.
"""

from __future__ import annotations


def _heading(issue_id: str, title: str) -> str:
    return f"{issue_id}: {title}" if title else issue_id


def planning_prompt(issue_id: str, title: str, description: str) -> str:
    """Build the prompt that turns an issue into a plan of child tasks."""
    return "\n".join(
        [
            f"You are planning issue {_heading(issue_id, title)}",
            f"Description: {description}",
            "",
            "Your task:",
            f"1. Read the issue details with: bd show {issue_id}",
            "2. Break down the work into 2-5 concrete tasks",
            "3. Update the issue type to 'feature' or 'epic' if it makes sense: "
            f"bd update {issue_id} --type feature",
            "4. Create child tasks under this issue using: "
            f'bd create --title "Task title" --parent {issue_id} --type task',
            f'5. Add a summary comment: bd comments add {issue_id} "Plan: <brief summary>"',
            "",
            "Keep tasks small and actionable. Each task should be implementable in one session.",
            "Do NOT implement anything - just create the plan structure.",
        ]
    )


def implement_prompt(
    issue_id: str, title: str, description: str, children: tuple[str, ...] = ()
) -> str:
    """Build the implementation prompt; ``children`` are ``"<id>: <title>"`` lines."""
    lines = [
        f"Implement issue {_heading(issue_id, title)}",
        f"Description: {description}",
    ]
    if children:
        lines.extend(["", "Child tasks:", *(f"- {child}" for child in children)])
    lines.extend(
        [
            "",
            "Instructions:",
            f"1. Read full context with: bd show {issue_id}",
            f"2. Check for any child tasks: bd list --parent {issue_id}",
            "3. Implement the required changes",
            "4. Commit your changes with a clear message",
            "5. Do NOT close the issue - just implement and commit",
        ]
    )
    return "\n".join(lines)


def lint_fix_prompt(
    issue_id: str, *, lint_command: str | None, type_command: str | None
) -> str:
    return "\n".join(
        [
            f"Lint/type checks failed for issue {issue_id}.",
            "",
            "Commands that failed:",
            f"- Lint: {lint_command or '(not configured)'}",
            f"- Type: {type_command or '(not configured)'}",
            "",
            "Run the commands again to see errors, then fix them.",
            "After fixing, commit with message: 'fix: lint and type issues'",
            f"Context: bd show {issue_id}",
        ]
    )


def review_prompt(issue_id: str, *, trunk: str) -> str:
    return "\n".join(
        [
            f"Review the changes for issue {issue_id}.",
            f"Context: bd show {issue_id}",
            "",
            f"1. Run: git log --oneline {trunk}..HEAD to see commits",
            f"2. Run: git diff {trunk} to see all changes",
            "3. Be direct and critical",
            "4. Check for: bugs, security issues, performance problems, code style",
            f'5. Add your review: bd comments add {issue_id} "Review: <your assessment>"',
            "",
            "If there are issues, list them clearly. If it looks good, say 'LGTM'.",
        ]
    )


def testing_prompt(issue_id: str) -> str:
    return "\n".join(
        [
            f"Test the implementation for issue {issue_id}.",
            f"Context: bd show {issue_id}",
            "",
            "1. Find and run existing tests (npm test, pytest, cargo test, go test, etc.)",
            "2. If no tests exist, do a quick manual verification",
            f'3. Report results: bd comments add {issue_id} "Tests: <PASS/FAIL with details>"',
            "",
            "Be thorough but quick.",
        ]
    )


def conflict_prompt(issue_id: str, *, trunk: str, conflicts: list[str]) -> str:
    """Build the ordered conflict-resolution procedure for a stalled rebase."""
    listing = "\n".join(conflicts)
    return "\n".join(
        [
            f"There are merge conflicts while rebasing issue {issue_id} on {trunk}.",
            "",
            f"Context: bd show {issue_id}",
            "",
            "Conflicting files:",
            listing,
            "",
            "Instructions:",
            "1. For each conflicting file, examine the conflict markers (<<<<<<< ======= >>>>>>>)",
            "2. Understand both versions and merge them intelligently",
            "3. Remove all conflict markers",
            "4. Run: git add <file> for each resolved file",
            "5. Run: git rebase --continue",
            "6. If rebase still fails, run: git rebase --abort and report the issue",
            "",
            "Preserve functionality from both branches where possible.",
        ]
    )
