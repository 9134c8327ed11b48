"""Beadline command-line interface."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Annotated

import typer

from . import __version__
from . import log as beadline_log
from .commands import ask_question as ask_cmd
from .commands import list_phases as phases_cmd
from .commands import process_issues as process_cmd

app = typer.Typer(
    help="Move beads issues through an agent-driven delivery pipeline.",
    add_completion=False,
    no_args_is_help=True,
)


def _validate_log_level(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in beadline_log.LEVEL_NAMES:
        raise typer.BadParameter(f"expected one of: {', '.join(beadline_log.LEVEL_NAMES)}")
    return normalized


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Log level (trace, debug, info, success, warning, error).",
            callback=_validate_log_level,
        ),
    ] = None,
    no_color: Annotated[
        bool,
        typer.Option("--no-color", help="Disable colorized output."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    if log_level is not None:
        beadline_log.set_level(log_level)
    if no_color:
        beadline_log.set_no_color(True)


@app.command("process")
def process(
    repo: Annotated[str, typer.Argument(help="Path to the target git repository.")],
    batch_file: Annotated[
        str, typer.Argument(help="JSON array of {id, title} issues to process.")
    ],
    phase: Annotated[str, typer.Argument(help="Pipeline phase to run.")],
) -> None:
    """Run one pipeline phase over a batch of issues."""
    process_cmd(SimpleNamespace(repo=repo, batch_file=batch_file, phase=phase))


@app.command("ask")
def ask(
    issue_id: Annotated[str, typer.Argument(help="Issue the question blocks.")],
    question: Annotated[str, typer.Option("--question", "-q", help="Question text.")],
    context: Annotated[str, typer.Option("--context", help="Optional extra context.")] = "",
    repo: Annotated[str, typer.Option("--repo", help="Repository root.")] = ".",
) -> None:
    """Ask a human a question, blocking the issue until it is answered."""
    ask_cmd(
        SimpleNamespace(issue_id=issue_id, question=question, context=context, repo=repo)
    )


@app.command("phases")
def phases() -> None:
    """List pipeline phases and their labels."""
    phases_cmd(SimpleNamespace())
