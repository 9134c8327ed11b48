"""Implementation for the ``beadline phases`` command."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table

from .. import phases


def list_phases(args: object) -> None:
    """Print the pipeline phases with their entry and exit labels."""
    table = Table(box=box.SIMPLE)
    table.add_column("Phase")
    table.add_column("Entry labels")
    table.add_column("In progress")
    table.add_column("Exit label")
    for phase in phases.PHASES.values():
        table.add_row(
            phase.name,
            ", ".join(phase.entry_labels) + (" (or unlabeled)" if phase.accepts_unlabeled else ""),
            phase.active_label or "-",
            phase.exit_label,
        )
    Console(soft_wrap=True).print(table)
