"""Implementation for the ``beadline process`` command."""

from __future__ import annotations

from pathlib import Path

from .. import log, phases
from ..config import load_config
from ..engine import BatchReport, PhaseEngine
from ..errors import InvalidInvocationError
from ..io import die
from ..models import load_batch


def _summarize(report: BatchReport) -> None:
    counts: dict[str, int] = {}
    for result in report.results:
        counts[result.status] = counts.get(result.status, 0) + 1
    if not counts:
        log.info(f"No issues to process for phase: {report.phase}")
        return
    summary = ", ".join(f"{status}={count}" for status, count in sorted(counts.items()))
    log.info(f"Phase {report.phase}: {summary}")


def process_issues(args: object) -> None:
    """Run one phase over every issue listed in a batch file."""
    repo_root = Path(str(getattr(args, "repo"))).expanduser().resolve()
    if not repo_root.is_dir():
        die(f"repository not found: {repo_root}")
    try:
        phase = phases.get_phase(str(getattr(args, "phase")))
        config = load_config(repo_root)
        entries = load_batch(Path(str(getattr(args, "batch_file"))).expanduser())
    except InvalidInvocationError as exc:
        die(str(exc))

    engine = PhaseEngine.create(repo_root, config)
    report = engine.run_batch(entries, phase.name)
    _summarize(report)
    if not report.ok:
        failed = ", ".join(result.issue_id for result in report.failed)
        die(f"phase {phase.name} failed for: {failed}")
    log.success(f"Done processing phase: {phase.name}")
