# ruff: noqa: E402

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import beadline.log as beadline_log

SCHEDULER_ENV_VARS = (
    "LINT_CMD",
    "TYPE_CMD",
    "FORMAT_CMD",
    "BEADLINE_TRUNK",
    "BEADLINE_AGENT",
    "BEADLINE_ADVANCE_ON_BEST_EFFORT",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("BEADLINE_LOG_LEVEL", raising=False)
    monkeypatch.setattr(beadline_log, "_configured_level", None)
    monkeypatch.setattr(beadline_log, "_no_color_override", None)
    for name in SCHEDULER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
