"""Leveled terminal output for pipeline runs.

Messages about one issue can carry its id, which is rendered as a dim
``[bd-1]`` prefix so interleaved batch output stays attributable.
"""

from __future__ import annotations

import os
import sys
from enum import IntEnum

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


_STYLES = {
    LogLevel.TRACE: "dim",
    LogLevel.DEBUG: "cyan",
    LogLevel.INFO: "",
    LogLevel.SUCCESS: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}
LEVEL_NAMES = tuple(level.name.lower() for level in LogLevel)
_ALIASES = {"warn": LogLevel.WARNING}
_DEFAULT_LEVEL = LogLevel.INFO
_ISSUE_STYLE = "dim"

_configured_level: LogLevel | None = None
_no_color_override: bool | None = None


def parse_level(value: str | None) -> LogLevel:
    """Map a level name to ``LogLevel``; unknown or empty names mean INFO."""
    name = (value or "").strip().lower()
    if name in _ALIASES:
        return _ALIASES[name]
    if name in LEVEL_NAMES:
        return LogLevel[name.upper()]
    return _DEFAULT_LEVEL


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = parse_level(os.environ.get("BEADLINE_LOG_LEVEL"))
    return _configured_level


def set_level(value: str | None) -> None:
    global _configured_level
    _configured_level = parse_level(value)


def set_no_color(value: bool) -> None:
    """Force colour off; ``False`` defers to ``NO_COLOR``/``BEADLINE_NO_COLOR``."""
    global _no_color_override
    _no_color_override = True if value else None


def _no_color() -> bool:
    if _no_color_override is not None:
        return _no_color_override
    return bool(os.environ.get("NO_COLOR") or os.environ.get("BEADLINE_NO_COLOR"))


def _render(message: str, *, style: str, issue: str | None) -> Text:
    text = Text()
    if issue:
        text.append(f"[{issue}] ", style=_ISSUE_STYLE)
    text.append(message, style=style)
    return text


def emit(
    level: LogLevel,
    message: str,
    *,
    issue: str | None = None,
    style: str | None = None,
) -> None:
    """Print ``message`` when ``level`` is enabled; warnings and errors go to stderr."""
    if level < configured_level():
        return
    console = Console(
        file=sys.stderr if level >= LogLevel.WARNING else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=_no_color(),
    )
    console.print(_render(message, style=style or _STYLES[level], issue=issue))


def trace(message: str, *, issue: str | None = None) -> None:
    emit(LogLevel.TRACE, message, issue=issue)


def debug(message: str, *, issue: str | None = None) -> None:
    emit(LogLevel.DEBUG, message, issue=issue)


def info(message: str, *, issue: str | None = None) -> None:
    emit(LogLevel.INFO, message, issue=issue)


def success(message: str, *, issue: str | None = None) -> None:
    emit(LogLevel.SUCCESS, message, issue=issue)


def warning(message: str, *, issue: str | None = None) -> None:
    emit(LogLevel.WARNING, message, issue=issue)


def error(message: str, *, issue: str | None = None) -> None:
    emit(LogLevel.ERROR, message, issue=issue)
