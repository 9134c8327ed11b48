"""Per-issue leases so two engine runs never work the same issue at once."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TextIO

try:
    import fcntl
except ImportError:  # pragma: no cover - platform fallback
    fcntl = None


class LeaseHeld(Exception):
    """Another process currently holds the issue's lease."""

    def __init__(self, issue_id: str, path: Path) -> None:
        super().__init__(f"lease for {issue_id} is held ({path})")
        self.issue_id = issue_id
        self.path = path


def _try_lock(handle: TextIO) -> bool:
    if fcntl is None:  # pragma: no cover - no-op on unsupported platforms
        return True
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


def _unlock(handle: TextIO) -> None:
    if fcntl is None:  # pragma: no cover - no-op on unsupported platforms
        return
    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


@contextmanager
def issue_lease(path: Path, issue_id: str) -> Iterator[None]:
    """Hold an exclusive, non-blocking lease on ``path`` for the block.

    The lock is tied to the open file handle, so a crashed holder releases it
    automatically.

    Raises:
        LeaseHeld: When another holder already owns the lease.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("a+", encoding="utf-8")
    try:
        if not _try_lock(handle):
            raise LeaseHeld(issue_id, path)
        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()} {issue_id}\n")
        handle.flush()
        try:
            yield
        finally:
            _unlock(handle)
    finally:
        handle.close()
