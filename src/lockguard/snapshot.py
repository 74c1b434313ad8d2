"""Package-manager state file snapshots with best-effort restore."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileSnapshot:
    """Captured file content; ``prior_content`` is None when the file was absent."""

    path: Path
    prior_content: bytes | None


def capture(path: Path) -> FileSnapshot:
    """Read the full content of ``path``, recording absence instead of failing.

    Any other read error propagates, since restoring an "absent" snapshot
    deletes the file.
    """
    try:
        content: bytes | None = path.read_bytes()
    except FileNotFoundError:
        content = None
    logger.debug("captured %s (%s)", path, "absent" if content is None else f"{len(content)} bytes")
    return FileSnapshot(path=path, prior_content=content)


def restore_or_delete(snapshot: FileSnapshot) -> None:
    """Put ``snapshot.path`` back into its captured state.

    Never raises: a failed restore must not replace the error being reported.
    """
    try:
        if snapshot.prior_content is not None:
            snapshot.path.write_bytes(snapshot.prior_content)
        else:
            snapshot.path.unlink()
    except OSError as exc:
        logger.debug("restore of %s skipped: %s", snapshot.path, exc)


def restore_all(snapshots: Iterable[FileSnapshot]) -> None:
    for snapshot in snapshots:
        restore_or_delete(snapshot)


@contextmanager
def restored_on_exit(*snapshots: FileSnapshot) -> Iterator[tuple[FileSnapshot, ...]]:
    """Restore every snapshot when the block exits, however it exits."""
    try:
        yield snapshots
    finally:
        restore_all(snapshots)
