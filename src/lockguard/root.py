"""Project root detection by bounded upward marker search."""

from __future__ import annotations

from pathlib import Path

MAX_SEARCH_DEPTH = 32


def find_root(marker: str, start: Path, max_depth: int = MAX_SEARCH_DEPTH) -> Path | None:
    """Return the nearest directory at or above ``start`` containing ``marker``.

    At most ``max_depth`` directories are checked. Returns None when the
    marker is not found within the bound.
    """
    current = start.absolute()
    for _ in range(max_depth):
        if (current / marker).exists():
            return current

        parent = current.parent
        if parent == current:
            return None
        current = parent

    return None
