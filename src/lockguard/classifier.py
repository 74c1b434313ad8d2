"""Decide whether a yarn invocation goes through the guarded pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum

INTERCEPTED_SUBCOMMANDS: frozenset[str] = frozenset({"add", "install", "up", "dedupe", "remove"})


class UsageError(RuntimeError):
    """Raised when the argument layout cannot be classified safely."""


class Classification(StrEnum):
    INTERCEPT = "intercept"
    PASSTHROUGH = "passthrough"


def first_subcommand_index(argv: Sequence[str]) -> int | None:
    """Index of the first token that does not start with ``-``."""
    for index, arg in enumerate(argv):
        if not arg.startswith("-"):
            return index
    return None


def classify(argv: Sequence[str]) -> Classification:
    """Classify ``argv`` as intercepted or passthrough.

    Arguments placed before the first subcommand are refused, otherwise
    ``yarn --cwd /elsewhere add pkg`` would skip the analysis.
    """
    index = first_subcommand_index(argv)
    if index is not None and index > 0:
        raise UsageError(
            "lockguard does not support arguments before the first subcommand. "
            f'Please open an issue if "{argv[0]}" is not an argument.'
        )

    if not argv or argv[0] not in INTERCEPTED_SUBCOMMANDS:
        return Classification.PASSTHROUGH
    return Classification.INTERCEPT
