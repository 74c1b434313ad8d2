"""Sub-process runners: sandboxed stages and plain passthrough."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from lockguard.outcome import StageOutcome
from lockguard.policy import SandboxPolicy

logger = logging.getLogger(__name__)


class CommandNotFound(RuntimeError):
    """Raised when a sub-process executable cannot be spawned."""


class SandboxUnavailable(CommandNotFound):
    """Raised when the sandbox launcher cannot be started."""


class Sandbox(Protocol):
    def run(self, command: str, args: Sequence[str], policy: SandboxPolicy) -> StageOutcome: ...


class LauncherSandbox:
    """Run stages through an external launcher that enforces the policy.

    The launcher receives the policy as ``--allow-*`` flags followed by the
    command line to confine, e.g. ``phylum sandbox --allow-net ... yarn add x``.
    Output is not captured; yarn talks to the user's terminal directly.
    """

    def __init__(self, launcher: Sequence[str], *, cwd: Path):
        self.launcher = tuple(launcher)
        self.cwd = cwd

    def build_argv(self, command: str, args: Sequence[str], policy: SandboxPolicy) -> list[str]:
        return [*self.launcher, *policy.to_launcher_args(), command, *args]

    def run(self, command: str, args: Sequence[str], policy: SandboxPolicy) -> StageOutcome:
        if not self.launcher:
            raise SandboxUnavailable("no sandbox launcher configured")

        argv = self.build_argv(command, args, policy)
        logger.debug("stage %s: %s", policy.name, " ".join(argv))
        try:
            completed = subprocess.run(argv, cwd=self.cwd, check=False)
        except FileNotFoundError as exc:
            raise SandboxUnavailable(f"sandbox launcher `{self.launcher[0]}` not found") from exc

        logger.debug("stage %s exited with %s", policy.name, completed.returncode)
        # A signal-terminated child has no exit code of its own.
        code = completed.returncode if completed.returncode >= 0 else None
        return StageOutcome(succeeded=completed.returncode == 0, exit_code=code)


def run_passthrough(command: str, argv: Sequence[str], *, cwd: Path) -> int:
    """Run ``command`` with ``argv`` unmodified and return its exit code."""
    logger.debug("passthrough: %s %s", command, " ".join(argv))
    try:
        completed = subprocess.run([command, *argv], cwd=cwd, check=False)
    except FileNotFoundError as exc:
        raise CommandNotFound(f"`{command}` not found on PATH") from exc
    if completed.returncode < 0:
        return 128 - completed.returncode
    return completed.returncode
