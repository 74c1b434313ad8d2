"""Per-stage sandbox policies.

Each pipeline stage gets the least privilege it needs. Network access is
granted only while yarn has to talk to the registry (lockfile resolution and
cache population) and is withdrawn for the build stage, where install scripts
from third-party packages actually run.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from lockguard.config import LockguardConfig


class _RunAny:
    def __repr__(self) -> str:
        return "RUN_ANY"


RUN_ANY: Final = _RunAny()

TEMP_DIR = "/tmp"  # nosec B108
YARN_CACHE_DIRS: tuple[str, ...] = ("~/.cache/node", "~/.cache/yarn", "~/.yarn")
MACOS_YARN_CACHE = "~/Library/Caches/Yarn"


class Stage(StrEnum):
    DRY_RUN = "dry-run"
    CACHE = "cache"
    BUILD = "build"


@dataclass(frozen=True)
class SandboxPolicy:
    """Access exceptions granted to one stage's sub-process."""

    name: str
    can_read_all: bool
    writable_paths: frozenset[str]
    runnable_commands: frozenset[str] | _RunAny
    network_allowed: bool

    @property
    def runs_anything(self) -> bool:
        return self.runnable_commands is RUN_ANY

    def to_launcher_args(self) -> list[str]:
        """Render the policy as sandbox launcher flags."""
        args: list[str] = []
        if self.can_read_all:
            args.extend(["--allow-read", "/"])

        for path in sorted(self.writable_paths):
            args.extend(["--allow-write", path])

        if isinstance(self.runnable_commands, frozenset):
            for command in sorted(self.runnable_commands):
                args.extend(["--allow-run", shutil.which(command) or command])
        else:
            args.extend(["--allow-run", "/"])

        args.append("--allow-env")
        if self.network_allowed:
            args.append("--allow-net")
        return args

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "read": "all" if self.can_read_all else "none",
            "write": sorted(self.writable_paths),
            "run": "all" if self.runs_anything else sorted(self.runnable_commands),  # type: ignore[arg-type]
            "net": self.network_allowed,
        }


def _expand(paths: tuple[str, ...] | list[str]) -> frozenset[str]:
    return frozenset(str(Path(path).expanduser()) for path in paths)


def dry_run_policy(root: Path, config: LockguardConfig) -> SandboxPolicy:
    """Lockfile update: registry lookups allowed, no build scripts expected."""
    return SandboxPolicy(
        name=Stage.DRY_RUN.value,
        can_read_all=True,
        writable_paths=_expand([*YARN_CACHE_DIRS, str(root), TEMP_DIR, *config.extra_writable]),
        runnable_commands=frozenset({config.package_manager, config.runtime}),
        network_allowed=True,
    )


def cache_policy(root: Path, config: LockguardConfig) -> SandboxPolicy:
    """Artifact download into the yarn cache without running build scripts."""
    return SandboxPolicy(
        name=Stage.CACHE.value,
        can_read_all=True,
        writable_paths=_expand(
            [*YARN_CACHE_DIRS, str(root), MACOS_YARN_CACHE, TEMP_DIR, *config.extra_writable]
        ),
        runnable_commands=frozenset({config.package_manager, config.runtime}),
        network_allowed=True,
    )


def build_policy(root: Path) -> SandboxPolicy:
    """Install scripts run here: any toolchain, but no network."""
    return SandboxPolicy(
        name=Stage.BUILD.value,
        can_read_all=True,
        writable_paths=_expand([TEMP_DIR, str(root)]),
        runnable_commands=RUN_ANY,
        network_allowed=False,
    )


def policy_for(stage: Stage, root: Path, config: LockguardConfig) -> SandboxPolicy:
    if stage is Stage.DRY_RUN:
        return dry_run_policy(root, config)
    if stage is Stage.CACHE:
        return cache_policy(root, config)
    return build_policy(root)
