"""Per-stage sandbox policy tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from lockguard.config import LockguardConfig
from lockguard.policy import RUN_ANY, Stage, build_policy, cache_policy, dry_run_policy, policy_for

ROOT = Path("/proj")


def test_dry_run_policy_allows_network_and_limits_commands() -> None:
    policy = dry_run_policy(ROOT, LockguardConfig())

    assert policy.can_read_all is True
    assert policy.network_allowed is True
    assert policy.runnable_commands == frozenset({"yarn", "node"})
    assert "/proj" in policy.writable_paths
    assert "/tmp" in policy.writable_paths
    assert str(Path("~/.cache/yarn").expanduser()) in policy.writable_paths
    assert not any(path.startswith("~") for path in policy.writable_paths)


def test_cache_policy_adds_macos_cache_and_extras() -> None:
    config = LockguardConfig(extra_writable=("/opt/yarn-mirror",))
    policy = cache_policy(ROOT, config)

    assert policy.network_allowed is True
    assert str(Path("~/Library/Caches/Yarn").expanduser()) in policy.writable_paths
    assert "/opt/yarn-mirror" in policy.writable_paths
    assert policy.runnable_commands == frozenset({"yarn", "node"})


def test_build_policy_withdraws_network() -> None:
    policy = build_policy(ROOT)

    assert policy.network_allowed is False
    assert policy.runnable_commands is RUN_ANY
    assert policy.runs_anything is True
    assert policy.writable_paths == frozenset({"/tmp", "/proj"})


def test_build_launcher_args_have_no_net_flag() -> None:
    args = build_policy(ROOT).to_launcher_args()

    assert "--allow-net" not in args
    assert args[:2] == ["--allow-read", "/"]
    assert ["--allow-run", "/"] == args[args.index("--allow-run") : args.index("--allow-run") + 2]


def test_networked_launcher_args(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("lockguard.policy.shutil.which", lambda name: f"/usr/bin/{name}")
    args = dry_run_policy(ROOT, LockguardConfig()).to_launcher_args()

    assert args[-1] == "--allow-net"
    assert "/usr/bin/yarn" in args
    assert "/usr/bin/node" in args


@pytest.mark.parametrize("stage", list(Stage))
def test_policy_for_dispatches_by_stage(stage: Stage) -> None:
    policy = policy_for(stage, ROOT, LockguardConfig())
    assert policy.name == stage.value
    assert policy.to_dict()["net"] is (stage is not Stage.BUILD)
