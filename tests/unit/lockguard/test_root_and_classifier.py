"""Root discovery and command classification tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from lockguard.classifier import Classification, UsageError, classify
from lockguard.root import find_root


def test_find_root_at_start(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    assert find_root("package.json", tmp_path) == tmp_path


def test_find_root_walks_upward(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    nested = tmp_path / "src" / "components" / "deep"
    nested.mkdir(parents=True)

    assert find_root("package.json", nested) == tmp_path


def test_find_root_respects_depth_bound(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    nested = tmp_path.joinpath(*[f"d{i}" for i in range(5)])
    nested.mkdir(parents=True)

    assert find_root("package.json", nested, max_depth=5) is None
    assert find_root("package.json", nested, max_depth=6) == tmp_path


def test_find_root_missing_marker(tmp_path: Path) -> None:
    assert find_root("lockguard-marker-that-does-not-exist.json", tmp_path) is None


@pytest.mark.parametrize("subcommand", ["add", "install", "up", "dedupe", "remove"])
def test_mutating_subcommands_are_intercepted(subcommand: str) -> None:
    assert classify([subcommand, "left-pad"]) is Classification.INTERCEPT


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["run", "build"],
        ["why", "left-pad"],
        ["--version"],
        ["-h"],
        ["info", "add"],
    ],
)
def test_other_invocations_pass_through(argv: list[str]) -> None:
    assert classify(argv) is Classification.PASSTHROUGH


@pytest.mark.parametrize(
    "argv",
    [
        ["--cwd", "/tmp/project", "add", "left-pad"],
        ["-v", "install"],
        ["--verbose", "run", "build"],
    ],
)
def test_leading_arguments_are_refused(argv: list[str]) -> None:
    with pytest.raises(UsageError, match="before the first subcommand"):
        classify(argv)
