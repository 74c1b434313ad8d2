"""Pytest configuration and fixtures for lockguard tests."""
from pathlib import Path

import pytest

LOCKGUARD_ENV = (
    "LOCKGUARD_CONFIG",
    "LOCKGUARD_API_URL",
    "LOCKGUARD_API_TOKEN",
    "LOCKGUARD_SANDBOX",
    "LOCKGUARD_PACKAGE_MANAGER",
)


@pytest.fixture(autouse=True)
def isolated_lockguard_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep the developer's own lockguard config and env out of every test."""
    config_home = tmp_path / "config-home"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    for name in LOCKGUARD_ENV:
        monkeypatch.delenv(name, raising=False)
    return config_home


def pytest_sessionfinish(session, exitstatus):
    """Fail the run when --cov was requested but no coverage data was written."""
    if not any("--cov" in str(arg) for arg in session.config.args):
        return

    if not list(Path.cwd().glob(".coverage*")):
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'lockguard' (the package) not 'src/lockguard' (filesystem path).",
            returncode=1
        )
