"""Configuration loading tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from lockguard.config import DEFAULT_LAUNCHER, ConfigError, LockguardConfig, load_config


def test_defaults_when_no_config(tmp_path: Path) -> None:
    config = load_config(env={"XDG_CONFIG_HOME": str(tmp_path)})

    assert config == LockguardConfig()
    assert config.launcher == DEFAULT_LAUNCHER
    assert config.preserve_native_exit_codes is False


def test_toml_preferred_over_json(tmp_path: Path) -> None:
    config_dir = tmp_path / "lockguard"
    config_dir.mkdir()
    (config_dir / "config.toml").write_text(
        'runtime = "bun"\n'
        "[sandbox]\n"
        'launcher = ["birdcage"]\n'
        'extra_writable = ["/opt/cache"]\n'
        "[analysis]\n"
        'api_url = "https://risk.example.test/v0/"\n'
        "timeout = 30\n"
        'project = "web"\n'
        "[exit_codes]\n"
        "preserve_native = true\n",
        encoding="utf-8",
    )
    (config_dir / "config.json").write_text(json.dumps({"runtime": "deno"}), encoding="utf-8")

    config = load_config(env={"XDG_CONFIG_HOME": str(tmp_path)})

    assert config.runtime == "bun"
    assert config.launcher == ("birdcage",)
    assert config.extra_writable == ("/opt/cache",)
    assert config.api_url == "https://risk.example.test/v0"
    assert config.api_timeout == 30.0
    assert config.project == "web"
    assert config.preserve_native_exit_codes is True
    assert config.source == config_dir / "config.toml"


def test_json_fallback(tmp_path: Path) -> None:
    config_dir = tmp_path / "lockguard"
    config_dir.mkdir()
    (config_dir / "config.json").write_text(json.dumps({"analysis": {"api_token": "tok"}}), encoding="utf-8")

    assert load_config(env={"XDG_CONFIG_HOME": str(tmp_path)}).api_token == "tok"


def test_env_overrides(tmp_path: Path) -> None:
    path = tmp_path / "custom.toml"
    path.write_text('[analysis]\napi_token = "from-file"\n', encoding="utf-8")

    config = load_config(
        env={
            "LOCKGUARD_CONFIG": str(path),
            "LOCKGUARD_API_TOKEN": "from-env",
            "LOCKGUARD_SANDBOX": "sandbox-exec --strict",
            "LOCKGUARD_API_URL": "http://localhost:8080/",
        }
    )

    assert config.api_token == "from-env"
    assert config.launcher == ("sandbox-exec", "--strict")
    assert config.api_url == "http://localhost:8080"


def test_explicit_missing_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Config file not found"):
        load_config(tmp_path / "nope.toml", env={})


def test_malformed_toml(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("runtime = [", encoding="utf-8")

    with pytest.raises(ConfigError, match="Malformed TOML"):
        load_config(path, env={})


@pytest.mark.parametrize(
    "body",
    [
        "sandbox = 3\n",
        '[sandbox]\nlauncher = "phylum"\n',
        "[analysis]\ntimeout = -1\n",
        '[exit_codes]\npreserve_native = "yes"\n',
    ],
)
def test_invalid_values(tmp_path: Path, body: str) -> None:
    path = tmp_path / "config.toml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid config structure"):
        load_config(path, env={})


def test_unreadable_config_is_config_error(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.mkdir()

    with pytest.raises(ConfigError, match="Failed to read config"):
        load_config(path, env={})


@pytest.mark.parametrize("name", ["config.toml", "config.json"])
def test_non_utf8_config_is_config_error(tmp_path: Path, name: str) -> None:
    path = tmp_path / name
    path.write_bytes(b"runtime = \"\xff\xfe\"\n")

    with pytest.raises(ConfigError, match="Malformed"):
        load_config(path, env={})
