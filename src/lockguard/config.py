"""Configuration loader for lockguard.

Reads ``config.toml`` (preferred) or ``config.json`` (fallback) from the
lockguard config directory, then applies ``LOCKGUARD_*`` environment
overrides.
"""

from __future__ import annotations

import json
import os
import shlex
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

DEFAULT_LAUNCHER: tuple[str, ...] = ("phylum", "sandbox")
DEFAULT_API_URL = "https://api.phylum.io/api/v0"
DEFAULT_TIMEOUT_SECONDS = 300.0


class ConfigError(RuntimeError):
    """Raised when a config file is malformed or holds invalid values."""


@dataclass(frozen=True)
class LockguardConfig:
    """Resolved lockguard configuration."""

    package_manager: str = "yarn"
    runtime: str = "node"
    launcher: tuple[str, ...] = DEFAULT_LAUNCHER
    extra_writable: tuple[str, ...] = ()
    api_url: str = DEFAULT_API_URL
    api_token: str | None = None
    api_timeout: float = DEFAULT_TIMEOUT_SECONDS
    project: str | None = None
    preserve_native_exit_codes: bool = False
    source: Path | None = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: Path | None = None) -> LockguardConfig:
        """Validate a parsed config document."""
        sandbox = _table(data, "sandbox")
        analysis = _table(data, "analysis")
        exit_codes = _table(data, "exit_codes")

        defaults = cls()
        return cls(
            package_manager=_str(data, "package_manager", defaults.package_manager),
            runtime=_str(data, "runtime", defaults.runtime),
            launcher=_str_list(sandbox, "launcher", defaults.launcher),
            extra_writable=_str_list(sandbox, "extra_writable", defaults.extra_writable),
            api_url=_str(analysis, "api_url", defaults.api_url).rstrip("/"),
            api_token=_optional_str(analysis, "api_token"),
            api_timeout=_number(analysis, "timeout", defaults.api_timeout),
            project=_optional_str(analysis, "project"),
            preserve_native_exit_codes=_bool(exit_codes, "preserve_native", False),
            source=source,
        )


def default_config_dir(env: Mapping[str, str]) -> Path:
    base = env.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "lockguard"


def load_config(config_path: Path | None = None, env: Mapping[str, str] | None = None) -> LockguardConfig:
    """Load configuration with env overrides applied.

    Priority order:
    1. explicit ``config_path``
    2. ``LOCKGUARD_CONFIG``
    3. ``<config dir>/config.toml``, then ``<config dir>/config.json``

    A missing file yields defaults; an explicit path that does not exist is
    an error.
    """
    env = os.environ if env is None else env

    explicit = config_path or (Path(env["LOCKGUARD_CONFIG"]) if env.get("LOCKGUARD_CONFIG") else None)
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        config = _load_file(explicit)
    else:
        config_dir = default_config_dir(env)
        config = LockguardConfig()
        for candidate in (config_dir / "config.toml", config_dir / "config.json"):
            if candidate.exists():
                config = _load_file(candidate)
                break

    return apply_env_overrides(config, env)


def apply_env_overrides(config: LockguardConfig, env: Mapping[str, str]) -> LockguardConfig:
    overrides: dict[str, Any] = {}
    if env.get("LOCKGUARD_API_URL"):
        overrides["api_url"] = env["LOCKGUARD_API_URL"].rstrip("/")
    if env.get("LOCKGUARD_API_TOKEN"):
        overrides["api_token"] = env["LOCKGUARD_API_TOKEN"]
    if env.get("LOCKGUARD_SANDBOX"):
        launcher = tuple(shlex.split(env["LOCKGUARD_SANDBOX"]))
        if not launcher:
            raise ConfigError("LOCKGUARD_SANDBOX is set but empty")
        overrides["launcher"] = launcher
    if env.get("LOCKGUARD_PACKAGE_MANAGER"):
        overrides["package_manager"] = env["LOCKGUARD_PACKAGE_MANAGER"]
    return replace(config, **overrides) if overrides else config


def _load_file(path: Path) -> LockguardConfig:
    if path.suffix == ".json":
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigError(f"Malformed JSON config at {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config {path}: {e}") from e
    else:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            raise ConfigError(f"Malformed TOML config at {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config structure in {path}: top level must be a table")
    try:
        return LockguardConfig.from_dict(data, source=path)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config structure in {path}: {e}") from e


def _table(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, Mapping):
        raise TypeError(f"`{key}` must be a table")
    return value


def _str(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value:
        raise TypeError(f"`{key}` must be a non-empty string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    if data.get(key) is None:
        return None
    return _str(data, key, "")


def _str_list(data: Mapping[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = data.get(key, default)
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise TypeError(f"`{key}` must be a list of strings")
    return tuple(value)


def _number(data: Mapping[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"`{key}` must be a positive number")
    return float(value)


def _bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise TypeError(f"`{key}` must be a boolean")
    return value
