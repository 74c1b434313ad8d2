"""lockguard CLI - guarded yarn installs."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from lockguard import __version__
from lockguard.analysis import AnalysisClient
from lockguard.config import ConfigError, LockguardConfig, load_config
from lockguard.outcome import ExitCode, exit_code_for
from lockguard.pipeline import InstallPipeline
from lockguard.policy import Stage, policy_for
from lockguard.sandbox import CommandNotFound, LauncherSandbox
from lockguard.ui import Ui, configure_logging

cli = typer.Typer(
    name="lockguard",
    help="lockguard - dry-run, analyze and sandbox yarn installs",
    no_args_is_help=True,
)
ui = Ui()


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (defaults to $XDG_CONFIG_HOME/lockguard/config.toml).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show lockguard version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Guard dependency-mutating package manager commands."""
    _ = version
    configure_logging(verbose)
    ctx.obj = config


def _load_config_or_exit(ctx: typer.Context) -> LockguardConfig:
    try:
        return load_config(ctx.obj)
    except ConfigError as exc:
        ui.error(str(exc))
        raise typer.Exit(int(ExitCode.USAGE)) from exc


@cli.command(
    "yarn",
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "help_option_names": [],
    },
)
def yarn(ctx: typer.Context) -> None:
    """Run yarn; add/install/up/dedupe/remove go through the guarded pipeline."""
    config = _load_config_or_exit(ctx)
    analyzer = AnalysisClient(
        config.api_url,
        token=config.api_token,
        timeout=config.api_timeout,
        project=config.project,
    )
    pipeline = InstallPipeline(
        config=config,
        sandbox_factory=lambda root: LauncherSandbox(config.launcher, cwd=root),
        analyzer=analyzer,
        ui=ui,
    )

    try:
        outcome = pipeline.run(list(ctx.args), Path.cwd())
    except CommandNotFound as exc:
        ui.error(str(exc))
        raise typer.Exit(int(ExitCode.USAGE)) from exc

    raise typer.Exit(exit_code_for(outcome, preserve_native=config.preserve_native_exit_codes))


@cli.command("policy")
def policy(
    ctx: typer.Context,
    stage: Stage = typer.Argument(..., help="Pipeline stage: dry-run, cache or build."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (defaults to current working directory).",
    ),
) -> None:
    """Print the sandbox policy a stage runs under, as JSON."""
    config = _load_config_or_exit(ctx)
    resolved = (root or Path.cwd()).resolve()
    stage_policy = policy_for(stage, resolved, config)
    payload = {
        "policy": stage_policy.to_dict(),
        "launcher_args": [*config.launcher, *stage_policy.to_launcher_args()],
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def main() -> None:
    cli(prog_name="lockguard")


if __name__ == "__main__":
    main()
