"""
ShareSpace installer — CLI entrypoint.

Usage:
    sudo sharespace-install              # same as: sharespace-install install
    sharespace-install install --dry-run
    sharespace-install render
    sharespace-install status
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from sharespace_installer import __version__
from sharespace_installer.core.config.loader import ConfigError, load_overrides, resolve_config
from sharespace_installer.core.engine.executor import StepOutcome
from sharespace_installer.core.models.install import InstallConfig
from sharespace_installer.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)

_BANNER = "=" * 46


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="sharespace-install")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file overriding image, hostname, install directory or readiness settings.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """ShareSpace installer — provision this host to run the ShareSpace stack."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(install)


def _install_config(ctx: click.Context) -> InstallConfig:
    """Resolve the InstallConfig once per invocation (exits 1 on error)."""
    config = ctx.obj.get("install_config")
    if config is not None:
        return config
    try:
        overrides = load_overrides(ctx.obj["config_path"]) if ctx.obj.get("config_path") else None
        config = resolve_config(overrides=overrides)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    ctx.obj["install_config"] = config
    return config


def _echo_step(outcome: StepOutcome) -> None:
    if outcome.ok:
        click.secho(f"   ✅ {outcome.title}", fg="green")
    else:
        click.secho(f"   ❌ {outcome.title}", fg="red")
    for note in outcome.notes:
        click.echo(f"      {note}")
    for warning in outcome.warnings:
        click.secho(f"   ⚠️  {warning}", fg="yellow")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Validate every action without executing it.")
@click.option("--mock", "mock_mode", is_flag=True, help="Dispatch actions to a mock adapter.")
@click.option("--regenerate-id", is_flag=True, help="Replace an existing installation identifier.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    dry_run: bool = False,
    mock_mode: bool = False,
    regenerate_id: bool = False,
    as_json: bool = False,
) -> None:
    """Install Docker, write the stack, start it, and register it with systemd."""
    from sharespace_installer.core.use_cases.install import run_install

    config = _install_config(ctx)
    quiet = ctx.obj.get("quiet", False)

    if not as_json and not quiet:
        click.echo()
        click.echo(_BANNER)
        click.secho("SharedSpace - Installer", bold=True)
        click.echo(_BANNER)
        if dry_run:
            click.secho("   (dry run: nothing will be changed)", fg="cyan")
        click.echo()

    result = run_install(
        config,
        dry_run=dry_run,
        mock_mode=mock_mode,
        regenerate_id=regenerate_id,
        registry=ctx.obj.get("registry"),
        sleep=ctx.obj.get("sleep"),
        on_step=None if as_json else _echo_step,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"\n❌ {result.error}", fg="red", bold=True, err=True)
        report = result.report
        if report and report.rollback_receipts:
            undone = sum(1 for r in report.rollback_receipts if r.ok)
            click.echo(f"   Rolled back {undone}/{len(report.rollback_receipts)} change(s)", err=True)
            for r in report.rollback_receipts:
                if r.failed:
                    click.secho(f"   • {r.action_id}: {r.error}", fg="yellow", err=True)
        sys.exit(1)

    click.echo()
    click.echo(_BANNER)
    click.secho("Installation Complete!", fg="green", bold=True)
    click.echo(_BANNER)
    click.echo()
    if result.message:
        click.echo(result.message)
        click.echo()


@cli.command()
@click.option(
    "--api-version",
    default=None,
    help="Docker API version for watchtower (default: configured fallback).",
)
@click.pass_context
def render(ctx: click.Context, api_version: str | None) -> None:
    """Print the docker-compose.yml the installer would write."""
    from sharespace_installer.core.services.compose import render_compose

    config = _install_config(ctx)
    click.echo(render_compose(config, api_version or config.default_api_version), nl=False)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the last install and the live state of the stack."""
    from sharespace_installer.core.use_cases.status import get_status

    config = _install_config(ctx)
    result = get_status(config, registry=ctx.obj.get("registry"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.installed:
        click.secho(f"📭 Not installed at {config.install_root}", fg="yellow")
        return

    click.secho(f"\n📦 {config.install_root}", fg="cyan", bold=True)

    if result.state and result.state.operation_id:
        state = result.state
        status_color = {"ok": "green", "rolled_back": "yellow", "failed": "red"}.get(
            state.status, "white"
        )
        click.echo("   Last install: ", nl=False)
        click.secho(state.status, fg=status_color)
        if state.ended_at:
            click.echo(f"     at {state.ended_at}")
        if state.installation_id:
            click.echo(f"     id {state.installation_id}")

    if result.error:
        click.secho(f"   ❌ {result.error}", fg="red")
    else:
        click.echo()
        click.secho("   Containers:", fg="white", bold=True)
        for svc in result.services:
            marker = "✓" if svc.readiness.value == "running" else "✗"
            click.echo(f"     {marker} {svc.service:<16} {svc.readiness.value}")

    click.echo()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
