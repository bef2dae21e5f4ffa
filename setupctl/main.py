"""
setupctl — CLI entrypoint.

Usage:
    setupctl --help
    setupctl install nginx
    setupctl install redis --set install_method=source --dry-run
    setupctl recipes list
    setupctl status
    setupctl config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from setupctl import __version__
from setupctl.core.observability.logging_config import mask_secrets, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="setupctl")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to setupctl.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """setupctl — install and configure server software on Ubuntu."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("SETUPCTL_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("SETUPCTL_LOG_FILE"),
        log_file_level=os.environ.get("SETUPCTL_LOG_FILE_LEVEL"),
    )


# ── Install ─────────────────────────────────────────────────────


def _progress_printer(verbose: bool, quiet: bool):
    """Progress callback printing the familiar [*] / [+] / [!] lines."""

    def _progress(event, action, receipt) -> None:
        if event == "start":
            if not quiet:
                click.secho(f"[*] {action.name}", fg="blue")
            return

        assert receipt is not None
        if receipt.failed:
            if action.params.get("ignore_errors"):
                click.secho(f"[!] Warning: {mask_secrets(receipt.error)}", fg="yellow")
            return
        if receipt.status == "skipped":
            if receipt.metadata.get("dry_run"):
                if not quiet:
                    click.echo(f"    {receipt.output.removeprefix('[dry-run] ')}")
            elif verbose:
                click.secho(f"[-] {action.name} (skipped: {receipt.output})", fg="yellow")
            return
        if verbose:
            click.secho(f"[+] {action.name}", fg="green")
            for line in mask_secrets(receipt.output).splitlines()[:10]:
                click.echo(f"    │ {line}")

    return _progress


@cli.command()
@click.argument("recipe")
@click.option("--set", "set_values", multiple=True, metavar="KEY=VALUE", help="Override a recipe variable.")
@click.option("--dry-run", is_flag=True, help="Show each step's command without running it.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@click.option("--no-firewall", is_flag=True, help="Do not open ports with ufw.")
@click.option("--ask-sudo-password", is_flag=True, help="Prompt for the sudo password for root steps.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    recipe: str,
    set_values: tuple[str, ...],
    dry_run: bool,
    mock: bool,
    no_firewall: bool,
    ask_sudo_password: bool,
    as_json: bool,
) -> None:
    """Install and configure RECIPE.

    Examples:

        setupctl install nginx

        setupctl install install_aws_cli.sh --set install_dir=/opt/aws

        setupctl install trivy --set install_method=binary --dry-run
    """
    from setupctl.core.use_cases.install import VariableError, install_recipe, parse_overrides

    try:
        overrides = parse_overrides(set_values)
    except VariableError as e:
        if as_json:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            click.secho(f"[!] Error: {e}", fg="red")
        sys.exit(1)

    sudo_password = ""
    if ask_sudo_password:
        sudo_password = click.prompt("[sudo] password", hide_input=True, err=True)

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    result = install_recipe(
        recipe,
        overrides=overrides,
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        mock_mode=mock,
        sudo_password=sudo_password,
        firewall=False if no_firewall else None,
        progress=None if as_json else _progress_printer(verbose, quiet),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        sys.exit(0 if result.ok else 1)

    for warning in result.warnings:
        click.secho(f"[!] Warning: {warning}", fg="yellow")

    if result.error:
        click.secho(f"[!] Error: {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None and result.recipe is not None

    if dry_run:
        click.secho(
            f"\n[+] Dry run of {result.recipe.label}: {report.total} step(s), nothing was changed",
            fg="green",
        )
        return

    mode_label = " [mock]" if mock else ""
    click.secho(f"[+] {result.recipe.label} installed successfully!{mode_label}", fg="green")

    if result.usage and not quiet:
        click.echo()
        click.secho(result.recipe.usage_title or f"{result.recipe.label} Setup Information:", fg="blue")
        for line in result.usage:
            click.secho(line, fg="blue")


# ── Status ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show recipes installed on this host and their services."""
    from setupctl.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.state is None or not result.state.recipes:
        click.echo("Nothing installed by setupctl yet.")
        click.echo(f"   State file: {result.state_path}")
        return

    click.secho(f"\n📋 {result.state.hostname or 'this host'}", fg="cyan", bold=True)
    for record in sorted(result.state.recipes.values(), key=lambda r: r.recipe):
        status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(record.status, "white")
        click.echo(f"   • {record.recipe:<20} ", nl=False)
        click.secho(f"{record.status:<8}", fg=status_color, nl=False)
        click.echo(f" {record.installed_at or record.last_run_at}")
        for name, svc in result.services.get(record.recipe, {}).items():
            if svc.get("active") is None:
                marker, color = "?", "white"
            elif svc["active"]:
                marker, color = "●", "green"
            else:
                marker, color = "○", "red"
            click.secho(f"       {marker} {name} ({svc.get('state')}/{svc.get('sub_state')})", fg=color)

    op = result.state.last_operation
    if op.operation_id:
        click.echo()
        click.secho("   Last operation:", fg="white", bold=True)
        click.echo(f"     {op.recipe} — {op.status} at {op.ended_at} ({op.operation_id})")
    click.echo()


# ── Host ────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def host(as_json: bool) -> None:
    """Show the host facts recipes are rendered with."""
    from setupctl.core.detection.host import detect_host

    facts = detect_host()

    if as_json:
        click.echo(json.dumps(facts.model_dump(), indent=2))
        return

    click.secho(f"\n🖥  {facts.hostname}", fg="cyan", bold=True)
    for key, value in facts.as_vars().items():
        click.echo(f"   {key:<14} {value}")
    click.echo()


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """setupctl.yml configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate setupctl.yml configuration."""
    from setupctl.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.settings is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path or '(defaults)'}")
        click.echo(f"   State dir: {result.settings.state_path()}")
        click.echo(f"   Recipe overrides: {len(result.settings.recipes)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)


# ── Register sub-command groups ─────────────────────────────────

from setupctl.ui.cli.history import history
from setupctl.ui.cli.recipes import recipes

cli.add_command(recipes)
cli.add_command(history)


if __name__ == "__main__":
    cli()
