"""
CLI command for the audit ledger.

Usage::

    setupctl history
    setupctl history -n 5 --json
    setupctl history --recipe nginx
"""

from __future__ import annotations

import json
import sys

import click


@click.command()
@click.option("-n", "--limit", default=20, show_default=True, help="Number of entries to show.")
@click.option("--recipe", "recipe_id", default=None, help="Only show runs of this recipe.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, recipe_id: str | None, as_json: bool) -> None:
    """Show recent install runs from the audit ledger."""
    from setupctl.core.config.loader import ConfigError, load_settings
    from setupctl.core.persistence.audit import AuditWriter
    from setupctl.core.recipes.registry import RecipeError, get_recipe, normalize_recipe_id

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if recipe_id:
        try:
            recipe_id = get_recipe(recipe_id).id
        except RecipeError:
            recipe_id = normalize_recipe_id(recipe_id)

    ledger = AuditWriter(state_dir=settings.state_path())
    entries = ledger.read_recent(limit, recipe=recipe_id)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo(f"No install history in {ledger.path}")
        return

    click.secho(f"\n📜 Last {len(entries)} of {ledger.entry_count()} run(s)", fg="cyan", bold=True)
    for entry in reversed(entries):
        color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(entry.status, "white")
        click.echo(f"   {entry.timestamp[:19]}  {entry.recipe:<20} ", nl=False)
        click.secho(f"{entry.status:<8}", fg=color, nl=False)
        click.echo(f" {entry.steps_succeeded}/{entry.steps_total} steps  {entry.duration_ms}ms")
        for err in entry.errors[:3]:
            click.secho(f"       {err}", fg="red")
    click.echo()
