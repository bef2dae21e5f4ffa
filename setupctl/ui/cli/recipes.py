"""
CLI commands for the recipe catalogue.

Usage::

    setupctl recipes list
    setupctl recipes list --category data --json
    setupctl recipes show redis
    setupctl recipes plan redis --set install_method=source
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def recipes() -> None:
    """Recipe catalogue — list, inspect and preview recipes."""


# ── List ────────────────────────────────────────────────────────


@recipes.command("list")
@click.option("--category", default=None, help="Only recipes in this category.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_cmd(category: str | None, as_json: bool) -> None:
    """List available recipes."""
    from setupctl.core.recipes.registry import RecipeError, list_recipes

    try:
        found = list_recipes(category)
    except RecipeError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(
            [
                {
                    "id": r.id,
                    "label": r.label,
                    "category": r.category,
                    "privilege": r.privilege,
                    "description": r.description,
                }
                for r in found
            ],
            indent=2,
        ))
        return

    if not found:
        click.echo(f"No recipes in category '{category}'.")
        return

    current = None
    for r in sorted(found, key=lambda r: (r.category, r.id)):
        if r.category != current:
            current = r.category
            click.secho(f"\n{current}", fg="cyan", bold=True)
        marker = "" if r.privilege == "root" else f" [{r.privilege}]"
        click.echo(f"   {r.id:<20} {r.description}{marker}")
    click.echo()


# ── Show ────────────────────────────────────────────────────────


@recipes.command()
@click.argument("recipe")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def show(recipe: str, as_json: bool) -> None:
    """Show a recipe's variables and steps."""
    from setupctl.core.recipes.registry import RecipeError, get_recipe

    try:
        found = get_recipe(recipe)
    except RecipeError as e:
        if as_json:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(found.model_dump(mode="json", exclude_none=True), indent=2))
        return

    click.secho(f"\n{found.label} ({found.id})", fg="cyan", bold=True)
    if found.description:
        click.echo(f"   {found.description}")
    click.echo(f"   Category: {found.category} | Privilege: {found.privilege}")
    if found.aliases:
        click.echo(f"   Aliases: {', '.join(found.aliases)}")
    if found.services:
        click.echo(f"   Services: {', '.join(found.services)}")

    if found.vars:
        click.echo()
        click.secho("   Variables:", fg="white", bold=True)
        for var in found.vars:
            choices = f" [{'|'.join(str(c) for c in var.choices)}]" if var.choices else ""
            user = found.user_vars.get(var.name)
            user_default = f" (non-root: {user})" if user is not None else ""
            click.echo(f"     {var.name} = {var.default!r}{choices}{user_default}")
            if var.description:
                click.echo(f"         {var.description}")

    click.echo()
    click.secho(f"   Steps: {len(found.steps)}", fg="white", bold=True)
    for index, step in enumerate(found.steps, start=1):
        label = step.name or f"include {getattr(step, 'fragment', '')}".strip()
        click.echo(f"     {index:>2}. [{step.kind}] {label}")
    click.echo()


# ── Plan ────────────────────────────────────────────────────────


@recipes.command()
@click.argument("recipe")
@click.option("--set", "set_values", multiple=True, metavar="KEY=VALUE", help="Override a recipe variable.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, recipe: str, set_values: tuple[str, ...], as_json: bool) -> None:
    """Show the rendered step list for RECIPE without touching the host."""
    from setupctl.core.use_cases.install import VariableError, parse_overrides, plan_recipe

    try:
        overrides = parse_overrides(set_values)
    except VariableError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    result = plan_recipe(recipe, overrides=overrides, config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.recipe is not None
    click.secho(f"\n📝 Plan for {result.recipe.label}", fg="cyan", bold=True)
    for v in result.recipe.vars:
        click.echo(f"   {v.name} = {result.variables.get(v.name)}")
    click.echo()

    for index, step in enumerate(result.steps, start=1):
        click.echo(f"   {index:>2}. ", nl=False)
        if "skipped" in step:
            click.secho(f"[{step['kind']}] {step['name']} (skipped: {step['skipped']})", fg="yellow")
            continue
        click.secho(f"[{step['adapter']}:{step['kind']}] {step['name']}", fg="blue")
        if "when" in step:
            click.echo(f"       when: {step['when']}")
        if ctx.obj.get("verbose"):
            for key, value in step["params"].items():
                click.echo(f"       {key}: {value}")
    click.echo()
