"""
Recipe registry — validated catalogue of installable recipes.

Raw recipe dicts from ``setupctl.core.recipes.data`` are validated into
``Recipe`` models once, on first access, and cached for the process
lifetime. Validation collects every problem before raising, so a bad
catalogue reports all broken recipes at once.

Lookup accepts the canonical id (``aws-cli``), an alias, or the name
of the shell script the recipe replaces (``install_aws_cli.sh``,
``aws_cli``).
"""

from __future__ import annotations

import difflib
import logging
from functools import lru_cache

from pydantic import TypeAdapter, ValidationError

from setupctl.core.models.recipe import IncludeStep, Recipe, Step, StepBase
from setupctl.core.recipes.data import FRAGMENTS, all_recipe_sources

logger = logging.getLogger(__name__)

_STEPS = TypeAdapter(list[Step])


class RecipeError(Exception):
    """Raised for an invalid catalogue or an unknown recipe id."""


# ── Validation ──────────────────────────────────────────────────


def _includes(steps: list[StepBase]) -> list[str]:
    return [s.fragment for s in steps if isinstance(s, IncludeStep)]


def _format_validation(owner: str, error: ValidationError) -> list[str]:
    lines = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        lines.append(f"{owner}: {loc}: {err['msg']}")
    return lines


@lru_cache(maxsize=1)
def get_fragments() -> dict[str, list[StepBase]]:
    """Validated shared step fragments, keyed by name.

    Raises:
        RecipeError: If a fragment is invalid or includes an unknown fragment.
    """
    errors: list[str] = []
    fragments: dict[str, list[StepBase]] = {}

    for name, raw_steps in FRAGMENTS.items():
        try:
            fragments[name] = _STEPS.validate_python(raw_steps)
        except ValidationError as e:
            errors.extend(_format_validation(f"fragment {name}", e))

    for name, steps in fragments.items():
        for ref in _includes(steps):
            if ref not in FRAGMENTS:
                errors.append(f"fragment {name}: includes unknown fragment '{ref}'")

    if errors:
        raise RecipeError("Invalid step fragments:\n  " + "\n  ".join(errors))

    logger.debug("Loaded %d step fragments", len(fragments))
    return fragments


@lru_cache(maxsize=1)
def load_catalog() -> dict[str, Recipe]:
    """Validate every raw recipe and return the catalogue keyed by id.

    Raises:
        RecipeError: Listing every invalid recipe, duplicate id or alias,
            and include of an unknown fragment.
    """
    fragments = get_fragments()
    errors: list[str] = []
    catalog: dict[str, Recipe] = {}
    names: dict[str, str] = {}  # id or alias → owning recipe id

    for recipe_id, raw in all_recipe_sources():
        if recipe_id in catalog:
            errors.append(f"{recipe_id}: duplicate recipe id")
            continue
        try:
            recipe = Recipe.model_validate({**raw, "id": recipe_id})
        except ValidationError as e:
            errors.extend(_format_validation(recipe_id, e))
            continue

        for ref in _includes(recipe.steps):
            if ref not in fragments:
                errors.append(f"{recipe_id}: includes unknown fragment '{ref}'")

        for name in [recipe_id, *recipe.aliases]:
            owner = names.get(name)
            if owner is not None and owner != recipe_id:
                errors.append(f"{recipe_id}: name '{name}' already used by {owner}")
            names[name] = recipe_id

        catalog[recipe_id] = recipe

    if errors:
        raise RecipeError(
            f"Invalid recipe catalogue ({len(errors)} problem(s)):\n  " + "\n  ".join(errors)
        )

    logger.debug("Loaded %d recipes", len(catalog))
    return catalog


# ── Lookup ──────────────────────────────────────────────────────


def normalize_recipe_id(name: str) -> str:
    """Map a legacy script name onto a recipe id.

    ``install_aws_cli.sh`` → ``aws-cli``; ``aws_cli`` → ``aws-cli``.
    """
    key = name.strip().lower()
    if key.endswith(".sh"):
        key = key[:-3]
    if key.startswith("install_") or key.startswith("install-"):
        key = key[len("install_"):]
    return key.replace("_", "-")


def _index(catalog: dict[str, Recipe]) -> dict[str, str]:
    index: dict[str, str] = {}
    for recipe in catalog.values():
        index[recipe.id] = recipe.id
        for alias in recipe.aliases:
            index[alias] = recipe.id
    return index


def get_recipe(name: str) -> Recipe:
    """Resolve a recipe by id, alias or legacy script name.

    Raises:
        RecipeError: If nothing matches; the message suggests close ids.
    """
    catalog = load_catalog()
    index = _index(catalog)

    for candidate in (name, name.strip().lower(), normalize_recipe_id(name)):
        if candidate in index:
            return catalog[index[candidate]]

    suggestions = difflib.get_close_matches(normalize_recipe_id(name), list(index), n=3, cutoff=0.6)
    message = f"Unknown recipe: {name}"
    if suggestions:
        message += f" (did you mean: {', '.join(suggestions)}?)"
    raise RecipeError(message)


def list_recipes(category: str | None = None) -> list[Recipe]:
    """All recipes, sorted by id, optionally filtered by category."""
    recipes = sorted(load_catalog().values(), key=lambda r: r.id)
    if category:
        recipes = [r for r in recipes if r.category == category]
    return recipes


def categories() -> list[str]:
    return sorted({r.category for r in load_catalog().values()})
