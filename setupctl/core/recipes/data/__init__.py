"""
Recipe definitions — one raw dict per installable piece of software.

Recipes are keyed by id and validated into ``Recipe`` models by
``setupctl.core.recipes.registry``. Nothing here imports pydantic.
"""

from __future__ import annotations

from setupctl.core.recipes.data.ci import CI_RECIPES
from setupctl.core.recipes.data.cloud import CLOUD_RECIPES
from setupctl.core.recipes.data.containers import CONTAINER_RECIPES
from setupctl.core.recipes.data.databases import DATABASE_RECIPES
from setupctl.core.recipes.data.devtools import DEVTOOLS_RECIPES
from setupctl.core.recipes.data.fragments import FRAGMENTS
from setupctl.core.recipes.data.infra import INFRA_RECIPES
from setupctl.core.recipes.data.monitoring import MONITORING_RECIPES
from setupctl.core.recipes.data.security import SECURITY_RECIPES
from setupctl.core.recipes.data.web import WEB_RECIPES

_CATEGORIES: list[dict[str, dict]] = [
    WEB_RECIPES,
    DATABASE_RECIPES,
    CONTAINER_RECIPES,
    MONITORING_RECIPES,
    CI_RECIPES,
    SECURITY_RECIPES,
    CLOUD_RECIPES,
    INFRA_RECIPES,
    DEVTOOLS_RECIPES,
]


def all_recipe_sources() -> list[tuple[str, dict]]:
    """Every (id, raw recipe) pair, duplicates across modules included."""
    return [(rid, raw) for group in _CATEGORIES for rid, raw in group.items()]


RECIPES: dict[str, dict] = dict(all_recipe_sources())

__all__ = ["FRAGMENTS", "RECIPES", "all_recipe_sources"]
