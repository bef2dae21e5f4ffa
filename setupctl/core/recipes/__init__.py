"""Recipe catalogue — data plus validated lookup."""

from setupctl.core.recipes.registry import (
    RecipeError,
    get_fragments,
    get_recipe,
    list_recipes,
    load_catalog,
)

__all__ = [
    "RecipeError",
    "get_fragments",
    "get_recipe",
    "list_recipes",
    "load_catalog",
]
