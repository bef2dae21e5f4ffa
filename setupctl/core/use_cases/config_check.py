"""
Config check use case — validate setupctl.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from setupctl.core.config.loader import ConfigError, find_config_file, load_settings
from setupctl.core.models.settings import Settings
from setupctl.core.recipes.registry import RecipeError, load_catalog


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    settings: Settings | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "state_dir": str(self.settings.state_path()) if self.settings else None,
            "firewall": self.settings.firewall if self.settings else None,
            "recipe_overrides": sorted(self.settings.recipes) if self.settings else [],
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate setupctl.yml against the schema and the recipe catalogue.

    Args:
        config_path: Optional explicit path to setupctl.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.warnings.append("No setupctl.yml found; using defaults.")
        result.settings = Settings()
        result.valid = True
        return result
    result.config_path = config_path

    # Load and validate
    try:
        settings = load_settings(config_path)
        result.settings = settings
        catalog = load_catalog()
    except (ConfigError, RecipeError) as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    for recipe_id, values in settings.recipes.items():
        recipe = catalog.get(recipe_id)
        if recipe is None:
            result.errors.append(f"recipes.{recipe_id}: unknown recipe")
            continue
        for name, value in values.items():
            var = recipe.var(name)
            if var is None:
                result.errors.append(f"recipes.{recipe_id}.{name}: not a variable of {recipe_id}")
                continue
            try:
                var.coerce(value)
            except ValueError as e:
                result.errors.append(f"recipes.{recipe_id}: {e}")

    if not settings.firewall:
        result.warnings.append("firewall is disabled; recipes will not open ports with ufw.")

    # Result
    result.valid = len(result.errors) == 0
    return result
