"""
Status use case — what setupctl has installed here, plus live service state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from setupctl.core.config.loader import ConfigError, load_settings
from setupctl.core.detection.service_status import get_service_status
from setupctl.core.models.settings import Settings
from setupctl.core.models.state import InstallState
from setupctl.core.persistence.state_file import default_state_path, load_state
from setupctl.core.recipes.registry import RecipeError, load_catalog

logger = logging.getLogger(__name__)


@dataclass
class StatusResult:
    """Recorded recipes and the services they manage."""

    state: InstallState | None = None
    state_path: Path | None = None
    services: dict[str, dict[str, dict]] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        if self.error:
            return {"error": self.error}

        result: dict = {"state_path": str(self.state_path) if self.state_path else None}
        if self.state is None:
            result["recipes"] = []
            return result

        result["hostname"] = self.state.hostname
        result["recipes"] = [
            {
                "recipe": record.recipe,
                "status": record.status,
                "installed_at": record.installed_at,
                "last_run_at": record.last_run_at,
                "operation_id": record.operation_id,
                "vars": record.vars,
                "services": self.services.get(record.recipe, {}),
            }
            for record in sorted(self.state.recipes.values(), key=lambda r: r.recipe)
        ]
        last = self.state.last_operation
        if last.operation_id:
            result["last_operation"] = last.model_dump()
        return result


def get_status(
    settings: Settings | None = None,
    config_path: Path | None = None,
    service_status: Callable[[str], dict] = get_service_status,
) -> StatusResult:
    """Load the state file and check each recorded recipe's services.

    Args:
        settings: Loaded settings; read from ``config_path`` when None.
        config_path: Optional explicit path to setupctl.yml.
        service_status: Service status function (injectable for tests).
    """
    result = StatusResult()

    try:
        if settings is None:
            settings = load_settings(config_path)
        catalog = load_catalog()
    except (ConfigError, RecipeError) as e:
        result.error = str(e)
        return result

    result.state_path = default_state_path(settings.state_path())
    if not result.state_path.is_file():
        return result

    state = load_state(result.state_path)
    result.state = state

    for recipe_id in state.recipes:
        recipe = catalog.get(recipe_id)
        if recipe is None:
            logger.debug("State records unknown recipe %s", recipe_id)
            continue
        if recipe.services:
            result.services[recipe_id] = {name: service_status(name) for name in recipe.services}

    return result
