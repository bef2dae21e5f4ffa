"""
Domain models — Pydantic types for setupctl.

All models are re-exported here for convenient access:

    from setupctl.core.models import Recipe, Action, Receipt, HostFacts
"""

from setupctl.core.models.action import Action, Receipt
from setupctl.core.models.host import HostFacts
from setupctl.core.models.recipe import Condition, Recipe, RecipeVar, Step, StepBase
from setupctl.core.models.settings import Settings
from setupctl.core.models.state import InstallState, OperationRecord, RecipeRecord

__all__ = [
    # action.py
    "Action",
    "Condition",
    # host.py
    "HostFacts",
    # state.py
    "InstallState",
    "OperationRecord",
    "Receipt",
    # recipe.py
    "Recipe",
    "RecipeRecord",
    "RecipeVar",
    # settings.py
    "Settings",
    "Step",
    "StepBase",
]
