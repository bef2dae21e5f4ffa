"""
Step condition evaluation.

Evaluated immediately before a step runs, against the current
variables (host facts, recipe vars and facts from earlier steps).
Read-only — uses shutil.which and os.path for checks.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Any

from setupctl.core.engine.templating import render_text
from setupctl.core.models.recipe import Condition

logger = logging.getLogger(__name__)


def _same(actual: Any, expected: Any) -> bool:
    """Compare loosely so ``"8080"`` equals ``8080`` and ``"true"`` equals True."""
    if actual == expected:
        return True
    if isinstance(expected, bool) or isinstance(actual, bool):
        return str(actual).lower() == str(expected).lower()
    return str(actual) == str(expected)


def evaluate(condition: Condition | None, variables: dict[str, Any]) -> tuple[bool, str]:
    """Check whether a step should run.

    Returns:
        (should_run, reason). ``reason`` explains a skip and is empty
        when the step runs.
    """
    if condition is None:
        return True, ""

    for name, expected in condition.var_equals.items():
        actual = variables.get(name)
        if not _same(actual, expected):
            return False, f"{name} is {actual!r}, not {expected!r}"

    for name, unexpected in condition.var_not_equals.items():
        actual = variables.get(name)
        if _same(actual, unexpected):
            return False, f"{name} is {actual!r}"

    if condition.if_binary and shutil.which(condition.if_binary) is None:
        return False, f"{condition.if_binary} is not installed"

    if condition.unless_binary and shutil.which(condition.unless_binary) is not None:
        return False, f"{condition.unless_binary} is already installed"

    if condition.if_path:
        path = render_text(condition.if_path, variables)
        if not os.path.exists(path):
            return False, f"{path} does not exist"

    if condition.unless_path:
        path = render_text(condition.unless_path, variables)
        if os.path.exists(path):
            return False, f"{path} already exists"

    if condition.as_root is not None:
        is_root = bool(variables.get("is_root", False))
        if condition.as_root != is_root:
            return False, "requires root" if condition.as_root else "only runs as a regular user"

    return True, ""
