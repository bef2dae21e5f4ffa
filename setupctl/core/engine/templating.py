"""
Placeholder rendering for recipe step params.

``{key}`` tokens are replaced with variable values. Only known keys
are substituted, so shell and config syntax that also uses braces
(``${APACHE_LOG_DIR}``, HCL blocks, ``$uri``) passes through untouched.
Simple string substitution — no Jinja, no escaping.
"""

from __future__ import annotations

import re
from typing import Any

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_text(template: str, variables: dict[str, Any]) -> str:
    """Substitute ``{key}`` placeholders in a single string."""

    def _sub(m: re.Match[str]) -> str:
        key = m.group(1)
        if key in variables and variables[key] is not None:
            return _to_text(variables[key])
        return m.group(0)

    return _PLACEHOLDER.sub(_sub, template)


def render(value: Any, variables: dict[str, Any]) -> Any:
    """Render placeholders in a string, list or dict (recursively).

    Dict keys are rendered too. Non-string scalars are returned as-is.
    """
    if isinstance(value, str):
        return render_text(value, variables)
    if isinstance(value, list):
        return [render(v, variables) for v in value]
    if isinstance(value, dict):
        return {render(k, variables): render(v, variables) for k, v in value.items()}
    return value


def placeholders(value: Any) -> set[str]:
    """All placeholder names referenced anywhere in ``value``."""
    found: set[str] = set()
    if isinstance(value, str):
        found.update(_PLACEHOLDER.findall(value))
    elif isinstance(value, list):
        for v in value:
            found |= placeholders(v)
    elif isinstance(value, dict):
        for k, v in value.items():
            found |= placeholders(k) | placeholders(v)
    return found
