"""
InstallState — the root state model.

A record of what setupctl has run on this host, serialized to
``<state_dir>/state.json``. It is informational: the engine never
consults it to decide whether a step should run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class RecipeRecord(BaseModel):
    """Outcome of the most recent run of one recipe."""

    recipe: str
    status: str = ""                 # ok, partial, failed
    installed_at: str | None = None  # last successful run
    last_run_at: str = Field(default_factory=_now_iso)
    operation_id: str = ""
    facts: dict[str, Any] = Field(default_factory=dict)
    vars: dict[str, Any] = Field(default_factory=dict)


class OperationRecord(BaseModel):
    """Summary of the last operation."""

    operation_id: str = ""
    recipe: str = ""
    started_at: str = ""
    ended_at: str = ""
    status: str = ""  # ok, partial, failed
    steps_total: int = 0
    steps_succeeded: int = 0
    steps_failed: int = 0


class InstallState(BaseModel):
    """Root state model — serialized to state.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    hostname: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Recipes ──────────────────────────────────────────────────
    recipes: dict[str, RecipeRecord] = Field(default_factory=dict)

    # ── Last operation ───────────────────────────────────────────
    last_operation: OperationRecord = Field(default_factory=OperationRecord)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def record_run(self, recipe: str, **kwargs: Any) -> RecipeRecord:
        """Update or create the record for a recipe."""
        if recipe in self.recipes:
            record = self.recipes[recipe]
            for key, value in kwargs.items():
                setattr(record, key, value)
            record.last_run_at = _now_iso()
        else:
            record = RecipeRecord(recipe=recipe, **kwargs)
            self.recipes[recipe] = record
        return record
