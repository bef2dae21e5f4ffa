"""
Action and Receipt — what the engine asks for and what it gets back.

The executor turns each recipe step into an ``Action``; adapters answer
every action with a ``Receipt``. Adapters report failure in the receipt
rather than by raising.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """One planned recipe step.

    ``params`` are the step's fields as declared, placeholders included.
    The executor renders them against the current variables and facts
    at dispatch time, so a step can use what earlier steps learned.
    """

    id: str        # "<operation>:<recipe>:<index>-<kind>"
    adapter: str
    kind: str = ""
    name: str = ""  # progress line, e.g. "Installing Nginx..."
    recipe: str = ""
    params: dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    """Outcome of one action.

    ``metadata["facts"]`` carries values an adapter discovered (a parsed
    version, a release tag, the contents of a generated password file)
    back into the run's variables.
    """

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    output: str = ""
    error: str | None = None

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def facts(self) -> dict[str, Any]:
        return self.metadata.get("facts", {})

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """A step that did not run; ``reason`` becomes the output."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
