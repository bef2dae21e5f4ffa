"""
Mock adapter — universal test double for all adapter operations.

Used in mock mode and in tests to simulate adapter behavior without
touching the host. Configurable per action id: success, failure,
or a custom receipt (including facts).
"""

from __future__ import annotations

from typing import Any

from setupctl.adapters.base import Adapter, ExecutionContext
from setupctl.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    By default, returns success for everything. Responses are keyed
    by action id, or by step kind for whole classes of actions.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def executed_kinds(self) -> list[str]:
        """Step kinds in the order they were executed."""
        return [ctx.action.kind for ctx in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, key: str, receipt: Receipt) -> None:
        """Set a custom response for an action id or step kind."""
        self._responses[key] = receipt

    def set_failure(self, key: str, error: str = "Mock failure") -> None:
        """Configure an action id (or step kind) to fail."""
        self._responses[key] = Receipt.failure(adapter=self._name, action_id=key, error=error)

    def set_facts(self, key: str, facts: dict[str, Any]) -> None:
        """Configure an action id (or step kind) to report facts."""
        self._responses[key] = Receipt.success(
            adapter=self._name,
            action_id=key,
            output=self._default_output,
            metadata={"mock": True, "facts": facts},
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def describe(self, context: ExecutionContext) -> str:
        return f"[mock] {context.action.kind}"

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        action = context.action
        custom = self._responses.get(action.id) or self._responses.get(action.kind)
        if custom is not None:
            return custom.model_copy(update={"action_id": action.id})

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
