"""
Firewall adapter — open ports with ufw.

Rules are applied only when ufw is installed and active, and when the
firewall setting is enabled. Otherwise the step is skipped.
"""

from __future__ import annotations

import shutil

from setupctl.adapters.base import Adapter, ExecutionContext, format_commands
from setupctl.core.models.action import Receipt


class FirewallAdapter(Adapter):
    """Allow ports / application profiles through ufw."""

    @property
    def name(self) -> str:
        return "firewall"

    def is_available(self) -> bool:
        return shutil.which("ufw") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.params.get("rules"):
            return False, "Missing required param: 'rules'"
        return True, ""

    def commands(self, context: ExecutionContext) -> list[list[str]]:
        return [["ufw", "allow", str(rule)] for rule in context.params["rules"]]

    def describe(self, context: ExecutionContext) -> str:
        text = format_commands(self.commands(context))
        if not context.firewall_enabled:
            return f"(firewall disabled) {text}"
        return f"(if ufw is active) {text}"

    def _skip(self, context: ExecutionContext, reason: str) -> Receipt:
        return Receipt.skip(adapter=self.name, action_id=context.action.id, reason=reason)

    def execute(self, context: ExecutionContext) -> Receipt:
        if not context.firewall_enabled:
            return self._skip(context, "firewall management disabled")
        if not self.is_available():
            return self._skip(context, "ufw is not installed")

        status = context.run(["ufw", "status"])
        if not status["ok"]:
            return self._from_result(context, status)
        if "Status: active" not in status["stdout"]:
            return self._skip(context, "ufw is not active")

        return self._run_all(context, self.commands(context))
