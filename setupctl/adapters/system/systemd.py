"""
systemd adapter — service lifecycle and health checks.

Step kinds:
    service         systemctl daemon-reload / start / enable / restart ...
    service_check   wait, then require ``systemctl is-active``
"""

from __future__ import annotations

import logging
import shutil
import time

from setupctl.adapters.base import Adapter, ExecutionContext, format_commands
from setupctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 1.0


class SystemdAdapter(Adapter):
    """Manage systemd units through systemctl."""

    @property
    def name(self) -> str:
        return "systemd"

    def is_available(self) -> bool:
        return shutil.which("systemctl") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.params
        kind = context.action.kind
        if kind == "service":
            actions = params.get("actions") or []
            if not actions:
                return False, "Missing required param: 'actions'"
            if any(a != "daemon-reload" for a in actions) and not params.get("service"):
                return False, "Missing required param: 'service'"
            return True, ""
        if kind == "service_check":
            if not params.get("service"):
                return False, "Missing required param: 'service'"
            return True, ""
        return False, f"Unsupported step kind for systemd adapter: {kind}"

    def commands(self, context: ExecutionContext) -> list[list[str]]:
        params = context.params
        if context.action.kind == "service_check":
            return [["systemctl", "is-active", params["service"]]]

        commands = []
        for action in params["actions"]:
            if action == "daemon-reload":
                commands.append(["systemctl", "daemon-reload"])
            else:
                commands.append(["systemctl", action, params["service"]])
        return commands

    def describe(self, context: ExecutionContext) -> str:
        text = format_commands(self.commands(context))
        wait = context.params.get("wait_seconds") or 0
        if context.action.kind == "service_check" and wait:
            return f"wait up to {wait}s for: {text}"
        return text

    def execute(self, context: ExecutionContext) -> Receipt:
        if context.action.kind == "service_check":
            return self._check(context)
        return self._run_all(context, self.commands(context))

    def _check(self, ctx: ExecutionContext) -> Receipt:
        """Poll is-active until the service is up or the wait expires."""
        service = ctx.params["service"]
        deadline = time.monotonic() + float(ctx.params.get("wait_seconds") or 0)

        while True:
            result = ctx.run(["systemctl", "is-active", service], needs_root=False)
            state = result.get("stdout", "").strip() or "unknown"
            if result["ok"] and state == "active":
                return Receipt.success(
                    adapter=self.name,
                    action_id=ctx.action.id,
                    output=f"{service} is active",
                    metadata={"state": state},
                )
            if time.monotonic() >= deadline:
                break
            time.sleep(_POLL_INTERVAL)

        logger.debug("Service %s not active: %s", service, state)
        return Receipt.failure(
            adapter=self.name,
            action_id=ctx.action.id,
            error=f"{service} is not running (state: {state})",
            metadata={"state": state},
        )
