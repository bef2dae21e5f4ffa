"""
Adapter registry — name → adapter lookup plus the single dispatch path.

``execute_action`` is the only way the engine reaches an adapter. It
builds the ``ExecutionContext``, validates, then either describes the
step (dry run) or executes it. Whatever happens, a ``Receipt`` comes
back; exceptions from adapter code are folded into failed receipts.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from setupctl.adapters.base import Adapter, ExecutionContext
from setupctl.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters keyed by ``Adapter.name``.

    In mock mode every action goes to the mock adapter given to
    ``set_mock_mode``; without one, actions succeed with a ``[mock]``
    line and nothing runs.
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock: Adapter | None = None

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        self._mock_mode = enabled
        self._mock = mock_adapter

    # ── Registration ────────────────────────────────────────────

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %s", adapter.name)
        self._adapters[adapter.name] = adapter
        logger.debug("Registered adapter: %s", adapter.name)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    # ── Dispatch ────────────────────────────────────────────────

    def _resolve(self, action: Action) -> Adapter | Receipt:
        if self._mock_mode:
            if self._mock is not None:
                return self._mock
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action.adapter}:{action.kind}",
                metadata={"mock": True},
            )
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )
        return adapter

    def execute_action(
        self,
        action: Action,
        params: dict[str, Any] | None = None,
        *,
        dry_run: bool = False,
        work_dir: str = ".",
        sudo_password: str = "",
        is_root: bool = False,
        firewall_enabled: bool = True,
        command_timeout: int = 300,
        download_timeout: int = 600,
    ) -> Receipt:
        """Run one action and return its receipt. Never raises.

        Args:
            action: Planned action; ``action.adapter`` selects the adapter.
            params: Rendered params (defaults to ``action.params``).
            dry_run: Validate and describe without executing.
        """
        started = time.monotonic()

        resolved = self._resolve(action)
        if isinstance(resolved, Receipt):
            return resolved
        adapter = resolved

        context = ExecutionContext(
            action=action,
            work_dir=work_dir,
            dry_run=dry_run,
            params=action.params if params is None else params,
            sudo_password=sudo_password,
            is_root=is_root,
            firewall_enabled=firewall_enabled,
            command_timeout=command_timeout,
            download_timeout=download_timeout,
        )

        def fail(error: str) -> Receipt:
            return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)

        try:
            valid, problem = adapter.validate(context)
        except Exception as e:
            return fail(f"Validation error: {e}")
        if not valid:
            return fail(f"Validation failed: {problem}")

        if dry_run:
            try:
                description = adapter.describe(context)
            except Exception as e:
                description = f"{action.adapter}:{action.kind} ({e})"
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] {description}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("%s adapter raised on %s: %s", action.adapter, action.id, e)
            receipt = fail(f"Unexpected error: {e}")

        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt
