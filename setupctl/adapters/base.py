"""
Adapter base — the protocol contract between engine and tools.

This defines the abstract interface that every adapter must implement.
The engine only talks to adapters through this protocol, never
directly to apt, systemctl, curl or the filesystem.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from setupctl.adapters.shell.runner import OUTPUT_LIMIT, run_command
from setupctl.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    ``params`` are the action params with placeholders already
    rendered against the current variables.
    """

    action: Action
    work_dir: str = "."
    dry_run: bool = False
    params: dict[str, Any] = Field(default_factory=dict)
    sudo_password: str = ""
    is_root: bool = False
    firewall_enabled: bool = True
    command_timeout: int = 300
    download_timeout: int = 600

    @property
    def needs_root(self) -> bool:
        return bool(self.params.get("needs_root", True))

    @property
    def timeout(self) -> int:
        return int(self.params.get("timeout") or self.command_timeout)

    def run(
        self,
        argv: list[str],
        *,
        needs_root: bool | None = None,
        input: str | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        limit: int | None = OUTPUT_LIMIT,
    ) -> dict[str, Any]:
        """Run a command with this context's privilege settings."""
        return run_command(
            argv,
            needs_root=self.needs_root if needs_root is None else needs_root,
            sudo_password=self.sudo_password,
            is_root=self.is_root,
            input=input,
            cwd=cwd,
            env=env,
            timeout=timeout or self.timeout,
            limit=limit,
        )


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name, is_available, validate, execute
        3. Override describe() so dry-runs show what would happen
        4. Register it in build_default_registry()
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'apt', 'shell', 'systemd')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def describe(self, context: ExecutionContext) -> str:
        """Human-readable description of what execute() would do."""
        return f"{context.action.kind} {context.params}"

    # ── Helpers shared by subprocess-backed adapters ────────────

    def _from_result(
        self,
        context: ExecutionContext,
        result: dict[str, Any],
        *,
        facts: dict[str, Any] | None = None,
        output: str | None = None,
    ) -> Receipt:
        """Turn a run_command() result dict into a Receipt."""
        if not result["ok"]:
            detail = result.get("error") or "command failed"
            stderr = (result.get("stderr") or "").strip()
            if stderr:
                detail = f"{detail}: {stderr.splitlines()[-1]}"
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=detail,
                metadata={
                    "returncode": result.get("returncode"),
                    "stdout": result.get("stdout", ""),
                    "stderr": result.get("stderr", ""),
                },
            )

        metadata: dict[str, Any] = {"returncode": result.get("returncode", 0)}
        if facts:
            metadata["facts"] = facts
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=result.get("stdout", "").strip() if output is None else output,
            metadata=metadata,
        )

    def _run_all(self, context: ExecutionContext, commands: list[list[str]]) -> Receipt:
        """Run commands in order, stopping at the first failure."""
        outputs = []
        for argv in commands:
            result = context.run(argv)
            if not result["ok"]:
                return self._from_result(context, result)
            if result.get("stdout"):
                outputs.append(result["stdout"].strip())
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output="\n".join(outputs),
            metadata={"commands": len(commands)},
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def format_commands(commands: list[list[str]]) -> str:
    """Shell-quoted, one command per line (dry-run output)."""
    return "\n".join(shlex.join(argv) for argv in commands)
