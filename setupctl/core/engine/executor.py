"""
Engine executor — the central orchestration loop.

Takes a recipe, expands it into an ordered list of actions, executes
them through the adapter registry and collects receipts.

Flow:
    recipe → expand includes → actions → (condition → render → dispatch → facts)*

Execution is strictly linear. The first failed step aborts the run
unless the step sets ``ignore_errors``; nothing after it is executed
and nothing before it is undone.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from setupctl.adapters.registry import AdapterRegistry
from setupctl.core.engine.conditions import evaluate
from setupctl.core.engine.templating import render, render_text
from setupctl.core.models.action import Action, Receipt
from setupctl.core.models.recipe import Condition, IncludeStep, Recipe, StepBase
from setupctl.core.observability.logging_config import (
    is_secret_name,
    mask_secrets,
    redact,
    register_secrets,
)
from setupctl.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)

ENGINE_ADAPTER = "engine"
_MAX_INCLUDE_DEPTH = 5

# Called with ("start", action, None) before a step and
# ("done", action, receipt) after it. The action's name is rendered.
ProgressCallback = Callable[[str, Action, Receipt | None], None]


class PlanError(Exception):
    """A recipe cannot be turned into a plan (unknown or cyclic include)."""


@dataclass
class ExecutionPlan:
    """A planned, ordered set of actions for one recipe."""

    operation_id: str = ""
    recipe: str = ""
    actions: list[Action] = field(default_factory=list)
    conditions: dict[str, Condition] = field(default_factory=dict)

    @property
    def total_actions(self) -> int:
        return len(self.actions)


@dataclass
class ExecutionReport:
    """Result of executing a plan."""

    operation_id: str = ""
    recipe: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    step_names: dict[str, str] = field(default_factory=dict)
    facts: dict[str, Any] = field(default_factory=dict)
    aborted_at: str | None = None
    error: str | None = None
    dry_run: bool = False
    started_at: str = ""
    ended_at: str = ""
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def errors(self) -> list[str]:
        """Failure messages, one per failed step, secrets masked."""
        return [
            mask_secrets(f"{self.step_names.get(r.action_id) or r.action_id}: {r.error}")
            for r in self.receipts
            if r.failed
        ]

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "recipe": self.recipe,
            "status": self.status,
            "dry_run": self.dry_run,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted_at": self.aborted_at,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "facts": redact(self.facts),
            "steps": [
                {
                    "id": r.action_id,
                    "name": self.step_names.get(r.action_id, ""),
                    "adapter": r.adapter,
                    "status": r.status,
                    "output": mask_secrets(r.output),
                    "error": mask_secrets(r.error),
                    "duration_ms": r.duration_ms,
                }
                for r in self.receipts
            ],
        }


# ── Plan building ───────────────────────────────────────────────


def _expand(
    steps: list[StepBase],
    variables: dict[str, Any],
    fragments: dict[str, list[StepBase]],
    depth: int = 0,
) -> list[tuple[StepBase, str]]:
    """Flatten include steps. Returns (step, skip_reason) pairs.

    An include's condition is decided here, once: a fragment that is
    skipped becomes a single placeholder entry.
    """
    if depth > _MAX_INCLUDE_DEPTH:
        raise PlanError("includes nested too deeply (cycle?)")

    flat: list[tuple[StepBase, str]] = []
    for step in steps:
        if not isinstance(step, IncludeStep):
            flat.append((step, ""))
            continue

        if step.fragment not in fragments:
            raise PlanError(f"Unknown fragment: {step.fragment}")

        should_run, reason = evaluate(step.when, variables)
        if not should_run:
            flat.append((step, reason or "condition not met"))
            continue
        flat.extend(_expand(fragments[step.fragment], variables, fragments, depth + 1))
    return flat


def build_plan(
    recipe: Recipe,
    variables: dict[str, Any],
    operation_id: str,
    fragments: dict[str, list[StepBase]] | None = None,
) -> ExecutionPlan:
    """Build an execution plan from a recipe.

    Each step becomes one Action whose params are the step's fields,
    left unrendered. Step conditions are kept alongside and checked
    at execution time.

    Raises:
        PlanError: On an unknown or cyclic include.
    """
    if fragments is None:
        from setupctl.core.recipes.registry import get_fragments

        fragments = get_fragments()

    plan = ExecutionPlan(operation_id=operation_id, recipe=recipe.id)

    for index, (step, skip_reason) in enumerate(
        _expand(recipe.steps, variables, fragments), start=1,
    ):
        action_id = f"{operation_id}:{recipe.id}:{index:02d}-{step.kind}"
        if skip_reason:
            action = Action(
                id=action_id,
                name=step.name or f"Include {step.fragment}",
                adapter=ENGINE_ADAPTER,
                kind=step.kind,
                recipe=recipe.id,
                params={"fragment": step.fragment, "_skip_reason": skip_reason},
            )
        else:
            action = Action(
                id=action_id,
                name=step.name,
                adapter=step.adapter,
                kind=step.kind,
                recipe=recipe.id,
                params=step.params(),
            )
            if step.when is not None:
                plan.conditions[action_id] = step.when
        plan.actions.append(action)

    return plan


# ── Execution ───────────────────────────────────────────────────


def execute_plan(
    plan: ExecutionPlan,
    registry: AdapterRegistry,
    variables: dict[str, Any],
    dry_run: bool = False,
    work_dir: str = ".",
    sudo_password: str = "",
    firewall_enabled: bool = True,
    command_timeout: int = 300,
    download_timeout: int = 600,
    progress: ProgressCallback | None = None,
) -> ExecutionReport:
    """Execute the actions of a plan in order.

    For each action: check its condition, render its params against
    the current variables, dispatch it, then merge any facts it
    produced into the variables for the steps that follow.

    Args:
        plan: The execution plan.
        registry: Adapter registry for dispatch.
        variables: Template variables. Updated in place with facts.
        dry_run: Describe each step instead of executing it.
        work_dir: Scratch directory for downloads and extraction.
        progress: Optional callback for live progress output.

    Returns:
        ExecutionReport with one receipt per attempted action.
    """
    report = ExecutionReport(
        operation_id=plan.operation_id,
        recipe=plan.recipe,
        dry_run=dry_run,
        started_at=datetime.now(UTC).isoformat(),
    )
    start = time.monotonic()
    is_root = bool(variables.get("is_root", False))

    for action in plan.actions:
        name = render_text(action.name, variables) if action.name else action.kind
        report.step_names[action.id] = name
        shown = action.model_copy(update={"name": name})

        # Include skipped at plan time
        if action.adapter == ENGINE_ADAPTER:
            receipt = Receipt.skip(
                adapter=ENGINE_ADAPTER,
                action_id=action.id,
                reason=action.params.get("_skip_reason", ""),
            )
            report.receipts.append(receipt)
            logger.info("[-] %s (skipped: %s)", name, receipt.output)
            if progress:
                progress("done", shown, receipt)
            continue

        should_run, reason = evaluate(plan.conditions.get(action.id), variables)
        if not should_run:
            receipt = Receipt.skip(adapter=action.adapter, action_id=action.id, reason=reason)
            report.receipts.append(receipt)
            logger.info("[-] %s (skipped: %s)", name, reason)
            if progress:
                progress("done", shown, receipt)
            continue

        params = render(action.params, variables)
        logger.info("[*] %s", name)
        if progress:
            progress("start", shown, None)

        receipt = registry.execute_action(
            action,
            params,
            dry_run=dry_run,
            work_dir=work_dir,
            sudo_password=sudo_password,
            is_root=is_root,
            firewall_enabled=firewall_enabled,
            command_timeout=command_timeout,
            download_timeout=download_timeout,
        )
        report.receipts.append(receipt)

        if receipt.facts:
            register_secrets(
                str(v) for k, v in receipt.facts.items() if is_secret_name(k) and v
            )
            variables.update(receipt.facts)
            report.facts.update(receipt.facts)

        if progress:
            progress("done", shown, receipt)

        if not receipt.failed:
            logger.debug("[+] %s → %s", name, receipt.status)
            continue

        message = params.get("error") or f"{name} failed"
        if params.get("ignore_errors"):
            logger.warning("[!] %s (ignored): %s", message, receipt.error)
            continue

        logger.error("[!] Error: %s: %s", message, receipt.error)
        report.aborted_at = action.id
        report.error = mask_secrets(f"{message}: {receipt.error}" if receipt.error else message)
        break

    report.duration_ms = int((time.monotonic() - start) * 1000)
    report.ended_at = datetime.now(UTC).isoformat()
    return report


def write_audit_entry(
    report: ExecutionReport,
    audit_writer: AuditWriter,
    *,
    hostname: str = "",
    user: str = "",
    variables: dict[str, Any] | None = None,
) -> AuditEntry:
    """Write one install run to the audit ledger."""
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type="install",
        recipe=report.recipe,
        hostname=hostname,
        user=user,
        vars=variables or {},
        status=report.status,
        steps_total=report.total,
        steps_succeeded=report.succeeded,
        steps_failed=report.failed,
        steps_skipped=report.skipped,
        duration_ms=report.duration_ms,
        errors=report.errors(),
        context={"aborted_at": report.aborted_at, "facts": redact(report.facts)},
    )
    audit_writer.write(entry)
    return entry


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
