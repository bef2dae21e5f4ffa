"""
Install use case — run one recipe on this host.

This is the top-level orchestrator: it loads settings, resolves the
recipe, detects the host, enforces privileges, merges variables,
plans and executes the steps, then persists state and the audit entry.
The full vertical slice from ``setupctl install nginx`` to an audited run.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from setupctl.adapters.registry import AdapterRegistry
from setupctl.core.config.loader import ConfigError, load_settings
from setupctl.core.detection.host import detect_host
from setupctl.core.engine.executor import (
    ExecutionPlan,
    ExecutionReport,
    PlanError,
    ProgressCallback,
    build_plan,
    execute_plan,
    generate_operation_id,
    write_audit_entry,
)
from setupctl.core.engine.templating import render, render_text
from setupctl.core.models.host import HostFacts
from setupctl.core.models.recipe import Recipe, ScalarValue
from setupctl.core.models.settings import Settings
from setupctl.core.observability.logging_config import (
    MASK,
    is_secret_name,
    redact,
    register_secrets,
)
from setupctl.core.persistence.audit import AuditWriter
from setupctl.core.persistence.state_file import default_state_path, load_state, save_state
from setupctl.core.recipes.registry import RecipeError, get_recipe

logger = logging.getLogger(__name__)

PRIVILEGE_MESSAGE = "Please run this script with sudo privileges"


class VariableError(Exception):
    """Raised for an unknown variable or a value that does not fit its var."""


def build_default_registry(mock_mode: bool = False) -> AdapterRegistry:
    """Registry with every host adapter registered."""
    from setupctl.adapters.network.download import DownloadAdapter
    from setupctl.adapters.shell.command import ShellCommandAdapter
    from setupctl.adapters.shell.filesystem import FilesystemAdapter
    from setupctl.adapters.system.apt import AptAdapter
    from setupctl.adapters.system.firewall import FirewallAdapter
    from setupctl.adapters.system.systemd import SystemdAdapter
    from setupctl.adapters.system.users import UsersAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    registry.register(AptAdapter())
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    registry.register(SystemdAdapter())
    registry.register(FirewallAdapter())
    registry.register(UsersAdapter())
    registry.register(DownloadAdapter())
    return registry


# ── Variables ───────────────────────────────────────────────────


def _apply(
    recipe: Recipe,
    variables: dict[str, Any],
    values: dict[str, Any],
    source: str,
) -> None:
    for name, raw in values.items():
        var = recipe.var(name)
        if var is None:
            declared = ", ".join(v.name for v in recipe.vars) or "none"
            raise VariableError(
                f"{source}: '{name}' is not a variable of {recipe.id} (declared: {declared})"
            )
        try:
            variables[name] = var.coerce(raw)
        except ValueError as e:
            raise VariableError(f"{source}: {e}") from e


def resolve_variables(
    recipe: Recipe,
    host: HostFacts,
    settings: Settings,
    overrides: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge template variables for one run.

    Precedence, lowest first: host facts, recipe defaults, ``user_vars``
    (when not root), setupctl.yml overrides, CLI overrides. String values
    are then rendered once, so a default such as ``{home}/bin`` resolves
    against the host.

    Raises:
        VariableError: On an undeclared name or a value its var rejects.
    """
    variables: dict[str, Any] = host.as_vars()
    variables.update(extra or {})
    variables.update(recipe.defaults())
    if not host.is_root:
        variables.update(recipe.user_vars)

    _apply(recipe, variables, settings.overrides_for(recipe.id), "setupctl.yml")
    _apply(recipe, variables, overrides or {}, "--set")

    for var in recipe.vars:
        value = variables[var.name]
        if isinstance(value, str):
            variables[var.name] = render_text(value, variables)
    return variables


def parse_overrides(pairs: tuple[str, ...] | list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings from ``--set``.

    Raises:
        VariableError: If an item has no ``=`` or an empty key.
    """
    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise VariableError(f"--set expects key=value, got {pair!r}")
        overrides[key] = value
    return overrides


# ── Install ─────────────────────────────────────────────────────


@dataclass
class InstallResult:
    """Result of installing a recipe."""

    recipe: Recipe | None = None
    host: HostFacts | None = None
    report: ExecutionReport | None = None
    plan: ExecutionPlan | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    usage: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.report is None or self.report.aborted_at is None)

    def recipe_vars(self) -> dict[str, ScalarValue]:
        """Final values of the recipe's declared variables, secrets masked."""
        if self.recipe is None:
            return {}
        return {
            v.name: MASK if is_secret_name(v.name) else self.variables.get(v.name, v.default)
            for v in self.recipe.vars
        }

    def to_dict(self) -> dict:
        result: dict = {}
        if self.recipe is not None:
            result["recipe"] = self.recipe.id
        if self.warnings:
            result["warnings"] = self.warnings
        if self.error:
            result["error"] = self.error
        if self.report is not None:
            result["vars"] = self.recipe_vars()
            result["report"] = self.report.to_dict()
            result["usage"] = self.usage
        return result


def install_recipe(
    recipe_id: str,
    overrides: dict[str, Any] | None = None,
    config_path: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    sudo_password: str = "",
    firewall: bool | None = None,
    progress: ProgressCallback | None = None,
    host: HostFacts | None = None,
) -> InstallResult:
    """Install one recipe.

    Args:
        recipe_id: Recipe id, alias or legacy script name.
        overrides: ``--set`` values (raw strings are coerced).
        config_path: Optional explicit path to setupctl.yml.
        dry_run: Describe each step instead of running it.
        mock_mode: Route every step to the mock adapter. Like a dry run,
            a mock run leaves state and the audit ledger untouched.
        registry: Optional pre-configured adapter registry.
        sudo_password: Password for ``sudo -S`` when not root.
        firewall: Override the ``firewall`` setting.
        progress: Optional per-step progress callback.
        host: Pre-detected host facts (detected when None).

    Returns:
        InstallResult; ``error`` is set when the run did not complete.
    """
    result = InstallResult()

    # ── Settings and recipe ──────────────────────────────────────
    try:
        settings = load_settings(config_path)
        recipe = get_recipe(recipe_id)
    except (ConfigError, RecipeError) as e:
        result.error = str(e)
        return result
    result.recipe = recipe

    # ── Host and privileges ──────────────────────────────────────
    host = host or detect_host()
    result.host = host

    touches_host = not (dry_run or mock_mode)
    if recipe.privilege == "root" and not host.is_root and touches_host:
        result.error = PRIVILEGE_MESSAGE
        return result
    if recipe.privilege == "user" and host.is_root:
        result.warnings.append(f"{recipe.label} installs for the current user; running as root installs it for root")

    if host.distro not in recipe.platforms:
        result.warnings.append(
            f"{recipe.label} targets {', '.join(recipe.platforms)}; this host is {host.distro}"
        )
    for warning in result.warnings:
        logger.warning(warning)

    # ── Variables ────────────────────────────────────────────────
    operation_id = generate_operation_id()
    work_dir = settings.work_path() / operation_id
    try:
        variables = resolve_variables(
            recipe, host, settings, overrides,
            extra={"work_dir": str(work_dir), "operation_id": operation_id},
        )
    except VariableError as e:
        result.error = str(e)
        return result
    result.variables = variables
    register_secrets(
        [sudo_password, *(str(variables[v.name]) for v in recipe.vars if is_secret_name(v.name))]
    )

    # ── Plan ─────────────────────────────────────────────────────
    try:
        plan = build_plan(recipe, variables, operation_id)
    except (PlanError, RecipeError) as e:
        result.error = str(e)
        return result
    result.plan = plan

    # ── Execute ──────────────────────────────────────────────────
    if registry is None:
        registry = build_default_registry(mock_mode=mock_mode)

    if touches_host:
        work_dir.mkdir(parents=True, exist_ok=True)
    try:
        report = execute_plan(
            plan,
            registry,
            variables,
            dry_run=dry_run,
            work_dir=str(work_dir),
            sudo_password=sudo_password,
            firewall_enabled=settings.firewall if firewall is None else firewall,
            command_timeout=settings.command_timeout,
            download_timeout=settings.download_timeout,
            progress=progress,
        )
    finally:
        if work_dir.exists():
            shutil.rmtree(work_dir, ignore_errors=True)
    result.report = report

    if report.aborted_at is None:
        result.usage = render(recipe.usage, variables)
    else:
        result.error = report.error

    if not touches_host:
        return result

    # ── Persist state ────────────────────────────────────────────
    state_dir = settings.state_path(host.is_root)
    try:
        state_path = default_state_path(state_dir)
        state = load_state(state_path)
        state.hostname = host.hostname
        record: dict[str, Any] = {
            "status": report.status,
            "operation_id": operation_id,
            "facts": redact(report.facts),
            "vars": result.recipe_vars(),
        }
        if report.aborted_at is None:
            record["installed_at"] = report.ended_at
        state.record_run(recipe.id, **record)

        state.last_operation.operation_id = operation_id
        state.last_operation.recipe = recipe.id
        state.last_operation.started_at = report.started_at
        state.last_operation.ended_at = report.ended_at
        state.last_operation.status = report.status
        state.last_operation.steps_total = report.total
        state.last_operation.steps_succeeded = report.succeeded
        state.last_operation.steps_failed = report.failed
        save_state(state, state_path)
    except OSError as e:
        message = f"Could not save state to {state_dir}: {e}"
        logger.warning(message)
        result.warnings.append(message)

    # ── Write audit log ──────────────────────────────────────────
    write_audit_entry(
        report,
        AuditWriter(state_dir=state_dir),
        hostname=host.hostname,
        user=host.invoking_user,
        variables=result.recipe_vars(),
    )

    return result


# ── Plan preview ────────────────────────────────────────────────


@dataclass
class PlanResult:
    """Rendered step list for ``recipes plan``."""

    recipe: Recipe | None = None
    steps: list[dict] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "recipe": self.recipe.id if self.recipe else "",
            "vars": {v.name: self.variables.get(v.name) for v in self.recipe.vars} if self.recipe else {},
            "steps": self.steps,
        }


def plan_recipe(
    recipe_id: str,
    overrides: dict[str, Any] | None = None,
    config_path: Path | None = None,
    host: HostFacts | None = None,
) -> PlanResult:
    """Render a recipe's steps without running anything.

    Run-time conditions are listed, not evaluated; facts produced by
    earlier steps show up as unrendered ``{placeholders}``.
    """
    result = PlanResult()
    try:
        settings = load_settings(config_path)
        recipe = get_recipe(recipe_id)
        result.recipe = recipe
        host = host or detect_host()
        operation_id = generate_operation_id()
        variables = resolve_variables(
            recipe, host, settings, overrides,
            extra={"work_dir": str(settings.work_path() / operation_id), "operation_id": operation_id},
        )
        plan = build_plan(recipe, variables, operation_id)
    except (ConfigError, RecipeError, VariableError, PlanError) as e:
        result.error = str(e)
        return result

    result.variables = variables
    for action in plan.actions:
        condition = plan.conditions.get(action.id)
        params = {k: v for k, v in action.params.items() if k not in ("error", "_skip_reason")}
        step = {
            "id": action.id,
            "name": render_text(action.name, variables) if action.name else action.kind,
            "adapter": action.adapter,
            "kind": action.kind,
            "params": render(params, variables),
        }
        if condition is not None:
            step["when"] = condition.model_dump(exclude_defaults=True)
        if "_skip_reason" in action.params:
            step["skipped"] = action.params["_skip_reason"]
        result.steps.append(step)
    return result
