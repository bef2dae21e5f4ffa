"""
Filesystem adapter — configuration files and directories.

Provides a receipt-returning interface for the file operations recipes
perform: writing generated config files, sed-style edits, appending
lines to shell profiles, creating directories, and reading values
(like a generated admin password) back into facts.

When a step needs root and the process is not root, file contents are
staged in the work dir and moved into place with ``sudo install`` /
``sudo cp``.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import tempfile
from pathlib import Path

from setupctl.adapters.base import Adapter, ExecutionContext, format_commands
from setupctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OPERATIONS = {"write_file", "edit_file", "append_line", "directory", "read_file"}


class FilesystemError(Exception):
    """A file operation failed (raised internally, reported as a receipt)."""


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        path (str): Target path (absolute).
        content (str): File body (write_file).
        substitutions (list): ``{pattern, replacement}`` regexes (edit_file).
        line / marker (str): Line to append and its presence marker.
        paths (list[str]): Directories to create (directory).
        mode (str): Octal mode, e.g. ``"640"``.
        owner (str): ``user`` or ``user:group``.
        fact (str): Fact name (read_file).
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        kind = context.action.kind
        params = context.params
        if kind not in _OPERATIONS:
            return False, f"Unknown operation '{kind}'. Valid: {', '.join(sorted(_OPERATIONS))}"

        if kind == "directory":
            if not params.get("paths"):
                return False, "Missing required param: 'paths'"
        elif not params.get("path"):
            return False, "Missing required param: 'path'"

        if kind == "write_file" and "content" not in params:
            return False, "Missing required param: 'content' for write_file"
        if kind == "edit_file" and not params.get("substitutions"):
            return False, "Missing required param: 'substitutions' for edit_file"
        if kind == "read_file" and not params.get("fact"):
            return False, "Missing required param: 'fact' for read_file"

        mode = params.get("mode")
        if mode is not None:
            try:
                int(str(mode), 8)
            except ValueError:
                return False, f"Invalid octal mode: {mode!r}"

        return True, ""

    def describe(self, context: ExecutionContext) -> str:
        params = context.params
        kind = context.action.kind
        if kind == "directory":
            return format_commands(self._directory_commands(params))
        if kind == "write_file":
            lines = params["content"].count("\n") + 1
            text = f"write {params['path']} ({lines} lines"
            if params.get("mode"):
                text += f", mode {params['mode']}"
            if params.get("owner"):
                text += f", owner {params['owner']}"
            return text + ")"
        if kind == "edit_file":
            edits = "; ".join(
                f"s/{s['pattern']}/{s['replacement']}/" for s in params["substitutions"]
            )
            return f"sed -i {shlex.quote(edits)} {params['path']}"
        if kind == "append_line":
            return f"echo {shlex.quote(params['line'])} >> {params['path']}"
        return f"read {params['path']} into {{{params['fact']}}}"

    def execute(self, context: ExecutionContext) -> Receipt:
        kind = context.action.kind
        target = context.params.get("path", "")
        try:
            if kind == "write_file":
                return self._write_file(context, Path(target))
            elif kind == "edit_file":
                return self._edit_file(context, Path(target))
            elif kind == "append_line":
                return self._append_line(context, Path(target))
            elif kind == "directory":
                return self._run_all(context, self._directory_commands(context.params))
            elif kind == "read_file":
                return self._read_file(context, Path(target))
            else:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {kind}",
                )
        except (FilesystemError, OSError, re.error) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": kind, "path": target},
            )

    # ── Operations ──────────────────────────────────────────────

    def _write_file(self, ctx: ExecutionContext, target: Path) -> Receipt:
        params = ctx.params
        exists = self._exists(ctx, target)

        if params.get("if_missing") and exists:
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"{target} already exists",
            )
        if params.get("require_existing") and not exists:
            raise FilesystemError(f"{target} does not exist")

        if params.get("backup") and exists:
            backup = Path(f"{target}.bak")
            self._copy(ctx, target, backup)
            logger.debug("Backed up %s to %s", target, backup)

        content = params["content"]
        self._put(ctx, target, content, params.get("mode"))
        if params.get("owner"):
            self._check(ctx.run(["chown", params["owner"], str(target)]))

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Written {len(content)} bytes to {target}",
            metadata={"path": str(target), "size": len(content)},
        )

    def _edit_file(self, ctx: ExecutionContext, target: Path) -> Receipt:
        original = self._read(ctx, target)
        text = original
        replaced = 0
        for sub in ctx.params["substitutions"]:
            text, n = re.subn(sub["pattern"], sub["replacement"], text, flags=re.MULTILINE)
            replaced += n

        if text != original:
            self._put(ctx, target, text, None)

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"{replaced} substitution(s) in {target}",
            metadata={"path": str(target), "replaced": replaced},
        )

    def _append_line(self, ctx: ExecutionContext, target: Path) -> Receipt:
        line = ctx.params["line"]
        marker = ctx.params.get("marker") or line
        current = self._read(ctx, target) if self._exists(ctx, target) else ""

        if marker in current:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=f"{target} already contains {marker!r}",
                metadata={"path": str(target), "appended": False},
            )

        if current and not current.endswith("\n"):
            current += "\n"
        self._put(ctx, target, current + line + "\n", None)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Appended to {target}",
            metadata={"path": str(target), "appended": True},
        )

    def _read_file(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not self._exists(ctx, target):
            raise FilesystemError(f"File not found: {target}")
        value = self._read(ctx, target).strip()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Read {len(value)} bytes from {target}",
            metadata={"path": str(target), "facts": {ctx.params["fact"]: value}},
        )

    @staticmethod
    def _directory_commands(params: dict) -> list[list[str]]:
        paths = [str(p) for p in params["paths"]]
        commands = [["mkdir", "-p", *paths]]
        if params.get("owner"):
            commands.append(["chown", "-R", params["owner"], *paths])
        if params.get("mode"):
            commands.append(["chmod", str(params["mode"]), *paths])
        return commands

    # ── Primitives (direct or via sudo) ─────────────────────────

    @staticmethod
    def _privileged(ctx: ExecutionContext) -> bool:
        return ctx.needs_root and not ctx.is_root

    @staticmethod
    def _check(result: dict) -> None:
        if not result["ok"]:
            detail = (result.get("stderr") or "").strip()
            raise FilesystemError(f"{result['error']} {detail}".strip())

    def _exists(self, ctx: ExecutionContext, target: Path) -> bool:
        try:
            return target.exists()
        except PermissionError:
            return ctx.run(["test", "-e", str(target)])["ok"]

    def _read(self, ctx: ExecutionContext, target: Path) -> str:
        try:
            return target.read_text(encoding="utf-8")
        except PermissionError:
            if not self._privileged(ctx):
                raise
        result = ctx.run(["cat", str(target)], limit=None)
        self._check(result)
        return result["stdout"]

    def _copy(self, ctx: ExecutionContext, src: Path, dest: Path) -> None:
        if self._privileged(ctx):
            self._check(ctx.run(["cp", "-p", str(src), str(dest)]))
        else:
            shutil.copy2(src, dest)

    def _put(self, ctx: ExecutionContext, target: Path, content: str, mode: str | None) -> None:
        """Write content to target, creating parent directories."""
        if not self._privileged(ctx):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            if mode:
                os.chmod(target, int(str(mode), 8))
            return

        # Stage in the work dir, then move into place as root
        staging = Path(ctx.work_dir)
        staging.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=staging, prefix=".stage_")
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(content)
            if mode is None and self._exists(ctx, target):
                # cp keeps the existing file's mode and owner
                self._check(ctx.run(["cp", tmp_path, str(target)]))
            else:
                self._check(ctx.run(
                    ["install", "-D", "-m", str(mode or "644"), tmp_path, str(target)],
                ))
        finally:
            Path(tmp_path).unlink(missing_ok=True)
