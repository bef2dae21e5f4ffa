"""
Shell adapter — run commands and verify installed binaries.

This is the most fundamental adapter: it runs commands and captures
their output. It handles two step kinds:

    command   argv or a bash script, optional stdin, expected output,
              captured facts
    verify    a binary on PATH (or a path on disk), optionally with its
              parsed version stored as a fact
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
from pathlib import Path

from setupctl.adapters.base import Adapter, ExecutionContext
from setupctl.core.detection.versions import first_line, parse_version
from setupctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Install locations that may not be on the PATH of the current process yet
_EXTRA_BIN_DIRS = ("/usr/local/bin", "/usr/local/sbin", "/usr/sbin", "/snap/bin")


def script_argv(script: str) -> list[str]:
    """argv for a bash script with abort-on-error semantics."""
    return ["bash", "-e", "-o", "pipefail", "-c", script]


def find_binary(binary: str, home: str = "") -> str | None:
    """Locate a binary on PATH or in the usual install directories."""
    if "/" in binary:
        return binary if os.access(binary, os.X_OK) else None
    extra = list(_EXTRA_BIN_DIRS)
    if home:
        extra += [f"{home}/bin", f"{home}/.local/bin", f"{home}/.cargo/bin"]
    search = os.pathsep.join([os.environ.get("PATH", ""), *extra])
    return shutil.which(binary, path=search)


class ShellCommandAdapter(Adapter):
    """Execute commands and version checks.

    Action params (command):
        argv (list[str]) | script (str): What to run.
        cwd (str): Working directory (default: the run's work dir).
        input (str): Text piped to stdin.
        env (dict): Extra environment variables.
        expect (str): Substring that must appear in stdout.
        capture (str): Fact name for stdout (or the ``pattern`` match).
        output_file (str): Also write stdout to this file.

    Action params (verify):
        binary (str) | path (str): What must exist.
        version_argv (list[str]): Command printing the version.
        version_pattern (str): Regex for the version.
        first_line (bool): Use the first output line as the version.
        fact (str): Fact name for the version.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("bash") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.params
        kind = context.action.kind
        if kind == "command":
            if not params.get("argv") and not params.get("script"):
                return False, "Missing required param: 'argv' or 'script'"
            return True, ""
        if kind == "verify":
            if not params.get("binary") and not params.get("path"):
                return False, "Missing required param: 'binary' or 'path'"
            return True, ""
        return False, f"Unsupported step kind for shell adapter: {kind}"

    def describe(self, context: ExecutionContext) -> str:
        params = context.params
        if context.action.kind == "verify":
            target = params.get("binary") or params.get("path")
            text = f"verify {target}"
            if params.get("version_argv"):
                text += f" ({shlex.join(params['version_argv'])})"
            return text

        text = shlex.join(params["argv"]) if params.get("argv") else params["script"]
        if params.get("cwd"):
            text = f"(cd {params['cwd']}) {text}"
        if params.get("needs_root", True) and not context.is_root:
            text = f"sudo {text}"
        return text

    def execute(self, context: ExecutionContext) -> Receipt:
        try:
            if context.action.kind == "verify":
                return self._verify(context)
            return self._command(context)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
            )

    # ── command ─────────────────────────────────────────────────

    def _command(self, ctx: ExecutionContext) -> Receipt:
        params = ctx.params
        argv = params.get("argv") or script_argv(params["script"])
        cwd = params.get("cwd") or ctx.work_dir

        result = ctx.run(
            argv,
            input=params.get("input"),
            cwd=cwd,
            env=params.get("env") or None,
        )
        if not result["ok"]:
            return self._from_result(ctx, result)

        stdout = result["stdout"]

        expect = params.get("expect")
        if expect and expect not in stdout:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Expected {expect!r} in output, got {first_line(stdout)!r}",
                metadata={"stdout": stdout},
            )

        output_file = params.get("output_file")
        if output_file:
            path = Path(output_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(stdout, encoding="utf-8")

        facts = {}
        capture = params.get("capture")
        if capture:
            pattern = params.get("pattern")
            value = parse_version(stdout, pattern) if pattern else stdout.strip()
            if value is None:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=ctx.action.id,
                    error=f"Could not find {pattern!r} in command output",
                    metadata={"stdout": stdout},
                )
            facts[capture] = value

        return self._from_result(ctx, result, facts=facts)

    # ── verify ──────────────────────────────────────────────────

    def _verify(self, ctx: ExecutionContext) -> Receipt:
        params = ctx.params
        binary = params.get("binary")
        path = params.get("path")
        home = os.path.expanduser("~")

        located = ""
        if binary:
            found = find_binary(binary, home)
            if found is None:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=ctx.action.id,
                    error=f"{binary} not found on PATH",
                )
            located = found
        if path:
            if not Path(path).exists():
                return Receipt.failure(
                    adapter=self.name,
                    action_id=ctx.action.id,
                    error=f"{path} does not exist",
                )
            located = located or path

        version_argv = params.get("version_argv")
        if not version_argv:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=located,
            )

        # The checked binary may live outside PATH (e.g. ~/bin)
        if binary and version_argv[0] == binary:
            version_argv = [located, *version_argv[1:]]

        result = ctx.run(version_argv, cwd=ctx.work_dir)
        if not result["ok"]:
            return self._from_result(ctx, result)

        # Some tools (nginx -v, java -version) print to stderr
        text = result["stdout"] or result["stderr"]
        if params.get("first_line"):
            version = first_line(text)
        else:
            version = parse_version(text, params.get("version_pattern"))
        if not version:
            version = first_line(text)

        facts = {params["fact"]: version} if params.get("fact") else {}
        logger.debug("%s version: %s", binary or path, version)
        return self._from_result(ctx, result, facts=facts, output=version)
