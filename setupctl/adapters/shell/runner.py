"""
Subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called. Privilege
escalation, output capture and timeouts are handled here.

Sudo rules:
- Password piped via stdin only (``sudo -S``)
- ``-k`` invalidates cached credentials every time
- Password never logged and never part of the command args
- Without a password, ``sudo -n`` fails fast instead of prompting
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

OUTPUT_LIMIT = 2000


def _tail(text: str | None, limit: int | None) -> str:
    if not text:
        return ""
    return text if limit is None else text[-limit:]


def run_command(
    argv: list[str],
    *,
    needs_root: bool = False,
    sudo_password: str = "",
    is_root: bool | None = None,
    input: str | None = None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: int = 300,
    limit: int | None = OUTPUT_LIMIT,
) -> dict[str, Any]:
    """Run a command, escalating with sudo when required.

    Args:
        argv: Command list for ``subprocess.run()``.
        needs_root: Whether the command requires root.
        sudo_password: Sudo password (piped to stdin).
        is_root: Override for the effective-uid check.
        input: Text fed to the command's stdin.
        cwd: Working directory for the command.
        env: Extra environment variables.
        timeout: Seconds before ``TimeoutExpired``.
        limit: Keep only the last ``limit`` characters of stdout and
            stderr; None keeps everything (file contents read back).

    Returns:
        ``{"ok", "stdout", "stderr", "returncode", "error", "elapsed_ms"}``.
        ``error`` is empty on success.
    """
    if is_root is None:
        is_root = os.geteuid() == 0

    cmd = list(argv)
    stdin_data = input
    escalated = needs_root and not is_root
    if escalated:
        if sudo_password:
            cmd = ["sudo", "-S", "-k", *cmd]
            stdin_data = sudo_password + "\n" + (input or "")
        else:
            cmd = ["sudo", "-n", *cmd]

    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    logger.debug("Running: %s (cwd=%s)", shlex.join(argv), cwd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            input=stdin_data,
            env=full_env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {
            "ok": False,
            "stdout": "",
            "stderr": "",
            "returncode": None,
            "error": f"Command timed out ({timeout}s): {shlex.join(argv)}",
            "elapsed_ms": int((time.monotonic() - start) * 1000),
        }
    except OSError as e:
        return {
            "ok": False,
            "stdout": "",
            "stderr": "",
            "returncode": None,
            "error": f"Cannot run {argv[0]}: {e}",
            "elapsed_ms": int((time.monotonic() - start) * 1000),
        }

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = _tail(result.stdout, limit)
    stderr = _tail(result.stderr, limit)

    if result.returncode == 0:
        return {
            "ok": True,
            "stdout": stdout,
            "stderr": stderr,
            "returncode": 0,
            "error": "",
            "elapsed_ms": elapsed_ms,
        }

    error = f"Command failed (exit {result.returncode}): {shlex.join(argv)}"
    lowered = stderr.lower()
    if escalated and ("incorrect password" in lowered or "a password is required" in lowered):
        error = "sudo authentication failed (use --ask-sudo-password or run as root)"

    logger.debug("Command failed (exit %d): %s", result.returncode, stderr.strip())
    return {
        "ok": False,
        "stdout": stdout,
        "stderr": stderr,
        "returncode": result.returncode,
        "error": error,
        "elapsed_ms": elapsed_ms,
    }
