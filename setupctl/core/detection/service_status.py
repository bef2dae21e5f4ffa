"""
Live service status.

Read-only: ``systemctl show`` and ``systemctl is-active``.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path


def detect_init_system() -> str:
    """Detect the init system (systemd, openrc, initd, or unknown)."""
    if Path("/run/systemd/system").exists():
        return "systemd"
    if shutil.which("rc-service"):
        return "openrc"
    if Path("/etc/init.d").exists():
        return "initd"
    return "unknown"


def get_service_status(service: str) -> dict:
    """Get service status (systemd only).

    Returns active state, sub-state and load state for systemd services.
    Other init systems report ``active=None``.
    """
    init = detect_init_system()

    if init == "systemd":
        result: dict = {}
        try:
            r = subprocess.run(
                ["systemctl", "show", service,
                 "--property=ActiveState,SubState,LoadState"],
                capture_output=True, text=True, timeout=5,
            )
            for line in r.stdout.splitlines():
                key, _, val = line.strip().partition("=")
                if key:
                    result[key.lower()] = val
        except (OSError, subprocess.SubprocessError):
            pass

        return {
            "service": service,
            "init_system": "systemd",
            "active": result.get("activestate") == "active",
            "state": result.get("activestate", "unknown"),
            "sub_state": result.get("substate", "unknown"),
            "loaded": result.get("loadstate") == "loaded",
        }

    return {
        "service": service,
        "init_system": init,
        "active": None,
        "state": "unknown",
        "sub_state": "unknown",
        "loaded": None,
    }
