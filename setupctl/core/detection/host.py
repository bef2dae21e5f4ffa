"""
Host detection — facts about the machine a recipe runs on.

Every fact becomes a template variable (``{codename}``, ``{arch}``,
``{home}``, ``{invoking_user}``, ...). Detection is best-effort and
never raises: unknown values keep their HostFacts defaults.
"""

from __future__ import annotations

import logging
import os
import platform
import pwd
import shutil
import socket
import subprocess
from pathlib import Path

from setupctl.core.detection.service_status import detect_init_system
from setupctl.core.models.host import HostFacts

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

# platform.machine() → dpkg architecture
_DPKG_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armhf",
    "armv6l": "armel",
    "i386": "i386",
    "i686": "i386",
    "ppc64le": "ppc64el",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def parse_os_release(text: str) -> dict[str, str]:
    """Parse the KEY="value" lines of an os-release file."""
    info: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        info[key.strip()] = value.strip().strip('"').strip("'")
    return info


def dpkg_arch(machine: str) -> str:
    """Map a kernel machine name to the dpkg architecture name."""
    return _DPKG_ARCH.get(machine.lower(), machine.lower())


def _lsb_release(flag: str) -> str:
    if not shutil.which("lsb_release"):
        return ""
    try:
        r = subprocess.run(
            ["lsb_release", flag], capture_output=True, text=True, timeout=5,
        )
        return r.stdout.strip() if r.returncode == 0 else ""
    except (OSError, subprocess.SubprocessError):
        return ""


def _home_of(user: str) -> str:
    try:
        return pwd.getpwnam(user).pw_dir
    except KeyError:
        return ""


def detect_host(os_release: Path = OS_RELEASE) -> HostFacts:
    """Detect host facts.

    Distro and release come from ``/etc/os-release``, then
    ``lsb_release``, then :mod:`platform`.
    """
    facts: dict = {}

    # ── Distro ──
    info: dict[str, str] = {}
    try:
        info = parse_os_release(os_release.read_text(encoding="utf-8"))
    except OSError as e:
        logger.debug("Cannot read %s: %s", os_release, e)

    distro = info.get("ID", "")
    release = info.get("VERSION_ID", "")
    codename = info.get("VERSION_CODENAME") or info.get("UBUNTU_CODENAME", "")

    if not release:
        release = _lsb_release("-rs")
    if not codename:
        codename = _lsb_release("-cs")
    if not distro:
        distro = _lsb_release("-is").lower() or platform.system().lower()

    facts["distro"] = distro or "unknown"
    facts["release"] = release or platform.release()
    facts["codename"] = codename

    # ── Machine ──
    machine = platform.machine() or "x86_64"
    facts["machine"] = machine
    facts["arch"] = dpkg_arch(machine)
    facts["system"] = platform.system() or "Linux"
    facts["nproc"] = os.cpu_count() or 1

    try:
        facts["hostname"] = socket.gethostname()
    except OSError:
        pass

    # ── Identity ──
    try:
        is_root = os.geteuid() == 0
    except AttributeError:
        is_root = False
    facts["is_root"] = is_root

    try:
        user = pwd.getpwuid(os.getuid()).pw_name
    except (KeyError, AttributeError):
        user = os.environ.get("USER", "")
    facts["user"] = user

    # Under sudo, user-level files belong to the invoking user
    invoking = os.environ.get("SUDO_USER") if is_root else ""
    facts["invoking_user"] = invoking or user
    home = _home_of(facts["invoking_user"]) if invoking else ""
    facts["home"] = home or os.path.expanduser("~")

    facts["init_system"] = detect_init_system()

    host = HostFacts.model_validate({k: v for k, v in facts.items() if v not in (None, "")})
    logger.debug("Detected host: %s", host.model_dump())
    return host
