"""
Host facts — what the engine knows about the machine it runs on.

Populated once per run by ``core.detection.host.detect_host`` and
exposed to recipe templates as built-in variables.
"""

from __future__ import annotations

from pydantic import BaseModel


class HostFacts(BaseModel):
    """Snapshot of the local host."""

    distro: str = "unknown"        # os-release ID (ubuntu, debian, ...)
    release: str = ""              # lsb_release -rs
    codename: str = ""             # lsb_release -cs
    arch: str = "amd64"            # dpkg --print-architecture
    machine: str = "x86_64"        # uname -m
    system: str = "Linux"          # uname -s
    is_root: bool = False
    user: str = "unknown"
    invoking_user: str = "unknown" # SUDO_USER when running under sudo
    home: str = "/root"
    nproc: int = 1
    hostname: str = "localhost"
    init_system: str = "unknown"

    def as_vars(self) -> dict[str, str | int | bool]:
        """Host facts as template variables."""
        return self.model_dump()
