"""
APT adapter — package indexes, packages and vendor repositories.

Step kinds:
    apt_update    apt-get update -y
    apt_install   apt-get install -y <packages>[=<pin>]
    apt_clean     apt-get clean
    apt_repo      fetch a signing key (optionally dearmored) and write
                  the repository's source line
    ppa           apt-add-repository --yes --update <ppa>
"""

from __future__ import annotations

import posixpath
import shlex
import shutil

from setupctl.adapters.base import Adapter, ExecutionContext, format_commands
from setupctl.core.models.action import Receipt

_NONINTERACTIVE = ["env", "DEBIAN_FRONTEND=noninteractive"]


def key_commands(key_url: str, keyring: str, dearmor: bool = True) -> list[list[str]]:
    """Commands that install a repository signing key into ``keyring``."""
    commands = [["install", "-d", "-m", "0755", posixpath.dirname(keyring) or "/"]]
    if dearmor:
        pipeline = (
            f"curl -fsSL {shlex.quote(key_url)}"
            f" | gpg --dearmor --yes -o {shlex.quote(keyring)}"
        )
        commands.append(["bash", "-e", "-o", "pipefail", "-c", pipeline])
    else:
        commands.append(["curl", "-fsSL", key_url, "-o", keyring])
    commands.append(["chmod", "644", keyring])
    return commands


def source_command(source: str, list_file: str) -> list[str]:
    """Command that writes one source line to an apt list file."""
    return ["bash", "-c", f"printf '%s\\n' {shlex.quote(source)} > {shlex.quote(list_file)}"]


def pinned(packages: list[str], pin: str) -> list[str]:
    """Apply a version pin (``pkg=ver``) unless unpinned or ``latest``."""
    if not pin or pin == "latest":
        return list(packages)
    return [f"{p}={pin}" for p in packages]


class AptAdapter(Adapter):
    """Debian/Ubuntu package management through apt-get."""

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        kind = context.action.kind
        params = context.params
        if kind == "apt_install" and not params.get("packages"):
            return False, "Missing required param: 'packages'"
        if kind == "apt_repo":
            for key in ("key_url", "keyring", "source", "list_file"):
                if not params.get(key):
                    return False, f"Missing required param: '{key}'"
        if kind == "ppa" and not params.get("ppa"):
            return False, "Missing required param: 'ppa'"
        if kind not in {"apt_update", "apt_install", "apt_clean", "apt_repo", "ppa"}:
            return False, f"Unsupported step kind for apt adapter: {kind}"
        return True, ""

    def commands(self, context: ExecutionContext) -> list[list[str]]:
        kind = context.action.kind
        params = context.params
        if kind == "apt_update":
            return [["apt-get", "update", "-y"]]
        if kind == "apt_install":
            packages = pinned(params["packages"], params.get("pin", ""))
            return [[*_NONINTERACTIVE, "apt-get", "install", "-y", *packages]]
        if kind == "apt_clean":
            return [["apt-get", "clean"]]
        if kind == "apt_repo":
            return [
                *key_commands(params["key_url"], params["keyring"], params.get("dearmor", True)),
                source_command(params["source"], params["list_file"]),
            ]
        return [["apt-add-repository", "--yes", "--update", params["ppa"]]]

    def describe(self, context: ExecutionContext) -> str:
        return format_commands(self.commands(context))

    def execute(self, context: ExecutionContext) -> Receipt:
        return self._run_all(context, self.commands(context))
