"""
Users adapter — service accounts and group membership.

Step kinds:
    system_user    useradd -r [-m] -s <shell> <user>, unless it exists
    group_member   usermod -aG <group> <user>
"""

from __future__ import annotations

import pwd
import shutil

from setupctl.adapters.base import Adapter, ExecutionContext, format_commands
from setupctl.core.models.action import Receipt


def user_exists(user: str) -> bool:
    try:
        pwd.getpwnam(user)
        return True
    except KeyError:
        return False


class UsersAdapter(Adapter):
    """Create system users and manage group membership."""

    @property
    def name(self) -> str:
        return "users"

    def is_available(self) -> bool:
        return shutil.which("useradd") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        kind = context.action.kind
        params = context.params
        if kind not in {"system_user", "group_member"}:
            return False, f"Unsupported step kind for users adapter: {kind}"
        if not params.get("user"):
            return False, "Missing required param: 'user'"
        if kind == "group_member" and not params.get("group"):
            return False, "Missing required param: 'group'"
        return True, ""

    def commands(self, context: ExecutionContext) -> list[list[str]]:
        params = context.params
        if context.action.kind == "group_member":
            return [["usermod", "-aG", params["group"], params["user"]]]

        argv = ["useradd", "-r"]
        if params.get("create_home"):
            argv.append("-m")
        argv += ["-s", params.get("shell") or "/bin/false", params["user"]]
        return [argv]

    def describe(self, context: ExecutionContext) -> str:
        text = format_commands(self.commands(context))
        if context.action.kind == "system_user":
            return f"{text}  (unless {context.params['user']} exists)"
        return text

    def execute(self, context: ExecutionContext) -> Receipt:
        user = context.params["user"]
        if context.action.kind == "system_user" and user_exists(user):
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=f"User {user} already exists",
                metadata={"created": False},
            )
        return self._run_all(context, self.commands(context))
