"""
Recipe models — the declarative description of one installation.

A recipe is an ordered list of typed steps plus the variables those
steps are rendered with. Recipes are pure data: the engine turns each
step into an Action and an adapter carries it out.

Step fields may contain ``{placeholder}`` tokens. They are rendered at
execution time against host facts, recipe variables and facts captured
by earlier steps.
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

ScalarValue = Union[bool, int, str]

_TRUTHY = {"1", "true", "yes", "on", "y"}
_FALSY = {"0", "false", "no", "off", "n"}


class RecipeVar(BaseModel):
    """A tunable recipe variable (version, port, install method, ...)."""

    name: str
    default: ScalarValue = ""
    description: str = ""
    choices: list[ScalarValue] | None = None

    def coerce(self, raw: Any) -> ScalarValue:
        """Convert a raw value (usually a CLI string) to the default's type.

        Raises:
            ValueError: If the value cannot be converted or is not
                one of ``choices``.
        """
        if isinstance(self.default, bool):
            if isinstance(raw, bool):
                value: ScalarValue = raw
            else:
                text = str(raw).strip().lower()
                if text in _TRUTHY:
                    value = True
                elif text in _FALSY:
                    value = False
                else:
                    raise ValueError(f"{self.name}: expected a boolean, got {raw!r}")
        elif isinstance(self.default, int):
            try:
                value = int(raw)
            except (TypeError, ValueError):
                raise ValueError(f"{self.name}: expected an integer, got {raw!r}") from None
        else:
            value = str(raw)

        if self.choices is not None and value not in self.choices:
            allowed = ", ".join(str(c) for c in self.choices)
            raise ValueError(f"{self.name}: {value!r} is not one of: {allowed}")
        return value


class Condition(BaseModel):
    """Run-time guard for a step. Every field that is set must hold."""

    model_config = ConfigDict(extra="forbid")

    var_equals: dict[str, ScalarValue] = Field(default_factory=dict)
    var_not_equals: dict[str, ScalarValue] = Field(default_factory=dict)
    if_binary: str | None = None
    unless_binary: str | None = None
    if_path: str | None = None
    unless_path: str | None = None
    as_root: bool | None = None


# ── Steps ───────────────────────────────────────────────────────


class StepBase(BaseModel):
    """Fields shared by every step kind."""

    model_config = ConfigDict(extra="forbid")

    adapter: ClassVar[str] = ""

    name: str = ""                   # progress message
    error: str = ""                  # failure message
    when: Condition | None = None
    needs_root: bool = True
    ignore_errors: bool = False
    timeout: int | None = None

    def params(self) -> dict[str, Any]:
        """Step fields as action params (engine-only fields removed)."""
        return self.model_dump(exclude={"name", "when"}, exclude_none=True)


class AptUpdateStep(StepBase):
    adapter: ClassVar[str] = "apt"
    kind: Literal["apt_update"] = "apt_update"


class AptInstallStep(StepBase):
    adapter: ClassVar[str] = "apt"
    kind: Literal["apt_install"] = "apt_install"
    packages: list[str]
    pin: str = ""                    # "latest" or "" means unpinned


class AptCleanStep(StepBase):
    adapter: ClassVar[str] = "apt"
    kind: Literal["apt_clean"] = "apt_clean"


class AptRepoStep(StepBase):
    """Vendor repository: signing key + one source line."""

    adapter: ClassVar[str] = "apt"
    kind: Literal["apt_repo"] = "apt_repo"
    key_url: str
    keyring: str
    dearmor: bool = True
    source: str
    list_file: str


class PpaStep(StepBase):
    adapter: ClassVar[str] = "apt"
    kind: Literal["ppa"] = "ppa"
    ppa: str


class CommandStep(StepBase):
    """Run a command (argv) or a bash script.

    ``expect`` makes the step fail unless the substring appears in stdout.
    ``capture`` stores stdout (or the ``pattern`` match) as a fact.
    """

    adapter: ClassVar[str] = "shell"
    kind: Literal["command"] = "command"
    argv: list[str] | None = None
    script: str | None = None
    cwd: str | None = None
    input: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    expect: str | None = None
    capture: str | None = None
    pattern: str | None = None
    output_file: str | None = None

    @model_validator(mode="after")
    def _one_of_argv_script(self) -> CommandStep:
        if (self.argv is None) == (self.script is None):
            raise ValueError("command step needs exactly one of 'argv' or 'script'")
        return self


class VerifyStep(StepBase):
    """Check that a binary (or path) exists and optionally parse its version."""

    adapter: ClassVar[str] = "shell"
    kind: Literal["verify"] = "verify"
    needs_root: bool = False
    binary: str | None = None
    path: str | None = None
    version_argv: list[str] | None = None
    version_pattern: str | None = None
    first_line: bool = False
    fact: str | None = None

    @model_validator(mode="after")
    def _needs_target(self) -> VerifyStep:
        if not self.binary and not self.path:
            raise ValueError("verify step needs 'binary' or 'path'")
        return self


class Substitution(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pattern: str
    replacement: str


class WriteFileStep(StepBase):
    adapter: ClassVar[str] = "filesystem"
    kind: Literal["write_file"] = "write_file"
    path: str
    content: str
    mode: str | None = None          # octal string, e.g. "640"
    owner: str | None = None         # "user" or "user:group"
    backup: bool = False
    if_missing: bool = False
    require_existing: bool = False


class EditFileStep(StepBase):
    adapter: ClassVar[str] = "filesystem"
    kind: Literal["edit_file"] = "edit_file"
    path: str
    substitutions: list[Substitution]


class AppendLineStep(StepBase):
    adapter: ClassVar[str] = "filesystem"
    kind: Literal["append_line"] = "append_line"
    path: str
    line: str
    marker: str | None = None        # skip when this text is already present


class DirectoryStep(StepBase):
    adapter: ClassVar[str] = "filesystem"
    kind: Literal["directory"] = "directory"
    paths: list[str]
    owner: str | None = None
    mode: str | None = None


class ReadFileStep(StepBase):
    adapter: ClassVar[str] = "filesystem"
    kind: Literal["read_file"] = "read_file"
    path: str
    fact: str


class SystemUserStep(StepBase):
    adapter: ClassVar[str] = "users"
    kind: Literal["system_user"] = "system_user"
    user: str
    create_home: bool = False
    shell: str = "/bin/false"


class GroupMemberStep(StepBase):
    adapter: ClassVar[str] = "users"
    kind: Literal["group_member"] = "group_member"
    group: str
    user: str = "{invoking_user}"


ServiceAction = Literal["daemon-reload", "start", "enable", "restart", "reload", "stop"]


class ServiceStep(StepBase):
    adapter: ClassVar[str] = "systemd"
    kind: Literal["service"] = "service"
    service: str = ""
    actions: list[ServiceAction]


class ServiceCheckStep(StepBase):
    adapter: ClassVar[str] = "systemd"
    kind: Literal["service_check"] = "service_check"
    service: str
    wait_seconds: float = 0


class FirewallStep(StepBase):
    adapter: ClassVar[str] = "firewall"
    kind: Literal["firewall"] = "firewall"
    rules: list[Union[int, str]]


class DownloadStep(StepBase):
    adapter: ClassVar[str] = "download"
    kind: Literal["download"] = "download"
    url: str
    dest: str
    mode: str | None = None
    sha256: str | None = None


class ArchiveStep(StepBase):
    """Download an archive, extract it, move members into place.

    ``install`` maps paths relative to the extraction root onto
    absolute destinations.
    """

    adapter: ClassVar[str] = "download"
    kind: Literal["archive"] = "archive"
    url: str
    format: Literal["tar.gz", "zip"] | None = None
    extract_dir: str | None = None
    install: dict[str, str] = Field(default_factory=dict)


class GithubReleaseStep(StepBase):
    adapter: ClassVar[str] = "download"
    kind: Literal["github_release"] = "github_release"
    needs_root: bool = False
    repo: str
    fact: str = "version"
    strip_v: bool = False


class IncludeStep(StepBase):
    """Placeholder for a shared fragment; expanded when the plan is built."""

    adapter: ClassVar[str] = "engine"
    kind: Literal["include"] = "include"
    fragment: str


Step = Annotated[
    Union[
        AptUpdateStep,
        AptInstallStep,
        AptCleanStep,
        AptRepoStep,
        PpaStep,
        CommandStep,
        VerifyStep,
        WriteFileStep,
        EditFileStep,
        AppendLineStep,
        DirectoryStep,
        ReadFileStep,
        SystemUserStep,
        GroupMemberStep,
        ServiceStep,
        ServiceCheckStep,
        FirewallStep,
        DownloadStep,
        ArchiveStep,
        GithubReleaseStep,
        IncludeStep,
    ],
    Field(discriminator="kind"),
]


class Recipe(BaseModel):
    """One installable piece of software."""

    model_config = ConfigDict(extra="forbid")

    id: str
    label: str
    description: str = ""
    category: str = "misc"
    privilege: Literal["root", "any", "user"] = "root"
    platforms: list[str] = Field(default_factory=lambda: ["ubuntu"])
    aliases: list[str] = Field(default_factory=list)
    vars: list[RecipeVar] = Field(default_factory=list)
    user_vars: dict[str, ScalarValue] = Field(default_factory=dict)
    steps: list[Step]
    services: list[str] = Field(default_factory=list)
    usage_title: str = ""
    usage: list[str] = Field(default_factory=list)

    def var(self, name: str) -> RecipeVar | None:
        for v in self.vars:
            if v.name == name:
                return v
        return None

    def defaults(self) -> dict[str, ScalarValue]:
        """Declared variable defaults."""
        return {v.name: v.default for v in self.vars}

    @model_validator(mode="after")
    def _user_vars_declared(self) -> Recipe:
        names = {v.name for v in self.vars}
        unknown = sorted(set(self.user_vars) - names)
        if unknown:
            raise ValueError(f"user_vars names undeclared vars: {', '.join(unknown)}")
        return self
