"""
Settings — the contents of setupctl.yml.

Example::

    state_dir: /var/lib/setupctl
    firewall: true
    command_timeout: 300
    recipes:
      nginx:
        port: 8080
      redis:
        install_method: source
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from setupctl.core.models.recipe import ScalarValue

SYSTEM_STATE_DIR = "/var/lib/setupctl"
USER_STATE_DIR = "~/.local/state/setupctl"


class Settings(BaseModel):
    """Validated setupctl.yml."""

    model_config = ConfigDict(extra="forbid")

    state_dir: str | None = None
    work_dir: str | None = None
    firewall: bool = True
    command_timeout: int = Field(default=300, gt=0)
    download_timeout: int = Field(default=600, gt=0)
    recipes: dict[str, dict[str, ScalarValue]] = Field(default_factory=dict)

    def state_path(self, is_root: bool | None = None) -> Path:
        """Directory holding state.json and audit.ndjson."""
        if self.state_dir:
            return Path(self.state_dir).expanduser()
        if is_root is None:
            is_root = os.geteuid() == 0
        return Path(SYSTEM_STATE_DIR if is_root else USER_STATE_DIR).expanduser()

    def work_path(self) -> Path:
        """Scratch directory for downloads and extracted archives."""
        if self.work_dir:
            return Path(self.work_dir).expanduser()
        return Path(tempfile.gettempdir()) / "setupctl"

    def overrides_for(self, recipe_id: str) -> dict[str, ScalarValue]:
        return dict(self.recipes.get(recipe_id, {}))
