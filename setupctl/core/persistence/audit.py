"""
Installation history — one NDJSON line per install run.

The ledger lives next to ``state.json`` as ``audit.ndjson``. Lines are
only ever appended; ``setupctl history`` reads them back newest last.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """One install run as recorded in the ledger."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation_type: str = "install"

    recipe: str = ""
    hostname: str = ""
    user: str = ""
    vars: dict[str, Any] = Field(default_factory=dict)

    status: str = ""  # ok, partial, failed
    steps_total: int = 0
    steps_succeeded: int = 0
    steps_failed: int = 0
    steps_skipped: int = 0
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append to and read back an ``audit.ndjson`` ledger.

    Write failures are logged, never raised: losing a history line must
    not turn a finished install into a failed one.
    """

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is None:
            path = (state_dir or Path(".")) / DEFAULT_AUDIT_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # Owner-only, entries can quote failed commands
            fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
            with open(fd, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error("Cannot append to %s: %s", self._path, e)
            return
        logger.debug("Recorded %s run %s in %s", entry.recipe, entry.operation_id, self._path)

    def _lines(self) -> Iterator[tuple[int, str]]:
        if not self._path.is_file():
            return
        try:
            with self._path.open(encoding="utf-8") as f:
                for number, raw in enumerate(f, start=1):
                    if raw.strip():
                        yield number, raw
        except OSError as e:
            logger.error("Cannot read %s: %s", self._path, e)

    def read_all(self, recipe: str | None = None) -> list[AuditEntry]:
        """Entries oldest first, optionally only those for *recipe*.

        Lines that are not valid entries are skipped with a warning.
        """
        entries: list[AuditEntry] = []
        for number, raw in self._lines():
            try:
                entry = AuditEntry.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("%s:%d is not an audit entry: %s", self._path.name, number, e)
                continue
            if recipe is None or entry.recipe == recipe:
                entries.append(entry)
        return entries

    def read_recent(self, n: int = 20, recipe: str | None = None) -> list[AuditEntry]:
        if n <= 0:
            return []
        return self.read_all(recipe)[-n:]

    def entry_count(self) -> int:
        return sum(1 for _ in self._lines())
