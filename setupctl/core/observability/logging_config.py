"""
Process-wide logging for setupctl.

``setup_logging()`` runs once from the CLI group callback; modules only
ever call ``logging.getLogger(__name__)``.

Level precedence:
    --debug / --verbose / --quiet  >  SETUPCTL_LOG_LEVEL  >  WARNING

A second, independently levelled copy of the log can be written to
SETUPCTL_LOG_FILE (level from SETUPCTL_LOG_FILE_LEVEL).

Recipes pass passwords through command lines (MySQL root password,
``sudo -S`` input), so every handler carries a ``SecretMasker`` that
replaces registered secret values with ``***`` before formatting.
The same masker cleans run reports before they are printed, saved
to state or appended to the audit ledger.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import Any

MASK = "***"

# (format, datefmt) per console verbosity
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


class SecretMasker(logging.Filter):
    """Replace known secret strings in a record's rendered message."""

    def __init__(self) -> None:
        super().__init__()
        self._secrets: set[str] = set()

    def add(self, *values: str) -> None:
        for value in values:
            # Very short values would mask ordinary words
            if value and len(value) >= 3:
                self._secrets.add(value)

    def clear(self) -> None:
        self._secrets.clear()

    @property
    def secrets(self) -> frozenset[str]:
        return frozenset(self._secrets)

    def mask(self, text: str) -> str:
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._secrets, key=len, reverse=True):
            text = text.replace(secret, MASK)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if self._secrets:
            message = record.getMessage()
            masked = self.mask(message)
            if masked != message:
                record.msg = masked
                record.args = None
        return True


_masker = SecretMasker()


def register_secrets(values: Iterable[str]) -> None:
    """Mask *values* in every log line emitted from now on."""
    _masker.add(*values)


def is_secret_name(name: str) -> bool:
    """Variables and facts named like this never leave the process unmasked."""
    return name.endswith(("password", "_token", "_secret"))


def mask_secrets(text: str | None) -> str | None:
    if not text:
        return text
    return _masker.mask(text)


def redact(value: Any) -> Any:
    """Copy of *value* safe to print or persist.

    Secret-named dict keys get ``***``; registered secret values are
    masked inside every string.
    """
    if isinstance(value, dict):
        return {
            k: MASK if isinstance(k, str) and is_secret_name(k) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact(v) for v in value]
    if isinstance(value, str):
        return _masker.mask(value)
    return value


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a log file to append to.
        log_file_level: Level for the file handler; defaults to ``level``.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(*_console_format(console_level)))
    console.addFilter(_masker)
    root.addHandler(console)

    root_level = console_level
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root_level = min(root_level, file_level)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        file_handler.addFilter(_masker)
        root.addHandler(file_handler)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    if level <= logging.DEBUG:
        return _CONSOLE_FORMATS[logging.DEBUG]
    if level <= logging.INFO:
        return _CONSOLE_FORMATS[logging.INFO]
    return _CONSOLE_FORMATS[logging.WARNING]


def _parse_level(level: str | None) -> int:
    """Level name to number; anything unrecognised means WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
