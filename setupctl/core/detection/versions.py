"""
Version-string parsing.

Tools print their versions in many shapes::

    nginx version: nginx/1.24.0
    Server version: Apache/2.4.58 (Ubuntu)
    Version: 0.50.1
    v0.23.0

``parse_version`` pulls the interesting part out of that output.
"""

from __future__ import annotations

import re

# 1.2 / 1.2.3 / v0.23.0 / 10.4.1.88267 / 2.51.0-rc.1
_VERSION_RE = re.compile(r"v?(\d+(?:\.\d+)+(?:[-+][0-9A-Za-z.]+)?)")


def parse_version(text: str | None, pattern: str | None = None) -> str | None:
    """Extract a version string from tool output.

    Args:
        text: Raw command output.
        pattern: Optional regex. Its first capture group is returned,
            or the whole match when there is none or it did not take part.

    Returns:
        The version string, or None if nothing matched.
    """
    if not text:
        return None

    if pattern:
        m = re.search(pattern, text, re.MULTILINE)
        if not m:
            return None
        # An optional group that took no part in the match yields None
        value = m.group(1) if m.groups() and m.group(1) is not None else m.group(0)
        return value.strip() or None

    m = _VERSION_RE.search(text)
    return m.group(1) if m else None


def first_line(text: str | None) -> str:
    """First non-empty line of output (``head -n 1``)."""
    if not text:
        return ""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""
