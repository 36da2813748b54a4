"""Conflict detection.

Structural checks come first: unmerged paths reported by ``git status`` and
literal marker lines in file content.  Matching words in git's error output
is only the fallback when git gives nothing structural to go on.
"""

from __future__ import annotations

import re

START_MARKER_RE = re.compile(r"^<{7}(?: .*)?$", re.MULTILINE)
SEPARATOR_RE = re.compile(r"^={7}$", re.MULTILINE)
END_MARKER_RE = re.compile(r"^>{7}(?: .*)?$", re.MULTILINE)

CONFLICT_TEXT_RE = re.compile(r"conflict|merge", re.IGNORECASE)


def has_conflict_markers(content: str) -> bool:
    """Return True if ``content`` holds an unresolved merge block.

    A lone ``=======`` line is a setext heading underline in markdown, so a
    start marker and an end marker are both required.
    """
    start = START_MARKER_RE.search(content)
    if start is None:
        return False
    return END_MARKER_RE.search(content, start.end()) is not None


def conflict_marker_lines(content: str) -> list[int]:
    """Return the 1-based line numbers of every marker line in ``content``."""
    if not has_conflict_markers(content):
        return []
    lines: set[int] = set()
    for regex in (START_MARKER_RE, SEPARATOR_RE, END_MARKER_RE):
        for match in regex.finditer(content):
            lines.add(content.count("\n", 0, match.start()) + 1)
    return sorted(lines)


def is_conflict_error(message: str) -> bool:
    """Fallback check on git's error text for conflict or merge wording."""
    return bool(CONFLICT_TEXT_RE.search(message or ""))
