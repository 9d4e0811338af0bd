r"""Parse ``git diff --unified`` output into immutable hunks.

Only the hunk bodies matter here; file headers, index lines and
``\ No newline at end of file`` markers are skipped.
"""

from __future__ import annotations

import re

from ..model import LINE_ADDED, LINE_CONTEXT, LINE_REMOVED, RawHunk, RawLine
from ..text import sanitize_terminal_text

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_BINARY_MARKERS = ("Binary files ", "GIT binary patch")

_LINE_KINDS = {
    " ": LINE_CONTEXT,
    "-": LINE_REMOVED,
    "+": LINE_ADDED,
}


def is_binary_diff(diff_text: str) -> bool:
    """Return whether git reported the file pair as binary instead of hunks."""
    for raw_line in diff_text.splitlines():
        if _HUNK_RE.match(raw_line):
            return False
        if raw_line.startswith(_BINARY_MARKERS):
            return True
    return False


def parse_unified_diff(diff_text: str) -> list[RawHunk]:
    """Split unified diff text into hunks with tagged lines.

    Lines are consumed per hunk according to the header counts, so a body line
    that happens to start with ``---`` or ``+++`` is still treated as content.
    """
    hunks: list[RawHunk] = []
    lines = diff_text.replace("\r\n", "\n").split("\n")
    index = 0
    while index < len(lines):
        match = _HUNK_RE.match(lines[index])
        index += 1
        if not match:
            continue

        old_start = int(match.group(1))
        old_count = int(match.group(2) or "1")
        new_start = int(match.group(3))
        new_count = int(match.group(4) or "1")
        old_left = old_count
        new_left = new_count
        body: list[RawLine] = []
        while index < len(lines) and (old_left > 0 or new_left > 0):
            raw_line = lines[index]
            if raw_line.startswith("\\"):
                index += 1
                continue
            kind = _LINE_KINDS.get(raw_line[:1])
            if kind is None:
                if raw_line == "" and old_left > 0 and new_left > 0:
                    # Some tools strip the single space from blank context lines.
                    kind = LINE_CONTEXT
                else:
                    break
            index += 1
            body.append(RawLine(kind=kind, text=sanitize_terminal_text(raw_line[1:])))
            if kind != LINE_ADDED:
                old_left -= 1
            if kind != LINE_REMOVED:
                new_left -= 1

        while index < len(lines) and lines[index].startswith("\\"):
            index += 1

        hunks.append(
            RawHunk(
                old_start=old_start,
                old_count=old_count,
                new_start=new_start,
                new_count=new_count,
                lines=tuple(body),
            )
        )
    return hunks
