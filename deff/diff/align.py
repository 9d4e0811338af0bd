"""Turn parsed hunks into equal-height left/right rows.

Removed/added runs are paired positionally from the start of the run.
The pairing is greedy and can match unrelated lines when run lengths
differ sharply.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass

from ..model import (
    LINE_ADDED,
    LINE_CONTEXT,
    LINE_REMOVED,
    ROW_ADDED,
    ROW_CHANGED,
    ROW_CONTEXT,
    ROW_REMOVED,
    SPAN_ADDED_CHAR,
    SPAN_REMOVED_CHAR,
    AlignedRow,
    DisplayLine,
    HighlightSpan,
    RawHunk,
)


@dataclass(frozen=True)
class AlignedFile:
    rows: tuple[AlignedRow, ...]
    hunk_starts: tuple[int, ...]


def _common_prefix_length(left: str, right: str) -> int:
    limit = min(len(left), len(right))
    prefix = 0
    while prefix < limit and left[prefix] == right[prefix]:
        prefix += 1
    # Never end the prefix between a base character and its combining marks.
    while prefix > 0 and (
        (prefix < len(left) and unicodedata.combining(left[prefix]))
        or (prefix < len(right) and unicodedata.combining(right[prefix]))
    ):
        prefix -= 1
    return prefix


def _common_suffix_length(left: str, right: str, prefix: int) -> int:
    limit = min(len(left), len(right)) - prefix
    suffix = 0
    while suffix < limit and left[-1 - suffix] == right[-1 - suffix]:
        suffix += 1
    while suffix > 0 and (
        unicodedata.combining(left[len(left) - suffix]) or unicodedata.combining(right[len(right) - suffix])
    ):
        suffix -= 1
    return suffix


def compute_intraline_spans(
    left: str, right: str
) -> tuple[tuple[HighlightSpan, ...], tuple[HighlightSpan, ...]]:
    """Return ``(removed_spans, added_spans)`` for a changed line pair.

    Everything between the common leading and trailing substrings is marked:
    ``removed-char`` on the left text and ``added-char`` on the right text.
    Identical lines produce no spans.
    """
    if left == right:
        return (), ()
    prefix = _common_prefix_length(left, right)
    suffix = _common_suffix_length(left, right, prefix)
    left_end = len(left) - suffix
    right_end = len(right) - suffix

    left_spans: tuple[HighlightSpan, ...] = ()
    right_spans: tuple[HighlightSpan, ...] = ()
    if left_end > prefix:
        left_spans = (HighlightSpan(prefix, left_end, SPAN_REMOVED_CHAR),)
    if right_end > prefix:
        right_spans = (HighlightSpan(prefix, right_end, SPAN_ADDED_CHAR),)
    return left_spans, right_spans


def _pair_run(removed: list[DisplayLine], added: list[DisplayLine]) -> list[AlignedRow]:
    rows: list[AlignedRow] = []
    for index in range(max(len(removed), len(added))):
        left = removed[index] if index < len(removed) else None
        right = added[index] if index < len(added) else None
        if left is not None and right is not None:
            left_spans, right_spans = compute_intraline_spans(left.text, right.text)
            rows.append(
                AlignedRow(
                    left=DisplayLine(left.line_number, left.text, diff_spans=left_spans),
                    right=DisplayLine(right.line_number, right.text, diff_spans=right_spans),
                    kind=ROW_CHANGED,
                )
            )
        elif left is not None:
            rows.append(AlignedRow(left=left, right=None, kind=ROW_REMOVED))
        else:
            rows.append(AlignedRow(left=None, right=right, kind=ROW_ADDED))
    return rows


def _align_hunk(hunk: RawHunk) -> list[AlignedRow]:
    rows: list[AlignedRow] = []
    removed: list[DisplayLine] = []
    added: list[DisplayLine] = []
    old_no = hunk.old_start
    new_no = hunk.new_start

    for line in hunk.lines:
        if line.kind == LINE_CONTEXT:
            rows.extend(_pair_run(removed, added))
            removed, added = [], []
            rows.append(
                AlignedRow(
                    left=DisplayLine(old_no, line.text),
                    right=DisplayLine(new_no, line.text),
                    kind=ROW_CONTEXT,
                )
            )
            old_no += 1
            new_no += 1
        elif line.kind == LINE_REMOVED:
            if added:
                # A removal after additions starts a new run.
                rows.extend(_pair_run(removed, added))
                removed, added = [], []
            removed.append(DisplayLine(old_no, line.text))
            old_no += 1
        elif line.kind == LINE_ADDED:
            added.append(DisplayLine(new_no, line.text))
            new_no += 1

    rows.extend(_pair_run(removed, added))
    return rows


def align_hunks(hunks: list[RawHunk] | tuple[RawHunk, ...]) -> AlignedFile:
    """Align every hunk of one file and concatenate the rows in order.

    Context between hunks is omitted; ``hunk_starts`` records the first row of
    each non-empty hunk so the renderer and hunk jumps can find boundaries.
    """
    rows: list[AlignedRow] = []
    starts: list[int] = []
    for hunk in hunks:
        hunk_rows = _align_hunk(hunk)
        if not hunk_rows:
            continue
        starts.append(len(rows))
        rows.extend(hunk_rows)
    return AlignedFile(rows=tuple(rows), hunk_starts=tuple(starts))
