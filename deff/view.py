"""Build the immutable per-file view model.

Aligns a file's hunks, picks its grammar, and attaches syntax spans to
every display line. Binary files short-circuit to one placeholder row.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from .diff import align_hunks
from .model import (
    BINARY_PLACEHOLDER,
    PANE_LEFT,
    PANE_RIGHT,
    ROW_CONTEXT,
    AlignedRow,
    ComparisonResult,
    DiffFileView,
    DisplayLine,
    FileDescriptor,
    RawHunk,
)
from .syntax import GrammarRegistry, NeutralGrammar, Theme, highlight_side
from .text import display_width

logger = logging.getLogger(__name__)


def _placeholder_view(descriptor: FileDescriptor, message: str) -> DiffFileView:
    line = DisplayLine(None, message)
    width = display_width(message)
    return DiffFileView(
        descriptor=descriptor,
        rows=(AlignedRow(left=line, right=line, kind=ROW_CONTEXT),),
        max_left_width=width,
        max_right_width=width,
        grammar_name="binary",
        placeholder=message,
    )


def _first_lines(rows: Sequence[AlignedRow]) -> list[str]:
    found: list[str] = []
    for pane in (PANE_RIGHT, PANE_LEFT):
        for row in rows:
            line = row.side(pane)
            if line is not None and line.line_number == 1:
                found.append(line.text)
                break
    return found


def build_file_view(
    descriptor: FileDescriptor,
    hunks: Sequence[RawHunk],
    registry: GrammarRegistry,
    theme: Theme,
) -> DiffFileView:
    """Align, highlight and measure one changed file."""
    if descriptor.is_binary:
        return _placeholder_view(descriptor, BINARY_PLACEHOLDER)

    aligned = align_hunks(hunks)
    rows = aligned.rows
    if descriptor.decode_degraded:
        grammar = NeutralGrammar()
        logger.debug("%s is not valid UTF-8; highlighting disabled", descriptor.path)
    else:
        grammar = registry.resolve(descriptor.path, descriptor.prior_path, _first_lines(rows))

    left_lines = [row.left.text for row in rows if row.left is not None]
    right_lines = [row.right.text for row in rows if row.right is not None]
    left_spans = iter(highlight_side(descriptor.path, PANE_LEFT, grammar, left_lines, theme))
    right_spans = iter(highlight_side(descriptor.path, PANE_RIGHT, grammar, right_lines, theme))

    styled: list[AlignedRow] = []
    max_left = 0
    max_right = 0
    for row in rows:
        left = row.left
        right = row.right
        if left is not None:
            left = replace(left, syntax_spans=next(left_spans))
            max_left = max(max_left, display_width(left.text))
        if right is not None:
            right = replace(right, syntax_spans=next(right_spans))
            max_right = max(max_right, display_width(right.text))
        styled.append(AlignedRow(left=left, right=right, kind=row.kind))

    return DiffFileView(
        descriptor=descriptor,
        rows=tuple(styled),
        max_left_width=max_left,
        max_right_width=max_right,
        hunk_starts=aligned.hunk_starts,
        grammar_name=grammar.name,
    )


def build_file_views(
    result: ComparisonResult,
    registry: GrammarRegistry,
    theme: Theme,
) -> list[DiffFileView]:
    """Build views for every descriptor in comparison order."""
    views: list[DiffFileView] = []
    for descriptor in result.file_descriptors:
        hunks = result.per_file_raw_diff.get(descriptor.path, ())
        views.append(build_file_view(descriptor, hunks, registry, theme))
    return views
