"""Tests for building per-file view models from hunks."""

from __future__ import annotations

import unittest

from deff.model import (
    BINARY_PLACEHOLDER,
    LINE_ADDED,
    LINE_CONTEXT,
    LINE_REMOVED,
    ROW_CONTEXT,
    STATUS_MODIFIED,
    ComparisonResult,
    FileDescriptor,
    RawHunk,
    RawLine,
    ResolvedComparison,
)
from deff.syntax import GrammarRegistry, load_theme
from deff.syntax.highlight import clear_token_cache
from deff.syntax.themes import THEME_DARK
from deff.view import build_file_view, build_file_views


def _python_hunk() -> RawHunk:
    return RawHunk(
        1,
        2,
        1,
        2,
        (
            RawLine(LINE_CONTEXT, "import os"),
            RawLine(LINE_REMOVED, "x = 1"),
            RawLine(LINE_ADDED, "x = 'a wider line'"),
        ),
    )


class BuildFileViewTests(unittest.TestCase):
    def setUp(self) -> None:
        clear_token_cache()
        self.registry = GrammarRegistry()
        self.theme = load_theme(THEME_DARK, {})

    def test_text_view_has_rows_widths_and_syntax(self) -> None:
        descriptor = FileDescriptor("pkg/mod.py", STATUS_MODIFIED, raw_status="M")
        view = build_file_view(descriptor, [_python_hunk()], self.registry, self.theme)
        self.assertEqual(view.row_count, 2)
        self.assertEqual(view.grammar_name, "Python")
        self.assertEqual(view.max_left_width, len("import os"))
        self.assertEqual(view.max_right_width, len("x = 'a wider line'"))
        self.assertEqual(view.hunk_starts, (0,))
        self.assertTrue(view.rows[0].left.syntax_spans)
        self.assertTrue(view.rows[1].right.syntax_spans)
        self.assertIsNone(view.placeholder)

    def test_binary_file_gets_placeholder_row(self) -> None:
        descriptor = FileDescriptor("logo.png", STATUS_MODIFIED, is_binary=True)
        view = build_file_view(descriptor, [], self.registry, self.theme)
        self.assertEqual(view.placeholder, BINARY_PLACEHOLDER)
        self.assertEqual(view.row_count, 1)
        self.assertEqual(view.rows[0].kind, ROW_CONTEXT)
        self.assertEqual(view.rows[0].left.text, BINARY_PLACEHOLDER)

    def test_degraded_decoding_disables_highlighting(self) -> None:
        descriptor = FileDescriptor("legacy.py", STATUS_MODIFIED, decode_degraded=True)
        view = build_file_view(descriptor, [_python_hunk()], self.registry, self.theme)
        self.assertEqual(view.grammar_name, "plain text")
        self.assertTrue(all(not row.left.syntax_spans for row in view.rows if row.left is not None))

    def test_build_file_views_keeps_comparison_order(self) -> None:
        comparison = ResolvedComparison("range", "a", "b", "a" * 40, "b" * 40, "a..b")
        first = FileDescriptor("b.py", STATUS_MODIFIED)
        second = FileDescriptor("a.txt", STATUS_MODIFIED)
        result = ComparisonResult(
            comparison=comparison,
            file_descriptors=(first, second),
            per_file_raw_diff={"b.py": (_python_hunk(),), "a.txt": ()},
        )
        views = build_file_views(result, self.registry, self.theme)
        self.assertEqual([view.descriptor.path for view in views], ["b.py", "a.txt"])
        self.assertEqual(views[1].row_count, 0)


if __name__ == "__main__":
    unittest.main()
