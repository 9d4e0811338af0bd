"""Tests for the review bootstrap helpers that run outside the terminal."""

from __future__ import annotations

import logging
import unittest

from deff.model import (
    ROW_CONTEXT,
    STATUS_MODIFIED,
    AlignedRow,
    DiffFileView,
    DisplayLine,
    FileDescriptor,
    ResolvedComparison,
)
from deff.runtime.app import buffered_log_output, empty_comparison_message, render_static
from deff.syntax import load_theme
from deff.syntax.themes import THEME_DARK


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


class EmptyComparisonMessageTests(unittest.TestCase):
    def test_upstream_without_local_commits(self) -> None:
        comparison = ResolvedComparison(
            "upstream-ahead", "origin/main", "HEAD", "a" * 40, "a" * 40, "origin/main..HEAD", ahead_count=0
        )
        self.assertEqual(empty_comparison_message(comparison), "No local commits ahead of origin/main.")

    def test_range_without_changes(self) -> None:
        comparison = ResolvedComparison("range", "v1", "HEAD", "a" * 40, "b" * 40, "v1..HEAD")
        self.assertEqual(empty_comparison_message(comparison), "No changed files found for v1..HEAD.")


class RenderStaticTests(unittest.TestCase):
    def test_every_file_is_printed_at_full_height(self) -> None:
        theme = load_theme(THEME_DARK, {})
        views = []
        for name in ("one.txt", "two.txt"):
            rows = tuple(
                AlignedRow(DisplayLine(i + 1, f"{name} {i}"), DisplayLine(i + 1, f"{name} {i}"), ROW_CONTEXT)
                for i in range(12)
            )
            views.append(DiffFileView(descriptor=FileDescriptor(name, STATUS_MODIFIED), rows=rows))
        comparison = ResolvedComparison("range", "v1", "HEAD", "a" * 40, "b" * 40, "v1..HEAD")

        output = render_static(views, theme, comparison, width=80, color=False)

        self.assertNotIn("\033[", output)
        self.assertIn("one.txt 11", output)
        self.assertIn("two.txt 0", output)
        self.assertEqual(output.count("v1..HEAD"), 2)


class BufferedLogOutputTests(unittest.TestCase):
    def test_records_are_released_after_the_block(self) -> None:
        log = logging.getLogger("deff.tests.buffered")
        handler = _ListHandler()
        log.addHandler(handler)
        log.setLevel(logging.INFO)
        log.propagate = False
        try:
            with buffered_log_output("deff.tests.buffered"):
                log.warning("while drawing")
                self.assertEqual(handler.messages, [])
                self.assertNotIn(handler, log.handlers)
            self.assertEqual(handler.messages, ["while drawing"])
            self.assertEqual(log.handlers, [handler])
        finally:
            log.removeHandler(handler)


if __name__ == "__main__":
    unittest.main()
