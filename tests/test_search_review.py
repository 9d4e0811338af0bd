"""Tests for in-diff search and the reviewed-files store."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from deff.model import (
    ROW_CONTEXT,
    STATUS_MODIFIED,
    AlignedRow,
    DiffFileView,
    DisplayLine,
    FileDescriptor,
    ResolvedComparison,
)
from deff.review import ReviewStore, review_store_path
from deff.search import (
    SearchState,
    begin_search,
    edit_search,
    first_match_index,
    match_ranges,
    matching_rows,
    next_match_index,
    search_status,
)


def _view(texts: list[str]) -> DiffFileView:
    rows = tuple(
        AlignedRow(DisplayLine(i + 1, text), DisplayLine(i + 1, text), ROW_CONTEXT) for i, text in enumerate(texts)
    )
    return DiffFileView(descriptor=FileDescriptor("f.txt", STATUS_MODIFIED), rows=rows)


class SearchTests(unittest.TestCase):
    def test_prompt_editing(self) -> None:
        state = begin_search(SearchState(query="old"))
        self.assertTrue(state.editing)
        for key in "abx":
            state, submitted = edit_search(state, key)
            self.assertFalse(submitted)
        state, _ = edit_search(state, "BACKSPACE")
        self.assertEqual(state.draft, "ab")
        state, submitted = edit_search(state, "ENTER_CR")
        self.assertTrue(submitted)
        self.assertEqual(state, SearchState(query="ab"))

    def test_escape_keeps_previous_query(self) -> None:
        state = begin_search(SearchState(query="keep"))
        state, _ = edit_search(state, "z")
        state, submitted = edit_search(state, "ESC")
        self.assertFalse(submitted)
        self.assertFalse(state.editing)
        self.assertEqual(state.query, "keep")

    def test_matching_is_case_insensitive(self) -> None:
        self.assertEqual(match_ranges("Foo foo FOO", "foo"), [(0, 3), (4, 7), (8, 11)])
        self.assertEqual(match_ranges("abc", ""), [])

    def test_match_index_steps_and_wraps(self) -> None:
        view = _view(["alpha", "beta", "Alpha again", "gamma"])
        self.assertEqual(matching_rows(view, "alpha"), [0, 2])
        self.assertEqual(next_match_index(2, None, 1), 0)
        self.assertEqual(next_match_index(2, None, -1), 1)
        self.assertEqual(next_match_index(2, 0, 1), 1)
        self.assertEqual(next_match_index(2, 1, 1), 0)
        self.assertEqual(next_match_index(2, 0, -1), 1)
        self.assertIsNone(next_match_index(0, None, 1))

    def test_first_match_starts_at_current_row(self) -> None:
        self.assertEqual(first_match_index([3, 8, 12], 0), 0)
        self.assertEqual(first_match_index([3, 8, 12], 8), 1)
        self.assertEqual(first_match_index([3, 8, 12], 13), 0)
        self.assertIsNone(first_match_index([], 0))

    def test_status_text(self) -> None:
        view = _view(["alpha", "beta", "alpha"])
        self.assertEqual(search_status(view, "alpha", 1), "search: /alpha (2/2)")
        self.assertEqual(search_status(view, "alpha", None), "search: /alpha (1/2)")
        self.assertEqual(search_status(view, "zzz", None), "search: /zzz (no matches)")
        self.assertEqual(search_status(view, "", 0), "")


class ReviewStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.git_dir = Path(self._tmp.name)
        self.comparison = ResolvedComparison("range", "main", "HEAD", "a" * 40, "b" * 40, "main..HEAD")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_toggle_persists_per_comparison_scope(self) -> None:
        store = ReviewStore.load(self.git_dir, self.comparison)
        key = FileDescriptor("a.py", STATUS_MODIFIED, raw_status="M").review_key
        self.assertTrue(store.toggle(key))
        self.assertTrue(review_store_path(self.git_dir, self.comparison).is_file())

        reloaded = ReviewStore.load(self.git_dir, self.comparison)
        self.assertTrue(reloaded.is_reviewed(key))
        self.assertFalse(reloaded.is_reviewed("other"))

        other_scope = ResolvedComparison("range", "main", "HEAD", "a" * 40, "c" * 40, "main..HEAD")
        self.assertFalse(ReviewStore.load(self.git_dir, other_scope).is_reviewed(key))

        self.assertFalse(reloaded.toggle(key))
        self.assertFalse(ReviewStore.load(self.git_dir, self.comparison).is_reviewed(key))

    def test_write_failure_degrades_to_memory(self) -> None:
        store = ReviewStore.load(self.git_dir, self.comparison)
        with mock.patch.object(Path, "write_text", side_effect=OSError("read-only")):
            with self.assertLogs("deff.review", level="WARNING"):
                self.assertTrue(store.toggle("k"))
        self.assertIsNone(store.path)
        self.assertTrue(store.is_reviewed("k"))


if __name__ == "__main__":
    unittest.main()
