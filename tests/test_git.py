"""Integration tests for comparison resolution against real git repositories.

Each test builds a throwaway repository; the whole module is skipped when
the ``git`` executable is not available.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from deff.errors import InvalidRangeError, NoUpstreamError, NotARepositoryError
from deff.git import (
    NO_UPSTREAM_MESSAGE,
    collect_comparison_result,
    list_changed_files,
    parse_name_status,
    resolve_comparison,
    resolve_repository,
)
from deff.model import (
    LINE_ADDED,
    STATUS_ADDED,
    STATUS_MODIFIED,
    STATUS_RENAMED,
    STATUS_UNTRACKED,
    STRATEGY_RANGE,
    STRATEGY_UPSTREAM_AHEAD,
    ComparisonSpec,
)

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def _git(repo: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", "-C", str(repo), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=True,
    )
    return proc.stdout.decode("utf-8").strip()


class ParseNameStatusTests(unittest.TestCase):
    def test_renames_consume_two_paths(self) -> None:
        output = b"M\0a.py\0R087\0old.txt\0new.txt\0A\0dir/n\xc3\xa9.md\0"
        descriptors = parse_name_status(output)
        self.assertEqual([d.path for d in descriptors], ["a.py", "new.txt", "dir/né.md"])
        self.assertEqual(descriptors[1].status, STATUS_RENAMED)
        self.assertEqual(descriptors[1].prior_path, "old.txt")
        self.assertEqual(descriptors[1].raw_status, "R087")
        self.assertEqual(descriptors[2].status, STATUS_ADDED)


@unittest.skipUnless(shutil.which("git"), "git executable not available")
class ComparisonResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self._env = mock.patch.dict(os.environ, GIT_ENV)
        self._env.start()
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name).resolve()
        self.repo = self.tmp / "repo"
        self.repo.mkdir()
        _git(self.repo, "init", "-q")
        _git(self.repo, "checkout", "-q", "-b", "main")
        self._write("a.py", "def f():\n    return 1\n")
        self._write("b.txt", "".join(f"line {index}\n" for index in range(20)))
        _git(self.repo, "add", "-A")
        _git(self.repo, "commit", "-q", "-m", "base")

    def tearDown(self) -> None:
        self._tmp.cleanup()
        self._env.stop()

    def _write(self, rel: str, text: str) -> None:
        path = self.repo / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def _second_commit(self) -> None:
        self._write("a.py", "def f():\n    return 2\n")
        _git(self.repo, "mv", "b.txt", "c.txt")
        (self.repo / "blob.bin").write_bytes(b"\x00\x01\x02binary")
        _git(self.repo, "add", "-A")
        _git(self.repo, "commit", "-q", "-m", "second")

    def test_resolve_repository_from_subdirectory(self) -> None:
        sub = self.repo / "pkg"
        sub.mkdir()
        root, git_dir = resolve_repository(sub)
        self.assertEqual(root, self.repo)
        self.assertEqual(git_dir, self.repo / ".git")

    def test_outside_repository_is_fatal(self) -> None:
        outside = self.tmp / "plain"
        outside.mkdir()
        with mock.patch.dict(os.environ, {"GIT_CEILING_DIRECTORIES": str(self.tmp)}):
            with self.assertRaises(NotARepositoryError):
                resolve_repository(outside)

    def test_range_comparison_lists_and_loads_files(self) -> None:
        self._second_commit()
        comparison = resolve_comparison(self.repo, ComparisonSpec(STRATEGY_RANGE, base_ref="HEAD~1"))
        self.assertEqual(comparison.summary, "HEAD~1..HEAD")
        self.assertEqual(comparison.details, ("commits in range: 1",))
        self.assertEqual(comparison.head_commit, _git(self.repo, "rev-parse", "HEAD"))

        result = collect_comparison_result(self.repo, self.repo / ".git", comparison)
        by_path = {d.path: d for d in result.file_descriptors}
        self.assertEqual(sorted(by_path), ["a.py", "blob.bin", "c.txt"])
        self.assertEqual(by_path["a.py"].status, STATUS_MODIFIED)
        self.assertEqual(by_path["c.txt"].status, STATUS_RENAMED)
        self.assertEqual(by_path["c.txt"].prior_path, "b.txt")
        self.assertTrue(by_path["blob.bin"].is_binary)
        self.assertEqual(result.per_file_raw_diff["c.txt"], ())

        hunk = result.per_file_raw_diff["a.py"][0]
        self.assertEqual([line.text for line in hunk.lines if line.kind == LINE_ADDED], ["    return 2"])

    def test_invalid_ref_names_the_ref(self) -> None:
        with self.assertRaises(InvalidRangeError) as caught:
            resolve_comparison(self.repo, ComparisonSpec(STRATEGY_RANGE, base_ref="no-such-branch"))
        self.assertEqual(caught.exception.ref, "no-such-branch")
        self.assertIn("no-such-branch", str(caught.exception))

    def test_missing_upstream_is_fatal(self) -> None:
        with self.assertRaises(NoUpstreamError) as caught:
            resolve_comparison(self.repo, ComparisonSpec(STRATEGY_UPSTREAM_AHEAD))
        self.assertEqual(str(caught.exception), NO_UPSTREAM_MESSAGE)

    def test_upstream_ahead_counts_local_commits(self) -> None:
        _git(self.repo, "branch", "base")
        _git(self.repo, "branch", "--set-upstream-to=base", "main")
        base_commit = _git(self.repo, "rev-parse", "HEAD")
        self._second_commit()

        comparison = resolve_comparison(self.repo, ComparisonSpec(STRATEGY_UPSTREAM_AHEAD))
        self.assertEqual(comparison.base_ref, "base")
        self.assertEqual(comparison.base_commit, base_commit)
        self.assertEqual(comparison.ahead_count, 1)
        self.assertIn("branch: main", comparison.details)
        self.assertIn("behind: 0", comparison.details)

    def test_uncommitted_changes_include_untracked_files(self) -> None:
        self._write("a.py", "def f():\n    return 3\n")
        self._write("notes/new.md", "# title\nbody\n")
        comparison = resolve_comparison(
            self.repo, ComparisonSpec(STRATEGY_RANGE, base_ref="HEAD", include_uncommitted=True)
        )
        self.assertTrue(comparison.summary.endswith("+ uncommitted"))

        descriptors = list_changed_files(self.repo, comparison)
        self.assertEqual(
            [(d.path, d.status) for d in descriptors],
            [("a.py", STATUS_MODIFIED), ("notes/new.md", STATUS_UNTRACKED)],
        )

        result = collect_comparison_result(self.repo, self.repo / ".git", comparison)
        hunks = result.per_file_raw_diff["notes/new.md"]
        self.assertEqual(len(hunks), 1)
        self.assertEqual([line.text for line in hunks[0].lines], ["# title", "body"])
        self.assertTrue(all(line.kind == LINE_ADDED for line in hunks[0].lines))


if __name__ == "__main__":
    unittest.main()
