"""Resolve the comparison to review and collect its changed files.

Everything here runs once before the terminal UI starts. Failures that
make a review impossible raise the ``ComparisonError`` family.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import replace
from pathlib import Path

from .diff import is_binary_diff, parse_unified_diff
from .errors import GitCommandError, InvalidRangeError, NoUpstreamError, NotARepositoryError
from .model import (
    LINE_ADDED,
    STATUS_ADDED,
    STATUS_COPIED,
    STATUS_DELETED,
    STATUS_MODIFIED,
    STATUS_RENAMED,
    STATUS_TYPE_CHANGED,
    STATUS_UNTRACKED,
    STRATEGY_RANGE,
    ComparisonResult,
    ComparisonSpec,
    FileDescriptor,
    RawHunk,
    RawLine,
    ResolvedComparison,
)
from .text import decode_text, looks_binary, sanitize_terminal_text, split_lines

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3
SHORT_COMMIT_LENGTH = 8
NO_UPSTREAM_MESSAGE = (
    "No upstream branch configured for the current branch. "
    "Use --strategy range --base <git-ref> instead."
)

_STATUS_LETTERS = {
    "A": STATUS_ADDED,
    "M": STATUS_MODIFIED,
    "D": STATUS_DELETED,
    "R": STATUS_RENAMED,
    "C": STATUS_COPIED,
    "T": STATUS_TYPE_CHANGED,
}


def _run_git(repo_root: Path, args: list[str]) -> subprocess.CompletedProcess[bytes]:
    try:
        return subprocess.run(
            ["git", "-C", str(repo_root), *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
        )
    except FileNotFoundError as exc:
        raise NotARepositoryError("git executable not found on PATH") from exc


def _failure_detail(proc: subprocess.CompletedProcess[bytes]) -> str:
    stderr_text = proc.stderr.decode("utf-8", errors="replace").strip()
    return stderr_text or f"exit status {proc.returncode}"


def _git_bytes(repo_root: Path, args: list[str]) -> bytes:
    proc = _run_git(repo_root, args)
    if proc.returncode != 0:
        raise GitCommandError(args, _failure_detail(proc))
    return proc.stdout


def _git_text(repo_root: Path, args: list[str]) -> str:
    return _git_bytes(repo_root, args).decode("utf-8", errors="replace").strip()


def resolve_repository(cwd: Path) -> tuple[Path, Path]:
    """Return ``(repo_root, git_dir)`` for ``cwd``."""
    proc = _run_git(cwd, ["rev-parse", "--show-toplevel", "--git-dir"])
    if proc.returncode != 0:
        raise NotARepositoryError(f"Not a git repository: {cwd} ({_failure_detail(proc)})")

    lines = [line.strip() for line in os.fsdecode(proc.stdout).splitlines() if line.strip()]
    if len(lines) < 2:
        raise NotARepositoryError(f"Not a git repository: {cwd} (bare repositories have no work tree)")
    repo_root = Path(lines[0]).resolve()
    git_dir_raw = Path(lines[1])
    git_dir = git_dir_raw if git_dir_raw.is_absolute() else (cwd / git_dir_raw)
    return repo_root, git_dir.resolve()


def _resolve_commit(repo_root: Path, ref: str) -> str:
    proc = _run_git(repo_root, ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
    if proc.returncode != 0:
        raise InvalidRangeError(ref, proc.stderr.decode("utf-8", errors="replace").strip())
    return proc.stdout.decode("ascii", errors="replace").strip()


def _count_commits(repo_root: Path, revision_range: str) -> int:
    raw = _git_text(repo_root, ["rev-list", "--count", revision_range])
    try:
        return int(raw)
    except ValueError as exc:
        raise GitCommandError(["rev-list", "--count", revision_range], f"unexpected output {raw!r}") from exc


def _with_uncommitted(summary: str, include_uncommitted: bool) -> str:
    return f"{summary} + uncommitted" if include_uncommitted else summary


def _resolve_upstream_ahead(repo_root: Path, spec: ComparisonSpec) -> ResolvedComparison:
    proc = _run_git(repo_root, ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}"])
    if proc.returncode != 0:
        raise NoUpstreamError(NO_UPSTREAM_MESSAGE)
    upstream_ref = proc.stdout.decode("utf-8", errors="replace").strip()

    branch = _git_text(repo_root, ["rev-parse", "--abbrev-ref", "HEAD"])
    _resolve_commit(repo_root, upstream_ref)
    head_commit = _resolve_commit(repo_root, spec.head_ref)
    # Diff against the fork point so commits that only exist upstream stay out of the review.
    base_commit = _git_text(repo_root, ["merge-base", upstream_ref, head_commit])
    ahead = _count_commits(repo_root, f"{upstream_ref}..{spec.head_ref}")
    behind = _count_commits(repo_root, f"{spec.head_ref}..{upstream_ref}")

    return ResolvedComparison(
        strategy=spec.strategy,
        base_ref=upstream_ref,
        head_ref=spec.head_ref,
        base_commit=base_commit,
        head_commit=head_commit,
        summary=_with_uncommitted(f"{upstream_ref}..{spec.head_ref}", spec.include_uncommitted),
        details=(
            f"branch: {branch}",
            f"upstream: {upstream_ref}",
            f"ahead: {ahead}",
            f"behind: {behind}",
        ),
        ahead_count=ahead,
        include_uncommitted=spec.include_uncommitted,
    )


def _resolve_range(repo_root: Path, spec: ComparisonSpec) -> ResolvedComparison:
    base_ref = spec.base_ref or ""
    if not base_ref:
        raise InvalidRangeError("", "range comparisons need a base reference")
    base_commit = _resolve_commit(repo_root, base_ref)
    head_commit = _resolve_commit(repo_root, spec.head_ref)
    commits = _count_commits(repo_root, f"{base_ref}..{spec.head_ref}")

    return ResolvedComparison(
        strategy=spec.strategy,
        base_ref=base_ref,
        head_ref=spec.head_ref,
        base_commit=base_commit,
        head_commit=head_commit,
        summary=_with_uncommitted(f"{base_ref}..{spec.head_ref}", spec.include_uncommitted),
        details=(f"commits in range: {commits}",),
        ahead_count=None,
        include_uncommitted=spec.include_uncommitted,
    )


def resolve_comparison(repo_root: Path, spec: ComparisonSpec) -> ResolvedComparison:
    """Resolve refs for ``spec`` into concrete commits plus header details."""
    if spec.strategy == STRATEGY_RANGE:
        return _resolve_range(repo_root, spec)
    return _resolve_upstream_ahead(repo_root, spec)


def diff_range_args(comparison: ResolvedComparison) -> list[str]:
    """Arguments selecting the two sides of ``git diff``.

    With uncommitted changes the right side is the working tree.
    """
    if comparison.include_uncommitted:
        return [comparison.base_commit]
    return [comparison.base_commit, comparison.head_commit]


def parse_name_status(output: bytes) -> list[FileDescriptor]:
    """Parse ``git diff --name-status -z`` records."""
    tokens = output.split(b"\0")
    descriptors: list[FileDescriptor] = []
    index = 0
    while index < len(tokens):
        raw_status = tokens[index].decode("ascii", errors="replace").strip()
        index += 1
        if not raw_status:
            continue
        status = _STATUS_LETTERS.get(raw_status[0], STATUS_MODIFIED)
        if status in {STATUS_RENAMED, STATUS_COPIED}:
            if index + 1 >= len(tokens):
                break
            prior_path = os.fsdecode(tokens[index])
            path = os.fsdecode(tokens[index + 1])
            index += 2
            descriptors.append(FileDescriptor(path=path, status=status, prior_path=prior_path, raw_status=raw_status))
            continue
        if index >= len(tokens):
            break
        path = os.fsdecode(tokens[index])
        index += 1
        descriptors.append(FileDescriptor(path=path, status=status, raw_status=raw_status))
    return descriptors


def list_changed_files(repo_root: Path, comparison: ResolvedComparison) -> list[FileDescriptor]:
    """Return changed files ordered by path, untracked files included on request."""
    output = _git_bytes(
        repo_root,
        ["diff", "--name-status", "--find-renames", "-z", *diff_range_args(comparison), "--"],
    )
    descriptors = parse_name_status(output)

    if comparison.include_uncommitted:
        listed = {descriptor.path for descriptor in descriptors}
        untracked = _git_bytes(repo_root, ["ls-files", "--others", "--exclude-standard", "-z"])
        for token in untracked.split(b"\0"):
            if not token:
                continue
            path = os.fsdecode(token)
            if path in listed:
                continue
            descriptors.append(FileDescriptor(path=path, status=STATUS_UNTRACKED, raw_status="??"))

    descriptors.sort(key=lambda descriptor: descriptor.path)
    return descriptors


def _untracked_hunks(repo_root: Path, descriptor: FileDescriptor) -> tuple[FileDescriptor, tuple[RawHunk, ...]]:
    try:
        data = (repo_root / descriptor.path).read_bytes()
    except OSError as exc:
        logger.warning("cannot read %s: %s", descriptor.path, exc)
        return descriptor, ()
    if looks_binary(data):
        return replace(descriptor, is_binary=True), ()

    text, degraded = decode_text(data)
    lines = split_lines(text)
    descriptor = replace(descriptor, decode_degraded=degraded)
    if not lines:
        return descriptor, ()
    hunk = RawHunk(
        old_start=0,
        old_count=0,
        new_start=1,
        new_count=len(lines),
        lines=tuple(RawLine(kind=LINE_ADDED, text=sanitize_terminal_text(line)) for line in lines),
    )
    return descriptor, (hunk,)


def load_file_hunks(
    repo_root: Path,
    comparison: ResolvedComparison,
    descriptor: FileDescriptor,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> tuple[FileDescriptor, tuple[RawHunk, ...]]:
    """Return the descriptor (with binary/decoding flags filled in) and its hunks."""
    if descriptor.status == STATUS_UNTRACKED:
        return _untracked_hunks(repo_root, descriptor)

    paths = [descriptor.path]
    if descriptor.prior_path and descriptor.prior_path != descriptor.path:
        paths.insert(0, descriptor.prior_path)
    output = _git_bytes(
        repo_root,
        [
            "diff",
            "--no-color",
            "--no-ext-diff",
            "--find-renames",
            f"--unified={max(0, context_lines)}",
            *diff_range_args(comparison),
            "--",
            *paths,
        ],
    )
    text, degraded = decode_text(output)
    if is_binary_diff(text):
        return replace(descriptor, is_binary=True), ()
    return replace(descriptor, decode_degraded=degraded), tuple(parse_unified_diff(text))


def collect_comparison_result(
    repo_root: Path,
    git_dir: Path,
    comparison: ResolvedComparison,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> ComparisonResult:
    """List changed files and load each file's hunks."""
    descriptors: list[FileDescriptor] = []
    per_file: dict[str, tuple[RawHunk, ...]] = {}
    for descriptor in list_changed_files(repo_root, comparison):
        loaded, hunks = load_file_hunks(repo_root, comparison, descriptor, context_lines)
        descriptors.append(loaded)
        per_file[loaded.path] = hunks
    return ComparisonResult(
        comparison=comparison,
        file_descriptors=tuple(descriptors),
        per_file_raw_diff=per_file,
        repo_root=str(repo_root),
        git_dir=str(git_dir),
    )


def short_commit(commit: str) -> str:
    return commit[:SHORT_COMMIT_LENGTH]
