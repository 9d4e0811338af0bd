"""Shared value types for the diff-to-view pipeline.

Everything here is immutable once built: descriptors come from git,
hunks from the parser, rows from the aligner, views from ``deff.view``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property

STATUS_ADDED = "added"
STATUS_MODIFIED = "modified"
STATUS_DELETED = "deleted"
STATUS_RENAMED = "renamed"
STATUS_COPIED = "copied"
STATUS_TYPE_CHANGED = "type-changed"
STATUS_UNTRACKED = "untracked"

STATUS_BADGES = {
    STATUS_ADDED: "A",
    STATUS_MODIFIED: "M",
    STATUS_DELETED: "D",
    STATUS_RENAMED: "R",
    STATUS_COPIED: "C",
    STATUS_TYPE_CHANGED: "T",
    STATUS_UNTRACKED: "?",
}

LINE_CONTEXT = "context"
LINE_REMOVED = "removed"
LINE_ADDED = "added"

ROW_CONTEXT = "context"
ROW_ADDED = "added"
ROW_REMOVED = "removed"
ROW_CHANGED = "changed"
ROW_FILLER = "filler"

PANE_LEFT = "left"
PANE_RIGHT = "right"

SPAN_ADDED_CHAR = "added-char"
SPAN_REMOVED_CHAR = "removed-char"

STRATEGY_UPSTREAM_AHEAD = "upstream-ahead"
STRATEGY_RANGE = "range"

BINARY_PLACEHOLDER = "<binary file preview not available>"


def other_pane(pane: str) -> str:
    return PANE_RIGHT if pane == PANE_LEFT else PANE_LEFT


@dataclass(frozen=True)
class FileDescriptor:
    """One changed file in the comparison, as reported by git."""

    path: str
    status: str
    prior_path: str | None = None
    raw_status: str = ""
    is_binary: bool = False
    decode_degraded: bool = False

    @property
    def display_path(self) -> str:
        if self.prior_path and self.prior_path != self.path:
            return f"{self.prior_path} -> {self.path}"
        return self.path

    @property
    def badge(self) -> str:
        return STATUS_BADGES.get(self.status, "?")

    @property
    def review_key(self) -> str:
        """Stable identity of this change used by the reviewed-files store."""
        return "\0".join((self.raw_status or self.status, self.prior_path or "", self.path))


@dataclass(frozen=True)
class RawLine:
    kind: str
    text: str


@dataclass(frozen=True)
class RawHunk:
    """One ``@@`` block of a unified diff."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: tuple[RawLine, ...] = ()


@dataclass(frozen=True)
class TextStyle:
    """Foreground-only attributes contributed by syntax highlighting."""

    fg: tuple[int, int, int] | None = None
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass(frozen=True)
class HighlightSpan:
    """Half-open character range ``[start, end)`` within a line's text.

    ``category`` is either a diff tint category (``added-char`` /
    ``removed-char``) or a Pygments token type name such as
    ``Token.Keyword``; syntax spans also carry their resolved ``style``.
    """

    start: int
    end: int
    category: str
    style: TextStyle | None = None


@dataclass(frozen=True)
class DisplayLine:
    line_number: int | None
    text: str
    diff_spans: tuple[HighlightSpan, ...] = ()
    syntax_spans: tuple[HighlightSpan, ...] = ()


@dataclass(frozen=True)
class AlignedRow:
    """One row of the two-column view; a ``None`` side is filler."""

    left: DisplayLine | None
    right: DisplayLine | None
    kind: str

    def __post_init__(self) -> None:
        if self.left is None and self.right is None:
            raise ValueError("aligned row needs at least one populated side")

    def side(self, pane: str) -> DisplayLine | None:
        return self.left if pane == PANE_LEFT else self.right

    def side_kind(self, pane: str) -> str:
        """Return the row kind as seen from one pane, ``filler`` for the empty side."""
        if self.side(pane) is None:
            return ROW_FILLER
        return self.kind


@dataclass(frozen=True)
class DiffFileView:
    descriptor: FileDescriptor
    rows: tuple[AlignedRow, ...] = ()
    max_left_width: int = 0
    max_right_width: int = 0
    hunk_starts: tuple[int, ...] = ()
    grammar_name: str = ""
    placeholder: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def max_width(self, pane: str) -> int:
        return self.max_left_width if pane == PANE_LEFT else self.max_right_width

    @cached_property
    def max_line_number(self) -> int:
        highest = 0
        for row in self.rows:
            for line in (row.left, row.right):
                if line is not None and line.line_number is not None:
                    highest = max(highest, line.line_number)
        return highest

    @cached_property
    def change_starts(self) -> tuple[int, ...]:
        """Row indexes where a run of non-context rows begins."""
        starts: list[int] = []
        previous_changed = False
        for index, row in enumerate(self.rows):
            changed = row.kind != ROW_CONTEXT
            if changed and (not previous_changed or index in self.hunk_starts):
                starts.append(index)
            previous_changed = changed
        return tuple(starts)


@dataclass(frozen=True)
class ComparisonSpec:
    """Fully validated comparison request handed over by the CLI."""

    strategy: str = STRATEGY_UPSTREAM_AHEAD
    base_ref: str | None = None
    head_ref: str = "HEAD"
    include_uncommitted: bool = False


@dataclass(frozen=True)
class ResolvedComparison:
    strategy: str
    base_ref: str
    head_ref: str
    base_commit: str
    head_commit: str
    summary: str
    details: tuple[str, ...] = ()
    ahead_count: int | None = None
    include_uncommitted: bool = False

    @property
    def scope_key(self) -> str:
        return "\0".join(
            (self.strategy, self.base_commit, self.head_commit, "1" if self.include_uncommitted else "0")
        )


@dataclass(frozen=True)
class ComparisonResult:
    comparison: ResolvedComparison
    file_descriptors: tuple[FileDescriptor, ...] = ()
    per_file_raw_diff: dict[str, tuple[RawHunk, ...]] = field(default_factory=dict)
    repo_root: str = ""
    git_dir: str = ""
