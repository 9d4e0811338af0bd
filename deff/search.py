"""In-diff text search across both panes of the active file.

Matching is case-insensitive. ``n``/``N`` step through the match list by
index and wrap around at either end.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .model import DiffFileView


@dataclass(frozen=True)
class SearchState:
    """Committed query plus the prompt draft while ``/`` is being typed.

    ``match_index`` is the position of the current hit in the active file's
    match list; it is ``None`` until the first jump.
    """

    query: str = ""
    editing: bool = False
    draft: str = ""
    match_index: int | None = None


def begin_search(state: SearchState) -> SearchState:
    return replace(state, editing=True, draft="")


def edit_search(state: SearchState, key: str) -> tuple[SearchState, bool]:
    """Feed one key to the search prompt.

    Returns the new state and whether a query was just submitted.
    """
    if key in {"ENTER_CR", "ENTER_LF"}:
        return SearchState(query=state.draft, editing=False, draft=""), True
    if key in {"ESC", "CTRL_C"}:
        return replace(state, editing=False, draft=""), False
    if key == "BACKSPACE":
        if not state.draft:
            return replace(state, editing=False), False
        return replace(state, draft=state.draft[:-1]), False
    if len(key) == 1 and key.isprintable():
        return replace(state, draft=state.draft + key), False
    return state, False


def match_ranges(text: str, query: str) -> list[tuple[int, int]]:
    """Character ranges of case-insensitive, non-overlapping ``query`` hits in ``text``."""
    if not query:
        return []
    haystack = text.lower()
    needle = query.lower()
    # Lowercasing can change length for a few characters; offsets would drift.
    if len(haystack) != len(text) or not needle:
        return []
    ranges: list[tuple[int, int]] = []
    start = haystack.find(needle)
    while start >= 0:
        ranges.append((start, start + len(needle)))
        start = haystack.find(needle, start + len(needle))
    return ranges


def row_matches(view: DiffFileView, row_index: int, query: str) -> bool:
    row = view.rows[row_index]
    needle = query.lower()
    for line in (row.left, row.right):
        if line is not None and needle in line.text.lower():
            return True
    return False


def matching_rows(view: DiffFileView | None, query: str) -> list[int]:
    if view is None or not query or view.placeholder is not None:
        return []
    return [index for index in range(view.row_count) if row_matches(view, index, query)]


def first_match_index(rows: list[int], from_row: int) -> int | None:
    """Index of the first match at or below ``from_row``, wrapping to the top."""
    if not rows:
        return None
    for index, row in enumerate(rows):
        if row >= from_row:
            return index
    return 0


def next_match_index(match_count: int, current: int | None, direction: int) -> int | None:
    """Step through ``match_count`` matches from ``current``, wrapping at both ends."""
    if match_count <= 0:
        return None
    if current is None:
        return 0 if direction >= 0 else match_count - 1
    step = 1 if direction >= 0 else -1
    return (current + step) % match_count


def search_status(view: DiffFileView | None, query: str, match_index: int | None) -> str:
    """Status-line text such as ``search: /foo (2/5)``."""
    if not query:
        return ""
    rows = matching_rows(view, query)
    if not rows:
        return f"search: /{query} (no matches)"
    position = min(match_index or 0, len(rows) - 1) + 1
    return f"search: /{query} ({position}/{len(rows)})"
