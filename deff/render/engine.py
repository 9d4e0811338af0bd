"""Pure frame renderer for the side-by-side diff screen.

``render_frame`` turns terminal size, the active file view and the
navigation state into a ``Frame``; it performs no I/O. Diff tints own the
cell background, syntax styles only contribute foreground attributes.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass

from ..git import short_commit
from ..model import (
    PANE_LEFT,
    PANE_RIGHT,
    ROW_ADDED,
    ROW_CHANGED,
    ROW_FILLER,
    ROW_REMOVED,
    SPAN_ADDED_CHAR,
    SPAN_REMOVED_CHAR,
    STATUS_ADDED,
    STATUS_DELETED,
    STATUS_RENAMED,
    STATUS_TYPE_CHANGED,
    STATUS_UNTRACKED,
    AlignedRow,
    DiffFileView,
    FileDescriptor,
    HighlightSpan,
    ResolvedComparison,
)
from ..navigation.state import NavigationState, ScrollState
from ..search import match_ranges
from ..syntax.themes import RGB, Theme
from ..text import display_width, visible_glyphs
from .frame import CellStyle, Frame
from .layout import (
    FILE_STRIP_ROW,
    IDENTITY_ROW,
    MIN_HEIGHT,
    MIN_WIDTH,
    PANE_TITLE_ROW,
    TITLE_ROW,
    FrameLayout,
    file_strip_entries,
    layout_for_view,
)

HELP_TEXT = (
    " j/k line  ^d/^u page  g/G top/bottom  h/l pan  Tab pane  [/] file  {/} change"
    "  / search  n/N match  r reviewed  q quit"
)
DIVIDER_CHAR = "│"
HUNK_DIVIDER_CHAR = "┼"
RULE_CHAR = "─"
MIN_CONTRAST = 70
NO_FILES_MESSAGE = "no changed files"


@dataclass(frozen=True)
class FrameChrome:
    """Session facts shown around the panes (header, strip and status line)."""

    views: Sequence[DiffFileView] = ()
    comparison: ResolvedComparison | None = None
    reviewed: frozenset[int] = frozenset()
    search_query: str = ""
    prompt: str | None = None
    status_message: str = ""


class _SpanIndex:
    """Lookup of the span covering a character index (spans must not overlap)."""

    def __init__(self, spans: Sequence[HighlightSpan]) -> None:
        self.spans = sorted(spans, key=lambda span: span.start)
        self.starts = [span.start for span in self.spans]

    def at(self, index: int) -> HighlightSpan | None:
        pos = bisect_right(self.starts, index) - 1
        if pos >= 0 and index < self.spans[pos].end:
            return self.spans[pos]
        return None


def _luminance(color: RGB) -> float:
    return 0.299 * color[0] + 0.587 * color[1] + 0.114 * color[2]


def _readable_fg(fg: RGB | None, bg: RGB | None, theme: Theme) -> RGB:
    """Fall back to the default foreground when a token color vanishes on its tint."""
    if fg is None:
        return theme.default_fg
    if bg is not None and abs(_luminance(fg) - _luminance(bg)) < MIN_CONTRAST:
        return theme.default_fg
    return fg


def _row_tint(kind: str, pane: str, theme: Theme) -> RGB | None:
    if kind == ROW_FILLER:
        return theme.filler_bg
    if kind == ROW_ADDED:
        return theme.added_bg
    if kind == ROW_REMOVED:
        return theme.removed_bg
    if kind == ROW_CHANGED:
        return theme.removed_bg if pane == PANE_LEFT else theme.added_bg
    return None


def _char_tint(category: str, theme: Theme) -> RGB | None:
    if category == SPAN_REMOVED_CHAR:
        return theme.removed_char_bg
    if category == SPAN_ADDED_CHAR:
        return theme.added_char_bg
    return None


def empty_view_message(descriptor: FileDescriptor) -> str:
    if descriptor.status == STATUS_RENAMED:
        return f"renamed from {descriptor.prior_path} without content changes"
    if descriptor.status in {STATUS_ADDED, STATUS_UNTRACKED}:
        return "empty file added"
    if descriptor.status == STATUS_DELETED:
        return "empty file deleted"
    if descriptor.status == STATUS_TYPE_CHANGED:
        return "file type or mode changed"
    return "no textual changes"


def _put_centered(frame: Frame, y: int, text: str, style: CellStyle) -> None:
    width = display_width(text)
    x = max(0, (frame.width - width) // 2)
    frame.put(x, y, text, style)


def _draw_gutter(
    frame: Frame,
    layout: FrameLayout,
    y: int,
    pane: str,
    row: AlignedRow,
    theme: Theme,
) -> None:
    line = row.side(pane)
    kind = row.side_kind(pane)
    tint = _row_tint(kind, pane, theme)
    x = layout.pane_x(pane)
    number = ""
    if line is not None and line.line_number is not None:
        number = str(line.line_number)
    frame.put(x, y, number.rjust(layout.gutter_digits), CellStyle(fg=theme.gutter_fg, bg=tint))
    sign = " "
    sign_fg = theme.gutter_fg
    if pane == PANE_LEFT and kind in {ROW_REMOVED, ROW_CHANGED}:
        sign, sign_fg = "-", theme.removed_fg
    elif pane == PANE_RIGHT and kind in {ROW_ADDED, ROW_CHANGED}:
        sign, sign_fg = "+", theme.added_fg
    frame.set_cell(x + layout.gutter_digits, y, sign, CellStyle(fg=sign_fg, bg=tint, bold=sign != " "))


def _draw_content(
    frame: Frame,
    layout: FrameLayout,
    y: int,
    pane: str,
    row: AlignedRow,
    offset: int,
    theme: Theme,
    search_query: str,
) -> None:
    line = row.side(pane)
    tint = _row_tint(row.side_kind(pane), pane, theme)
    x0 = layout.content_x(pane)
    width = layout.content_width + (layout.left_padding if pane == PANE_LEFT else 0)
    base = CellStyle(fg=theme.default_fg, bg=tint)
    frame.fill(x0, y, width, base)
    if line is None:
        return

    diff_index = _SpanIndex(line.diff_spans)
    syntax_index = _SpanIndex(line.syntax_spans)
    hits = match_ranges(line.text, search_query)
    for viewport_col, glyph in visible_glyphs(line.text, offset, layout.content_width):
        x = x0 + viewport_col
        if glyph is None:
            frame.set_cell(x, y, " ", base)
            continue
        if glyph.width == 0:
            frame.append_combining(x, y, glyph.text)
            continue

        diff_span = diff_index.at(glyph.index)
        bg = _char_tint(diff_span.category, theme) if diff_span is not None else tint
        if any(start <= glyph.index < end for start, end in hits):
            bg = theme.search_bg
        syntax_span = syntax_index.at(glyph.index)
        syntax_style = syntax_span.style if syntax_span is not None else None
        style = CellStyle(
            fg=_readable_fg(syntax_style.fg if syntax_style else None, bg, theme),
            bg=bg,
            bold=bool(syntax_style and syntax_style.bold),
            italic=bool(syntax_style and syntax_style.italic),
            underline=bool(syntax_style and syntax_style.underline),
        )
        if glyph.text == "\t":
            frame.set_cell(x, y, " ", style)
        elif glyph.width == 2:
            frame.set_wide(x, y, glyph.text, style)
        else:
            frame.set_cell(x, y, glyph.text, style)


def _draw_body(
    frame: Frame,
    layout: FrameLayout,
    view: DiffFileView,
    scroll: ScrollState,
    theme: Theme,
    search_query: str,
) -> None:
    if view.row_count == 0:
        middle = layout.body_top + layout.viewport_rows // 2
        _put_centered(frame, middle, empty_view_message(view.descriptor), CellStyle(fg=theme.dim_fg, italic=True))
        return

    divider_style = CellStyle(fg=theme.divider_fg)
    hunk_starts = set(view.hunk_starts)
    first = scroll.vertical
    last = min(view.row_count, first + layout.viewport_rows)
    for row_index in range(first, last):
        y = layout.body_top + (row_index - first)
        row = view.rows[row_index]
        for pane in (PANE_LEFT, PANE_RIGHT):
            _draw_gutter(frame, layout, y, pane, row, theme)
            _draw_content(frame, layout, y, pane, row, scroll.horizontal(pane), theme, search_query)
        divider = HUNK_DIVIDER_CHAR if row_index in hunk_starts and row_index > 0 else DIVIDER_CHAR
        frame.set_cell(layout.divider_x, y, divider, divider_style)
    for y in range(layout.body_top + (last - first), layout.body_top + layout.viewport_rows):
        frame.set_cell(layout.divider_x, y, DIVIDER_CHAR, divider_style)


def _title_text(comparison: ResolvedComparison | None) -> str:
    if comparison is None:
        return " deff"
    parts = [f" deff  {comparison.summary}", f"[{comparison.strategy}]"]
    parts.extend(comparison.details)
    return "  ".join(parts)


def _draw_header(
    frame: Frame,
    layout: FrameLayout,
    view: DiffFileView,
    nav: NavigationState,
    theme: Theme,
    chrome: FrameChrome,
) -> None:
    chrome_style = CellStyle(fg=theme.chrome_fg, bg=theme.chrome_bg)
    frame.fill(0, TITLE_ROW, frame.width, chrome_style)
    frame.put(0, TITLE_ROW, _title_text(chrome.comparison), CellStyle(fg=theme.chrome_fg, bg=theme.chrome_bg, bold=True))

    views = chrome.views or (view,)
    for entry in file_strip_entries(views, nav.active_file_index, frame.width):
        if entry.index == nav.active_file_index:
            style = CellStyle(fg=theme.chrome_fg, bg=theme.chrome_bg, bold=True, underline=True)
        elif entry.index in chrome.reviewed:
            style = CellStyle(fg=theme.added_fg)
        else:
            style = CellStyle(fg=theme.dim_fg)
        frame.put(entry.start, FILE_STRIP_ROW, entry.label, style, max_width=entry.end - entry.start)

    descriptor = view.descriptor
    total = len(views)
    reviewed_here = nav.active_file_index in chrome.reviewed
    x = frame.put(0, IDENTITY_ROW, f" [{descriptor.badge}] ", CellStyle(fg=theme.accent_fg, bold=True))
    x = frame.put(x, IDENTITY_ROW, descriptor.display_path, CellStyle(fg=theme.chrome_fg, bold=True))
    details = f"  {nav.active_file_index + 1}/{total}  {view.grammar_name}"
    if descriptor.decode_degraded:
        details += "  (not UTF-8, highlighting off)"
    x = frame.put(x, IDENTITY_ROW, details, CellStyle(fg=theme.dim_fg))
    mark = "  [reviewed]" if reviewed_here else "  [unreviewed]"
    x = frame.put(x, IDENTITY_ROW, mark, CellStyle(fg=theme.added_fg if reviewed_here else theme.removed_fg))
    frame.put(x, IDENTITY_ROW, f"  reviewed {len(chrome.reviewed)}/{total}", CellStyle(fg=theme.dim_fg))

    rule_style = CellStyle(fg=theme.divider_fg)
    frame.fill(0, PANE_TITLE_ROW, frame.width, rule_style, RULE_CHAR)
    frame.set_cell(layout.divider_x, PANE_TITLE_ROW, "┬", rule_style)
    comparison = chrome.comparison
    base_ref = short_commit(comparison.base_commit) if comparison else "base"
    if comparison is None:
        head_ref = "head"
    elif comparison.include_uncommitted:
        head_ref = "working tree"
    else:
        head_ref = short_commit(comparison.head_commit)
    left_path = descriptor.prior_path or descriptor.path
    titles = {
        PANE_LEFT: f" {left_path} @ {base_ref} ",
        PANE_RIGHT: f" {descriptor.path} @ {head_ref} ",
    }
    if descriptor.status in {STATUS_ADDED, STATUS_UNTRACKED}:
        titles[PANE_LEFT] = " (not in base) "
    if descriptor.status == STATUS_DELETED:
        titles[PANE_RIGHT] = " (deleted) "
    for pane, title in titles.items():
        active = pane == nav.active_pane
        style = CellStyle(fg=theme.accent_fg, bold=True) if active else CellStyle(fg=theme.dim_fg)
        x0 = layout.pane_x(pane) + 1
        span = layout.gutter_width + layout.content_width - 1
        frame.put(x0, PANE_TITLE_ROW, title, style, max_width=max(0, span))


def _position_text(view: DiffFileView, nav: NavigationState, layout: FrameLayout) -> str:
    scroll = nav.active_scroll
    total = view.row_count
    first = scroll.vertical + 1 if total else 0
    last = min(total, scroll.vertical + layout.viewport_rows)
    max_left = max(0, view.max_left_width - layout.content_width)
    max_right = max(0, view.max_right_width - layout.content_width)
    return (
        f"{nav.active_pane} pane  lines {first}-{last}/{total}"
        f"  x {scroll.left}/{max_left} {scroll.right}/{max_right} "
    )


def _draw_footer(
    frame: Frame,
    layout: FrameLayout,
    view: DiffFileView,
    nav: NavigationState,
    theme: Theme,
    chrome: FrameChrome,
) -> None:
    rule_style = CellStyle(fg=theme.divider_fg)
    top = layout.footer_top
    frame.fill(0, top, frame.width, rule_style, RULE_CHAR)
    frame.set_cell(layout.divider_x, top, "┴", rule_style)
    frame.put(0, top + 1, HELP_TEXT, CellStyle(fg=theme.dim_fg))

    status_y = top + 2
    frame.fill(0, status_y, frame.width, CellStyle(fg=theme.chrome_fg, bg=theme.chrome_bg))
    position = _position_text(view, nav, layout)
    position_x = max(0, frame.width - display_width(position))
    if chrome.prompt is not None:
        message = f" /{chrome.prompt}_"
    else:
        message = f" {chrome.status_message}" if chrome.status_message else ""
    frame.put(0, status_y, message, CellStyle(fg=theme.chrome_fg, bg=theme.chrome_bg), max_width=position_x)
    frame.put(position_x, status_y, position, CellStyle(fg=theme.chrome_fg, bg=theme.chrome_bg))


def render_too_small(width: int, height: int, theme: Theme) -> Frame:
    frame = Frame(width, height)
    if frame.height == 0 or frame.width == 0:
        return frame
    message = f"terminal too small ({width}x{height}, need {MIN_WIDTH}x{MIN_HEIGHT})"
    _put_centered(frame, frame.height // 2, message, CellStyle(fg=theme.dim_fg))
    return frame


def render_frame(
    width: int,
    height: int,
    view: DiffFileView | None,
    nav: NavigationState,
    theme: Theme,
    chrome: FrameChrome | None = None,
) -> Frame:
    """Render one full screen for the active ``view`` at ``nav``'s offsets."""
    chrome = chrome or FrameChrome()
    layout = layout_for_view(width, height, view)
    if layout.too_small:
        return render_too_small(width, height, theme)

    frame = Frame(width, height)
    if view is None:
        _put_centered(frame, height // 2, NO_FILES_MESSAGE, CellStyle(fg=theme.dim_fg, italic=True))
        return frame
    _draw_header(frame, layout, view, nav, theme, chrome)
    _draw_body(frame, layout, view, nav.active_scroll, theme, chrome.search_query)
    _draw_footer(frame, layout, view, nav, theme, chrome)
    return frame
