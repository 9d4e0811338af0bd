"""Screen geometry shared by rendering and mouse hit-testing.

The frame is a fixed header, a body split into two panes around a one
column divider, and a fixed footer. Each pane starts with a line-number
gutter; any odd column left over is padding at the end of the left pane.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from ..model import PANE_LEFT, PANE_RIGHT, DiffFileView
from ..text import display_width, fit_to_width

HEADER_ROWS = 4
FOOTER_ROWS = 3
TITLE_ROW = 0
FILE_STRIP_ROW = 1
IDENTITY_ROW = 2
PANE_TITLE_ROW = 3

DIVIDER_WIDTH = 1
MIN_GUTTER_DIGITS = 4
GUTTER_MARGIN = 1
MIN_WIDTH = 24
MIN_HEIGHT = HEADER_ROWS + FOOTER_ROWS + 2
MAX_STRIP_LABEL_WIDTH = 28


@dataclass(frozen=True)
class FrameLayout:
    width: int
    height: int
    too_small: bool
    viewport_rows: int
    gutter_digits: int
    content_width: int
    left_padding: int  # odd leftover column, drawn after the left pane text

    @property
    def body_top(self) -> int:
        return HEADER_ROWS

    @property
    def footer_top(self) -> int:
        return self.height - FOOTER_ROWS

    @property
    def gutter_width(self) -> int:
        return self.gutter_digits + GUTTER_MARGIN

    @property
    def divider_x(self) -> int:
        return self.gutter_width + self.content_width + self.left_padding

    def pane_x(self, pane: str) -> int:
        """First column of the pane, i.e. of its gutter."""
        return 0 if pane == PANE_LEFT else self.divider_x + DIVIDER_WIDTH

    def content_x(self, pane: str) -> int:
        return self.pane_x(pane) + self.gutter_width

    def is_body_row(self, y: int) -> bool:
        return self.body_top <= y < self.body_top + self.viewport_rows

    def pane_at(self, x: int, y: int) -> str | None:
        """Return the pane under screen cell ``(x, y)``, if it is in the body."""
        if self.too_small or not self.is_body_row(y) or x < 0 or x >= self.width:
            return None
        if x < self.divider_x:
            return PANE_LEFT
        if x >= self.divider_x + DIVIDER_WIDTH:
            return PANE_RIGHT
        return None


def compute_layout(width: int, height: int, max_line_number: int = 0) -> FrameLayout:
    """Split a ``width`` x ``height`` terminal into header, panes and footer.

    Pane content width is ``(width - divider - 2 * gutter) // 2`` where the
    gutter is the line-number field plus one margin column. Widths below the
    minimum usable size set ``too_small`` but still yield sane, non-negative
    numbers so scroll clamping keeps working.
    """
    width = max(0, width)
    height = max(0, height)
    gutter_digits = max(MIN_GUTTER_DIGITS, len(str(max(0, max_line_number))))
    available = width - DIVIDER_WIDTH - 2 * (gutter_digits + GUTTER_MARGIN)
    content_width = max(0, available // 2)
    left_padding = max(0, available - 2 * content_width)
    too_small = width < MIN_WIDTH or height < MIN_HEIGHT or content_width < 1
    return FrameLayout(
        width=width,
        height=height,
        too_small=too_small,
        viewport_rows=max(1, height - HEADER_ROWS - FOOTER_ROWS),
        gutter_digits=gutter_digits,
        content_width=content_width,
        left_padding=left_padding,
    )


def layout_for_view(width: int, height: int, view: DiffFileView | None) -> FrameLayout:
    return compute_layout(width, height, view.max_line_number if view is not None else 0)


@dataclass(frozen=True)
class FileStripEntry:
    index: int
    start: int
    end: int
    label: str


def file_strip_label(index: int, view: DiffFileView) -> str:
    name = PurePosixPath(view.descriptor.path).name or view.descriptor.path
    label = f" {index + 1}:{view.descriptor.badge} {name} "
    if display_width(label) > MAX_STRIP_LABEL_WIDTH:
        label = fit_to_width(label, MAX_STRIP_LABEL_WIDTH - 2) + "… "
    return label


def file_strip_entries(views: Sequence[DiffFileView], active_index: int, width: int) -> list[FileStripEntry]:
    """Lay out the clickable file list, keeping the active entry visible.

    Entries are packed left to right; when they do not all fit, a window
    around ``active_index`` is chosen by growing right first, then left.
    """
    if not views or width <= 0:
        return []
    active_index = max(0, min(active_index, len(views) - 1))
    labels = [file_strip_label(index, view) for index, view in enumerate(views)]
    widths = [display_width(label) for label in labels]

    lo = hi = active_index
    used = widths[active_index]
    while True:
        grew = False
        if hi + 1 < len(views) and used + widths[hi + 1] <= width:
            hi += 1
            used += widths[hi]
            grew = True
        if lo - 1 >= 0 and used + widths[lo - 1] <= width:
            lo -= 1
            used += widths[lo]
            grew = True
        if not grew:
            break

    entries: list[FileStripEntry] = []
    x = 0
    for index in range(lo, hi + 1):
        label = labels[index]
        label_width = min(widths[index], max(0, width - x))
        if label_width <= 0:
            break
        entries.append(FileStripEntry(index=index, start=x, end=x + label_width, label=label))
        x += label_width
    return entries


def file_at_strip_x(views: Sequence[DiffFileView], active_index: int, width: int, x: int) -> int | None:
    for entry in file_strip_entries(views, active_index, width):
        if entry.start <= x < entry.end:
            return entry.index
    return None
