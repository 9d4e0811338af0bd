"""Frame buffer of styled terminal cells and its ANSI serialization.

A wide glyph occupies its own cell plus an empty continuation cell;
combining marks are appended to the text of the cell they modify.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..text import expand_glyphs

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class CellStyle:
    fg: RGB | None = None
    bg: RGB | None = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
    reverse: bool = False

    def sgr(self) -> str:
        """Return the SGR sequence that fully resets to this style."""
        params = ["0"]
        if self.bold:
            params.append("1")
        if self.italic:
            params.append("3")
        if self.underline:
            params.append("4")
        if self.reverse:
            params.append("7")
        if self.fg is not None:
            params.append("38;2;{};{};{}".format(*self.fg))
        if self.bg is not None:
            params.append("48;2;{};{};{}".format(*self.bg))
        return "\033[" + ";".join(params) + "m"


PLAIN = CellStyle()


@dataclass(frozen=True)
class Cell:
    text: str = " "
    style: CellStyle = PLAIN


BLANK = Cell()
CONTINUATION_TEXT = ""


class Frame:
    """Fixed-size grid of cells addressed as ``(x, y)``."""

    def __init__(self, width: int, height: int, fill: CellStyle = PLAIN) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        blank = Cell(" ", fill)
        self.rows: list[list[Cell]] = [[blank] * self.width for _ in range(self.height)]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, x: int, y: int) -> Cell:
        return self.rows[y][x]

    def set_cell(self, x: int, y: int, text: str, style: CellStyle) -> None:
        if self.in_bounds(x, y):
            self.rows[y][x] = Cell(text, style)

    def set_wide(self, x: int, y: int, text: str, style: CellStyle) -> None:
        """Place a two-column glyph; it is blanked if the second column is off-frame."""
        if not self.in_bounds(x, y):
            return
        if x + 1 >= self.width:
            self.rows[y][x] = Cell(" ", style)
            return
        self.rows[y][x] = Cell(text, style)
        self.rows[y][x + 1] = Cell(CONTINUATION_TEXT, style)

    def append_combining(self, x: int, y: int, mark: str) -> None:
        if self.in_bounds(x, y):
            current = self.rows[y][x]
            self.rows[y][x] = replace(current, text=current.text + mark)

    def fill(self, x: int, y: int, width: int, style: CellStyle, text: str = " ") -> None:
        for col in range(max(0, x), min(self.width, x + width)):
            self.set_cell(col, y, text, style)

    def put(self, x: int, y: int, text: str, style: CellStyle, max_width: int | None = None) -> int:
        """Write ``text`` starting at column ``x``; returns the column after it.

        Output stops at the frame edge (or ``max_width`` columns); a wide
        glyph that does not fit is replaced by a space.
        """
        if not 0 <= y < self.height:
            return x
        limit = self.width if max_width is None else min(self.width, x + max(0, max_width))
        last_x: int | None = None
        col = x
        for glyph in expand_glyphs(text):
            if glyph.width == 0:
                if last_x is not None:
                    self.append_combining(last_x, y, glyph.text)
                continue
            target = x + glyph.col
            if target >= limit:
                break
            if glyph.text == "\t":
                self.fill(target, y, min(glyph.width, limit - target), style)
                last_x = None
            elif glyph.width == 2:
                if target + 1 >= limit:
                    self.set_cell(target, y, " ", style)
                    last_x = None
                else:
                    self.set_wide(target, y, glyph.text, style)
                    last_x = target
            else:
                self.set_cell(target, y, glyph.text, style)
                last_x = target
            col = min(limit, target + glyph.width)
        return col

    def row_text(self, y: int) -> str:
        return "".join(cell.text for cell in self.rows[y])

    def text_lines(self) -> list[str]:
        return [self.row_text(y) for y in range(self.height)]

    def _row_ansi(self, y: int, color: bool) -> str:
        out: list[str] = []
        current: CellStyle | None = None
        for cell in self.rows[y]:
            if cell.text == CONTINUATION_TEXT:
                continue
            if color and cell.style != current:
                out.append(cell.style.sgr())
                current = cell.style
            out.append(cell.text)
        if color:
            out.append("\033[0m")
        return "".join(out)

    def to_ansi(self, color: bool = True) -> str:
        """Serialize the whole frame with absolute cursor positioning per row."""
        out = ["\033[H"]
        for y in range(self.height):
            out.append(f"\033[{y + 1};1H")
            out.append(self._row_ansi(y, color))
        return "".join(out)

    def to_lines(self, color: bool = True) -> list[str]:
        """Serialize rows for plain stdout output (no cursor movement)."""
        lines: list[str] = []
        for y in range(self.height):
            line = self._row_ansi(y, color)
            lines.append(line if color else line.rstrip())
        return lines
