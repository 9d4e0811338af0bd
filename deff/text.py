"""Unicode-aware text measurement and column slicing.

Widths follow terminal cell rules: combining marks take no columns, East
Asian wide/fullwidth glyphs take two, and tabs expand to fixed stops.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

TAB_STOP = 4
BINARY_SNIFF_BYTES = 8192

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")


@dataclass(frozen=True)
class Glyph:
    """One source character placed at display column ``col``.

    ``index`` is the character offset in the original text, so highlight
    spans (which are expressed in characters) can be mapped onto cells.
    """

    text: str
    col: int
    width: int
    index: int


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``.

    Tabs expand to the next 4-column stop, combining marks consume no columns,
    and East Asian wide/fullwidth characters consume two.
    """
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def display_width(text: str) -> int:
    col = 0
    for ch in text:
        col += char_display_width(ch, col)
    return col


def expand_glyphs(text: str) -> list[Glyph]:
    """Place every character of ``text`` on the display-column axis."""
    glyphs: list[Glyph] = []
    col = 0
    for index, ch in enumerate(text):
        width = char_display_width(ch, col)
        glyphs.append(Glyph(text=ch, col=col, width=width, index=index))
        col += width
    return glyphs


def visible_glyphs(text: str, start_col: int, max_cols: int) -> list[tuple[int, Glyph | None]]:
    """Return the glyphs visible in a ``max_cols`` wide window at ``start_col``.

    Each entry is ``(viewport_col, glyph)``. A glyph that would straddle either
    window edge is not drawn; its visible columns are reported with ``None`` so
    callers paint a blank cell instead of half a wide character. Tabs are
    reported once per visible column they cover, and zero-width glyphs share
    the column of the character they combine with.
    """
    if max_cols <= 0:
        return []
    start_col = max(0, start_col)
    end_col = start_col + max_cols
    out: list[tuple[int, Glyph | None]] = []
    drawn_through = -1
    for glyph in expand_glyphs(text):
        if glyph.width == 0:
            # Combining marks ride on the cell of the character they follow.
            if out and drawn_through == glyph.index - 1:
                out.append((out[-1][0], glyph))
                drawn_through = glyph.index
            continue
        if glyph.col >= end_col:
            break
        glyph_end = glyph.col + glyph.width
        if glyph_end <= start_col:
            continue
        if glyph.text == "\t":
            for col in range(max(glyph.col, start_col), min(glyph_end, end_col)):
                out.append((col - start_col, glyph))
            drawn_through = glyph.index
            continue
        if glyph.col < start_col or glyph_end > end_col:
            for col in range(max(glyph.col, start_col), min(glyph_end, end_col)):
                out.append((col - start_col, None))
            continue
        out.append((glyph.col - start_col, glyph))
        drawn_through = glyph.index
    return out


def slice_columns(text: str, start_col: int, max_cols: int) -> str:
    """Return the plain text shown in a horizontal window over ``text``.

    The result never exceeds ``max_cols`` display columns; partially visible
    wide glyphs become spaces and tabs become the spaces they expand to.
    """
    out: list[str] = []
    for _col, glyph in visible_glyphs(text, start_col, max_cols):
        if glyph is None or glyph.text == "\t":
            out.append(" ")
        else:
            out.append(glyph.text)
    return "".join(out)


def fit_to_width(text: str, width: int) -> str:
    """Clip ``text`` to ``width`` columns and right-pad it with spaces."""
    clipped = slice_columns(text, 0, width)
    return clipped + " " * max(0, width - display_width(clipped))


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def split_lines(text: str) -> list[str]:
    """Split file content into lines, normalizing CRLF and dropping the final newline."""
    if not text:
        return []
    normalized = text.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def looks_binary(data: bytes) -> bool:
    return b"\0" in data[:BINARY_SNIFF_BYTES]


def decode_text(data: bytes) -> tuple[str, bool]:
    """Decode bytes as UTF-8, returning ``(text, degraded)``.

    ``degraded`` is true when replacement characters had to be substituted.
    """
    try:
        return data.decode("utf-8"), False
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace"), True
