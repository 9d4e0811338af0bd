"""Tokenize one side of a file into per-line styled spans.

Results are cached per (path, side, theme) so rebuilding a view never
re-runs the lexer; the spans carry foreground styles only.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Sequence

from pygments.styles import get_style_by_name
from pygments.token import Token
from pygments.util import ClassNotFound

from ..model import HighlightSpan, TextStyle
from .grammars import LexerGrammar, NeutralGrammar
from .themes import Theme

TOKEN_CACHE_MAX = 512

LineSpans = tuple[HighlightSpan, ...]

_TOKEN_CACHE: OrderedDict[tuple[str, str, str], tuple[LineSpans, ...]] = OrderedDict()
_STYLE_CLASSES: dict[str, object] = {}
_TOKEN_STYLES: dict[tuple[str, object], TextStyle | None] = {}


def _cache_get(key: tuple[str, str, str]) -> tuple[bool, tuple[LineSpans, ...] | None]:
    if key not in _TOKEN_CACHE:
        return False, None
    cached = _TOKEN_CACHE[key]
    _TOKEN_CACHE.move_to_end(key)
    return True, cached


def _cache_put(key: tuple[str, str, str], value: tuple[LineSpans, ...]) -> None:
    _TOKEN_CACHE[key] = value
    _TOKEN_CACHE.move_to_end(key)
    while len(_TOKEN_CACHE) > TOKEN_CACHE_MAX:
        _TOKEN_CACHE.popitem(last=False)


def clear_token_cache() -> None:
    _TOKEN_CACHE.clear()


def _style_class(name: str):
    style_cls = _STYLE_CLASSES.get(name)
    if style_cls is not None:
        return style_cls
    try:
        style_cls = get_style_by_name(name)
    except ClassNotFound:
        style_cls = get_style_by_name("default")
    _STYLE_CLASSES[name] = style_cls
    return style_cls


def _hex_to_rgb(value: str | None) -> tuple[int, int, int] | None:
    if not value:
        return None
    value = value.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        return None
    try:
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    except ValueError:
        return None


def style_for_token(style_name: str, token_type) -> TextStyle | None:
    """Resolve a token type to foreground attributes, ``None`` when unstyled."""
    key = (style_name, token_type)
    if key in _TOKEN_STYLES:
        return _TOKEN_STYLES[key]
    attrs = _style_class(style_name).style_for_token(token_type)
    style = TextStyle(
        fg=_hex_to_rgb(attrs.get("color")),
        bold=bool(attrs.get("bold")),
        italic=bool(attrs.get("italic")),
        underline=bool(attrs.get("underline")),
    )
    resolved = None if style == TextStyle() else style
    _TOKEN_STYLES[key] = resolved
    return resolved


def tokenize_lines(
    grammar: LexerGrammar | NeutralGrammar,
    lines: Sequence[str],
    theme: Theme,
) -> tuple[LineSpans, ...]:
    """Return one tuple of syntax spans per input line.

    Lines are lexed as one document so multi-line constructs keep their state.
    Plain text and whitespace tokens produce no spans.
    """
    if isinstance(grammar, NeutralGrammar) or not lines:
        return tuple(() for _ in lines)

    per_line: list[list[HighlightSpan]] = [[] for _ in lines]
    text = "\n".join(lines) + "\n"
    line_index = 0
    # Pygments drops a leading byte-order mark before lexing.
    col = 1 if text.startswith("\ufeff") else 0
    for token_type, value in grammar.tokens(text):
        parts = value.split("\n")
        for part_index, part in enumerate(parts):
            if part_index > 0:
                line_index += 1
                col = 0
            if not part:
                continue
            if line_index >= len(lines):
                break
            start = col
            col += len(part)
            if token_type in Token.Text or token_type in Token.Whitespace:
                continue
            style = style_for_token(theme.pygments_style, token_type)
            if style is None:
                continue
            per_line[line_index].append(HighlightSpan(start, col, str(token_type), style))
    return tuple(tuple(spans) for spans in per_line)


def highlight_side(
    path: str,
    side: str,
    grammar: LexerGrammar | NeutralGrammar,
    lines: Sequence[str],
    theme: Theme,
) -> tuple[LineSpans, ...]:
    """Cached :func:`tokenize_lines` keyed by file path, side and theme."""
    key = (path, side, theme.name)
    hit, cached = _cache_get(key)
    if hit and cached is not None and len(cached) == len(lines):
        return cached
    spans = tokenize_lines(grammar, lines, theme)
    _cache_put(key, spans)
    return spans
