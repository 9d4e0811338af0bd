"""Grammar resolution, themes and token spans for the diff panes."""

from __future__ import annotations

from .grammars import GrammarRegistry, LexerGrammar, NeutralGrammar, load_user_grammars, syntax_search_dirs
from .highlight import highlight_side, tokenize_lines
from .themes import THEME_AUTO, THEME_DARK, THEME_LIGHT, THEME_MODES, Theme, load_theme, resolve_theme_mode

__all__ = [
    "GrammarRegistry",
    "LexerGrammar",
    "NeutralGrammar",
    "THEME_AUTO",
    "THEME_DARK",
    "THEME_LIGHT",
    "THEME_MODES",
    "Theme",
    "highlight_side",
    "load_theme",
    "load_user_grammars",
    "resolve_theme_mode",
    "syntax_search_dirs",
    "tokenize_lines",
]
