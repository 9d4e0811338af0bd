"""Dark/light theme selection and the palettes that go with them.

A theme pairs a Pygments style (token foregrounds) with the RGB tints used
for diff backgrounds and screen chrome. It is chosen once at startup.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

THEME_AUTO = "auto"
THEME_DARK = "dark"
THEME_LIGHT = "light"
THEME_MODES = (THEME_AUTO, THEME_DARK, THEME_LIGHT)

THEME_ENV_VAR = "DEFF_THEME"

DARK_STYLE_CANDIDATES = ("github-dark", "monokai", "native")
LIGHT_STYLE_CANDIDATES = ("friendly", "default")

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Theme:
    """Resolved palette for one session."""

    name: str
    pygments_style: str
    default_fg: RGB
    added_bg: RGB
    removed_bg: RGB
    added_char_bg: RGB
    removed_char_bg: RGB
    filler_bg: RGB
    chrome_bg: RGB
    chrome_fg: RGB
    accent_fg: RGB
    dim_fg: RGB
    gutter_fg: RGB
    divider_fg: RGB
    added_fg: RGB
    removed_fg: RGB
    search_bg: RGB


DARK_PALETTE = dict(
    default_fg=(212, 212, 212),
    added_bg=(24, 46, 32),
    removed_bg=(60, 30, 34),
    added_char_bg=(36, 92, 58),
    removed_char_bg=(118, 46, 54),
    filler_bg=(32, 32, 36),
    chrome_bg=(38, 42, 52),
    chrome_fg=(220, 223, 228),
    accent_fg=(97, 175, 239),
    dim_fg=(128, 132, 142),
    gutter_fg=(100, 104, 114),
    divider_fg=(72, 76, 86),
    added_fg=(120, 200, 130),
    removed_fg=(230, 110, 110),
    search_bg=(128, 104, 24),
)

LIGHT_PALETTE = dict(
    default_fg=(36, 41, 47),
    added_bg=(230, 255, 236),
    removed_bg=(255, 235, 233),
    added_char_bg=(172, 238, 187),
    removed_char_bg=(255, 192, 192),
    filler_bg=(243, 243, 245),
    chrome_bg=(234, 236, 240),
    chrome_fg=(36, 41, 47),
    accent_fg=(9, 105, 218),
    dim_fg=(110, 119, 129),
    gutter_fg=(140, 149, 159),
    divider_fg=(208, 215, 222),
    added_fg=(26, 127, 55),
    removed_fg=(207, 34, 46),
    search_bg=(255, 223, 93),
)

_RESOLVED_STYLES: dict[str, str] = {}


def _parse_colorfgbg(value: str) -> str | None:
    """Interpret ``COLORFGBG`` (``fg;bg`` or ``fg;default;bg``) as dark or light."""
    parts = [part.strip() for part in value.split(";") if part.strip()]
    if not parts:
        return None
    try:
        background = int(parts[-1])
    except ValueError:
        return None
    if 0 <= background <= 6 or background == 8:
        return THEME_DARK
    return THEME_LIGHT


def resolve_theme_mode(requested: str, environ: Mapping[str, str] | None = None) -> str:
    """Collapse ``auto`` into ``dark`` or ``light``.

    Explicit modes win. ``auto`` consults the ``DEFF_THEME`` override, then the
    terminal's ``COLORFGBG`` hint, and finally defaults to dark.
    """
    if requested in {THEME_DARK, THEME_LIGHT}:
        return requested
    env = os.environ if environ is None else environ

    override = env.get(THEME_ENV_VAR, "").strip().lower()
    if override in {THEME_DARK, THEME_LIGHT}:
        return override

    detected = _parse_colorfgbg(env.get("COLORFGBG", ""))
    if detected is not None:
        return detected
    return THEME_DARK


def _first_available_style(candidates: tuple[str, ...]) -> str:
    key = ",".join(candidates)
    cached = _RESOLVED_STYLES.get(key)
    if cached is not None:
        return cached
    for name in candidates:
        try:
            get_style_by_name(name)
        except ClassNotFound:
            continue
        _RESOLVED_STYLES[key] = name
        return name
    _RESOLVED_STYLES[key] = "default"
    return "default"


def load_theme(mode: str, environ: Mapping[str, str] | None = None) -> Theme:
    """Build the session theme for ``mode`` (``auto`` is resolved first)."""
    resolved = resolve_theme_mode(mode, environ)
    if resolved == THEME_LIGHT:
        return Theme(name=THEME_LIGHT, pygments_style=_first_available_style(LIGHT_STYLE_CANDIDATES), **LIGHT_PALETTE)
    return Theme(name=THEME_DARK, pygments_style=_first_available_style(DARK_STYLE_CANDIDATES), **DARK_PALETTE)
