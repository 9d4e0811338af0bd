"""Persistent JSON config helpers.

Holds the default theme mode, diff context size and extra syntax
directories. Malformed or missing config falls back to built-in defaults.
"""

from __future__ import annotations

import json
from pathlib import Path

from platformdirs import user_config_dir

from ..syntax.themes import THEME_MODES

APP_NAME = "deff"
CONFIG_FILENAME = "config.json"
SYNTAX_DIRNAME = "syntaxes"
CONFIG_DIR = Path(user_config_dir(APP_NAME, appauthor=False))
CONFIG_PATH = CONFIG_DIR / CONFIG_FILENAME
USER_SYNTAX_DIR = CONFIG_DIR / SYNTAX_DIRNAME

MAX_CONTEXT_LINES = 10_000


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def load_theme_mode() -> str | None:
    """Load the configured theme mode, ``None`` when unset or not a known mode."""
    value = load_config().get("theme")
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized if normalized in THEME_MODES else None


def load_context_lines() -> int | None:
    """Load the configured number of diff context lines.

    Booleans, negatives and non-integers are rejected.
    """
    value = load_config().get("context_lines")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < 0 or value > MAX_CONTEXT_LINES:
        return None
    return value


def load_syntax_dirs() -> list[str]:
    """Load extra grammar directories; non-string entries are dropped."""
    value = load_config().get("syntax_dirs")
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]
