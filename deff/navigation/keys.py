"""Translate decoded input tokens into navigation events.

Only motion lives here; session-level commands (quit, search, review
marks, change jumps) are dispatched by ``deff.runtime.session``.
"""

from __future__ import annotations

from ..model import PANE_LEFT, PANE_RIGHT
from .state import (
    HORIZONTAL_STEP,
    KEY_SCROLL_STEP,
    MOUSE_LEFT_DOWN,
    MOUSE_LEFT_UP,
    MOUSE_MOVE,
    MOUSE_WHEEL_DOWN,
    MOUSE_WHEEL_LEFT,
    MOUSE_WHEEL_RIGHT,
    MOUSE_WHEEL_UP,
    FocusPane,
    JumpBottom,
    JumpTop,
    MouseEvent,
    NextFile,
    PrevFile,
    ScrollHorizontal,
    ScrollPage,
    ScrollVertical,
    SwitchPane,
)

KEY_BINDINGS: dict[str, object] = {
    "j": ScrollVertical(KEY_SCROLL_STEP),
    "DOWN": ScrollVertical(KEY_SCROLL_STEP),
    "ENTER_CR": ScrollVertical(KEY_SCROLL_STEP),
    "ENTER_LF": ScrollVertical(KEY_SCROLL_STEP),
    "k": ScrollVertical(-KEY_SCROLL_STEP),
    "UP": ScrollVertical(-KEY_SCROLL_STEP),
    "CTRL_D": ScrollPage(1),
    "PAGE_DOWN": ScrollPage(1),
    " ": ScrollPage(1),
    "CTRL_U": ScrollPage(-1),
    "PAGE_UP": ScrollPage(-1),
    "g": JumpTop(),
    "HOME": JumpTop(),
    "G": JumpBottom(),
    "END": JumpBottom(),
    "h": ScrollHorizontal(-HORIZONTAL_STEP),
    "LEFT": ScrollHorizontal(-HORIZONTAL_STEP),
    "l": ScrollHorizontal(HORIZONTAL_STEP),
    "RIGHT": ScrollHorizontal(HORIZONTAL_STEP),
    "TAB": SwitchPane(),
    "SHIFT_TAB": SwitchPane(),
    "SHIFT_LEFT": FocusPane(PANE_LEFT),
    "SHIFT_RIGHT": FocusPane(PANE_RIGHT),
    "]": NextFile(),
    "[": PrevFile(),
}

_MOUSE_KINDS = {
    "MOUSE_WHEEL_UP": (MOUSE_WHEEL_UP, False),
    "MOUSE_WHEEL_DOWN": (MOUSE_WHEEL_DOWN, False),
    "MOUSE_SHIFT_WHEEL_UP": (MOUSE_WHEEL_UP, True),
    "MOUSE_SHIFT_WHEEL_DOWN": (MOUSE_WHEEL_DOWN, True),
    "MOUSE_WHEEL_LEFT": (MOUSE_WHEEL_LEFT, False),
    "MOUSE_WHEEL_RIGHT": (MOUSE_WHEEL_RIGHT, False),
    "MOUSE_LEFT_DOWN": (MOUSE_LEFT_DOWN, False),
    "MOUSE_LEFT_UP": (MOUSE_LEFT_UP, False),
    "MOUSE_MOVE": (MOUSE_MOVE, False),
}


def parse_mouse_token(key: str) -> MouseEvent | None:
    """Parse ``MOUSE_<KIND>:<col>:<row>`` (1-based) into a zero-based event."""
    parts = key.split(":")
    if len(parts) != 3:
        return None
    mapped = _MOUSE_KINDS.get(parts[0])
    if mapped is None:
        return None
    try:
        col = int(parts[1])
        row = int(parts[2])
    except ValueError:
        return None
    kind, shift = mapped
    return MouseEvent(kind=kind, x=col - 1, y=row - 1, shift=shift)


def event_for_key(key: str) -> object | None:
    """Return the navigation event bound to ``key``, or ``None`` if unbound."""
    if key.startswith("MOUSE_"):
        return parse_mouse_token(key)
    return KEY_BINDINGS.get(key)
