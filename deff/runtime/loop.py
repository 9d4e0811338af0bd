"""Main interactive event loop.

Polls the terminal size and the next key token, feeds them to the
session and presents a fresh frame after every change.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass

from ..input import read_key
from .session import ReviewSession
from .terminal import TerminalController

DEFAULT_TERMINAL_SIZE = (80, 24)


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    idle_timeout_ms: int = 120


def _terminal_size() -> tuple[int, int]:
    term = shutil.get_terminal_size(DEFAULT_TERMINAL_SIZE)
    return term.columns, term.lines


def run_main_loop(
    session: ReviewSession,
    terminal: TerminalController,
    stdin_fd: int,
    timing: RuntimeLoopTiming = RuntimeLoopTiming(),
    terminal_size: Callable[[], tuple[int, int]] = _terminal_size,
    key_reader: Callable[[int, int], str] = read_key,
) -> None:
    """Run the interactive loop until a quit key is pressed.

    Every iteration checks for a resize, redraws when something changed and
    then waits up to ``timing.idle_timeout_ms`` for input.
    """
    with terminal.raw_mode():
        dirty = True
        while True:
            width, height = terminal_size()
            if session.resize(width, height):
                dirty = True
            if dirty:
                terminal.present(session.render(), color=session.color)
                dirty = False

            key = key_reader(stdin_fd, timing.idle_timeout_ms)
            if key == "":
                continue
            if session.handle_key(key):
                break
            dirty = True
