"""Terminal control helpers for the review session.

Owns raw-mode lifecycle, alternate-screen switching, mouse reporting and
frame presentation. Terminal state is restored on every exit path.
"""

from __future__ import annotations

import contextlib
import os
import signal
import termios
import tty

from ..errors import TerminalInitError
from ..render.frame import Frame

ENTER_TUI_SEQUENCE = b"\x1b[?1049h\x1b[?25l\x1b[?1000h\x1b[?1002h\x1b[?1003h\x1b[?1006h"
EXIT_TUI_SEQUENCE = b"\x1b[?1000l\x1b[?1002l\x1b[?1003l\x1b[?1006l\x1b[0m\x1b[?25h\x1b[?1049l"
_EXIT_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _raise_system_exit(signum, _frame) -> None:
    raise SystemExit(128 + signum)


class TerminalController:
    """Manage terminal mode transitions for one interactive session."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state; raise ``TerminalInitError`` when not on a terminal."""
        if not os.isatty(stdin_fd) or not os.isatty(stdout_fd):
            raise TerminalInitError("interactive mode needs a terminal on stdin and stdout")
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        try:
            self._saved_tty_state = termios.tcgetattr(stdin_fd)
        except termios.error as exc:
            raise TerminalInitError(f"cannot read terminal attributes: {exc}") from exc
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with mouse reporting enabled."""
        try:
            tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        except termios.error as exc:
            raise TerminalInitError(f"cannot switch terminal to raw mode: {exc}") from exc
        self._active = True
        # Alternate screen, hidden cursor, button/drag/any-motion mouse in SGR encoding.
        os.write(self.stdout_fd, ENTER_TUI_SEQUENCE)

    def disable_tui_mode(self) -> None:
        """Restore normal terminal state and disable mouse reporting."""
        try:
            os.write(self.stdout_fd, EXIT_TUI_SEQUENCE)
        finally:
            self._active = False
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def present(self, frame: Frame, color: bool = True) -> None:
        """Write one complete frame in a single buffer."""
        data = frame.to_ansi(color=color).encode("utf-8", errors="replace")
        view = memoryview(data)
        while view:
            written = os.write(self.stdout_fd, view)
            view = view[written:]

    @contextlib.contextmanager
    def raw_mode(self):
        """Bracket the session with TUI enter/exit, turning SIGTERM/SIGHUP into ``SystemExit``."""
        previous = {signum: signal.signal(signum, _raise_system_exit) for signum in _EXIT_SIGNALS}
        try:
            self.enable_tui_mode()
            yield
        finally:
            try:
                if self._active:
                    self.disable_tui_mode()
            finally:
                for signum, handler in previous.items():
                    signal.signal(signum, handler)
