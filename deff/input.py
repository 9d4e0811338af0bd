"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens.
Handles ESC-sequence timing, modifier combos, and SGR mouse events.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_CONTROL_KEYS = {
    b"\x03": "CTRL_C",
    b"\x04": "CTRL_D",
    b"\x15": "CTRL_U",
    b"\t": "TAB",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\r": "ENTER_CR",
    b"\n": "ENTER_LF",
}
_CSI_FINAL_KEYS = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"H": "HOME",
    b"F": "END",
    b"Z": "SHIFT_TAB",
}
_CSI_TILDE_KEYS = {
    "1": "HOME",
    "7": "HOME",
    "4": "END",
    "8": "END",
    "5": "PAGE_UP",
    "6": "PAGE_DOWN",
}
_SHIFT_ARROWS = {b"C": "SHIFT_RIGHT", b"D": "SHIFT_LEFT", b"A": "UP", b"B": "DOWN"}

_MOUSE_SHIFT = 0b0000_0100
_MOUSE_MOTION = 0b0010_0000
_MOUSE_WHEEL = 0b0100_0000


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _read_utf8_tail(fd: int, lead: bytes) -> str:
    """Collect the continuation bytes of a multi-byte UTF-8 character."""
    first = lead[0]
    if first >= 0xF0:
        needed = 3
    elif first >= 0xE0:
        needed = 2
    elif first >= 0xC0:
        needed = 1
    else:
        needed = 0
    data = lead
    for _ in range(needed):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")


def _decode_sgr_mouse(btn: int, col: int, row: int, final: bytes) -> str:
    button = btn & 0b11
    shift = bool(btn & _MOUSE_SHIFT)
    if btn & _MOUSE_WHEEL:
        if button == 0:
            return f"MOUSE_SHIFT_WHEEL_UP:{col}:{row}" if shift else f"MOUSE_WHEEL_UP:{col}:{row}"
        if button == 1:
            return f"MOUSE_SHIFT_WHEEL_DOWN:{col}:{row}" if shift else f"MOUSE_WHEEL_DOWN:{col}:{row}"
        if button == 2:
            return f"MOUSE_WHEEL_LEFT:{col}:{row}"
        return f"MOUSE_WHEEL_RIGHT:{col}:{row}"
    if btn & _MOUSE_MOTION:
        return f"MOUSE_MOVE:{col}:{row}"
    if button == 0:
        suffix = "DOWN" if final == b"M" else "UP"
        return f"MOUSE_LEFT_{suffix}:{col}:{row}"
    return "MOUSE"


def _read_sgr_mouse(fd: int) -> str:
    # SGR mouse: ESC [ < btn ; col ; row (M/m)
    payload = []
    while True:
        part = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            return "ESC"
        if part in {b"M", b"m"}:
            break
        payload.append(part)
        if len(payload) > 64:
            return "ESC"
    try:
        btn_s, col_s, row_s = b"".join(payload).decode("ascii").split(";")
        btn = int(btn_s)
        col = int(col_s)
        row = int(row_s)
    except (UnicodeDecodeError, ValueError):
        return "ESC"
    return _decode_sgr_mouse(btn, col, row, part)


def _read_csi_params(fd: int, first: bytes) -> tuple[str, bytes] | None:
    """Read digits/semicolons of a CSI sequence up to its final byte."""
    params = [first]
    while True:
        part = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            return None
        if part.isdigit() or part == b";":
            params.append(part)
            if len(params) > 16:
                return None
            continue
        return b"".join(params).decode("ascii"), part


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Read one key and return its token; ``""`` on timeout or EOF."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    control = _CONTROL_KEYS.get(ch)
    if control is not None:
        return control

    if ch != b"\x1b":
        if ch[0] >= 0x80:
            return _read_utf8_tail(fd, ch)
        return ch.decode("utf-8", errors="replace")

    # Escape / arrow key sequences.
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq == b"O":
        # SS3 form used by some terminals for Home/End and arrows.
        final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            return "ESC"
        return _CSI_FINAL_KEYS.get(final, "ESC")
    if seq != b"[":
        _PENDING_BYTES.append(seq)
        return "ESC"
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    final_key = _CSI_FINAL_KEYS.get(seq)
    if final_key is not None:
        return final_key
    if seq == b"<":
        return _read_sgr_mouse(fd)
    if not seq.isdigit():
        return "ESC"

    parsed = _read_csi_params(fd, seq)
    if parsed is None:
        return "ESC"
    params, final = parsed
    if final == b"~":
        return _CSI_TILDE_KEYS.get(params.split(";")[0], "ESC")
    if params in {"1;2", "2"}:
        return _SHIFT_ARROWS.get(final, "ESC")
    if params.startswith("1;"):
        # Other modifiers (alt/ctrl) fall back to the plain arrow.
        return _CSI_FINAL_KEYS.get(final, "ESC")
    return "ESC"
