"""Decode raw terminal bytes into key events.

Control bytes and the common CSI sequences (arrows, home/end, delete,
shift-tab) are recognised. Anything else that starts with ``ESC [`` and
does not end in a known final byte is reported as ``InputParseError`` so the
event source can log and drop it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union

ESC = "\x1b"

_CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
}

_CSI_FINALS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "Z": "backtab",
}

_CSI_TILDE = {
    "1": "home",
    "3": "delete",
    "4": "end",
    "5": "pageup",
    "6": "pagedown",
}


class InputParseError(ValueError):
    """A byte sequence from the terminal that is not a key we understand."""


@dataclass(frozen=True)
class KeyEvent:
    code: str
    ctrl: bool = False
    alt: bool = False

    @property
    def chord(self) -> str:
        """Canonical spelling used by the key-binding table, e.g. ``ctrl+c``."""
        prefix = ""
        if self.ctrl:
            prefix += "ctrl+"
        if self.alt:
            prefix += "alt+"
        return prefix + self.code

    @property
    def char(self) -> str | None:
        """The printable character typed, if this is plain text input."""
        if self.ctrl or self.alt or len(self.code) != 1:
            return None
        return self.code


def _decode_char(ch: str) -> KeyEvent:
    if ch in _CONTROL_KEYS:
        return KeyEvent(_CONTROL_KEYS[ch])
    code = ord(ch)
    if 1 <= code <= 26:
        return KeyEvent(chr(code + 96), ctrl=True)
    return KeyEvent(ch)


def decode_keys(data: bytes) -> Iterator[Union[KeyEvent, InputParseError]]:
    text = data.decode("utf-8", errors="replace")
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != ESC:
            yield _decode_char(ch)
            i += 1
            continue

        # Lone escape at the end of a read is the Esc key itself.
        if i + 1 >= len(text):
            yield KeyEvent("esc")
            i += 1
            continue

        nxt = text[i + 1]
        if nxt == ESC:
            yield KeyEvent("esc")
            i += 1
            continue
        if nxt not in "[O":
            inner = _decode_char(nxt)
            yield KeyEvent(inner.code, ctrl=inner.ctrl, alt=True)
            i += 2
            continue

        # CSI / SS3: parameters up to a final byte in 0x40..0x7e
        j = i + 2
        while j < len(text) and not ("\x40" <= text[j] <= "\x7e"):
            j += 1
        if j >= len(text):
            yield InputParseError(f"truncated escape sequence {text[i:]!r}")
            return
        params, final = text[i + 2:j], text[j]
        raw = text[i:j + 1]
        i = j + 1

        if final == "~" and params in _CSI_TILDE:
            yield KeyEvent(_CSI_TILDE[params])
        elif final in _CSI_FINALS and params in ("", "1"):
            yield KeyEvent(_CSI_FINALS[final])
        else:
            yield InputParseError(f"unknown escape sequence {raw!r}")
