"""Terminal control and presentation.

``TerminalController`` owns the raw-mode / alternate-screen lifecycle.
``Screen`` paints a ``Frame`` onto the terminal through a rich console.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import termios
import tty
from typing import Optional

from rich.console import Console
from rich.text import Text

from reqdeck.tui.surface import Frame, Size


class TerminalController:
    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def enable_tui_mode(self) -> None:
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        # Enter alternate screen and hide cursor.
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l")

    def disable_tui_mode(self) -> None:
        # Show cursor and restore the main screen buffer.
        os.write(self.stdout_fd, b"\x1b[?25h\x1b[?1049l")
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    @contextlib.contextmanager
    def raw_mode(self):
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()


class Screen:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False, soft_wrap=True)

    def size(self) -> Size:
        columns, rows = shutil.get_terminal_size()
        return Size(columns, rows)

    def present(self, frame: Frame) -> None:
        out = self.console.file
        out.write("\x1b[H")
        self.console.print(Text("\n").join(frame.lines()), end="", crop=True)
        if frame.cursor is not None:
            x, y = frame.cursor
            out.write(f"\x1b[{y + 1};{x + 1}H\x1b[?25h")
        else:
            out.write("\x1b[?25l")
        out.flush()
