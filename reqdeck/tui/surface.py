"""Character-cell drawing surface handed to pages.

A ``Frame`` is a grid of (character, style) cells. Pages never address cells
directly: they receive a ``Rect`` and write text into rows of it, clipped to
its bounds. Styles are rich style strings (``"bold red"``) resolved only when
``Screen`` presents the frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from rich.text import Text


@dataclass(frozen=True)
class Size:
    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def right(self) -> int:
        return self.x + self.width

    def inner(self, margin: int = 1) -> "Rect":
        return Rect(
            self.x + margin,
            self.y + margin,
            max(0, self.width - 2 * margin),
            max(0, self.height - 2 * margin),
        )

    def split_columns(self, left_width: int) -> Tuple["Rect", "Rect"]:
        left_width = min(left_width, self.width)
        return (
            Rect(self.x, self.y, left_width, self.height),
            Rect(self.x + left_width, self.y, self.width - left_width, self.height),
        )

    def split_rows(self, top_height: int) -> Tuple["Rect", "Rect"]:
        top_height = min(top_height, self.height)
        return (
            Rect(self.x, self.y, self.width, top_height),
            Rect(self.x, self.y + top_height, self.width, self.height - top_height),
        )

    def centered(self, width: int, height: int) -> "Rect":
        width = min(width, self.width)
        height = min(height, self.height)
        return Rect(
            self.x + (self.width - width) // 2,
            self.y + (self.height - height) // 2,
            width,
            height,
        )


Cell = Tuple[str, str]


class Frame:
    def __init__(self, size: Size):
        self.size = size
        self.cursor: Optional[Tuple[int, int]] = None
        self._cells: List[List[Cell]] = [
            [(" ", "") for _ in range(size.width)] for _ in range(size.height)
        ]

    @property
    def area(self) -> Rect:
        return Rect(0, 0, self.size.width, self.size.height)

    def write(self, rect: Rect, row: int, text: str, style: str = "", col: int = 0) -> None:
        """Write ``text`` on ``row`` of ``rect``, starting ``col`` cells in."""
        if row < 0 or row >= rect.height:
            return
        y = rect.y + row
        if y >= self.size.height:
            return
        x = rect.x + col
        limit = min(rect.right, self.size.width)
        for ch in text:
            if x >= limit:
                break
            if x >= 0:
                self._cells[y][x] = (ch, style)
            x += 1

    def clear(self, rect: Rect, style: str = "") -> None:
        for row in range(rect.height):
            self.write(rect, row, " " * rect.width, style)

    def box(self, rect: Rect, title: str = "", style: str = "") -> None:
        if rect.width < 2 or rect.height < 2:
            return
        self.clear(rect)
        horizontal = "─" * (rect.width - 2)
        self.write(rect, 0, "┌" + horizontal + "┐", style)
        for row in range(1, rect.height - 1):
            self.write(rect, row, "│", style)
            self.write(rect, row, "│", style, col=rect.width - 1)
        self.write(rect, rect.height - 1, "└" + horizontal + "┘", style)
        if title:
            self.write(rect, 0, f" {title} ", style, col=2)

    def set_cursor(self, x: int, y: int) -> None:
        self.cursor = (x, y)

    def row_text(self, y: int) -> str:
        return "".join(ch for ch, _ in self._cells[y])

    def lines(self) -> List[Text]:
        """Rows as rich ``Text``, with runs of equal style merged."""
        result = []
        for row in self._cells:
            line = Text(no_wrap=True, overflow="crop")
            run, run_style = "", None
            for ch, style in row:
                if style != run_style and run:
                    line.append(run, style=run_style or None)
                    run = ""
                run_style = style
                run += ch
            if run:
                line.append(run, style=run_style or None)
            result.append(line)
        return result
