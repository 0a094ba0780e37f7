from reqdeck.pages import Page
from reqdeck.tui.surface import Frame, Rect, Size


class TerminalTooSmall(Page):
    def __init__(self, min_size: Size):
        super().__init__()
        self.min_size = min_size

    def draw(self, frame: Frame, rect: Rect) -> None:
        lines = [
            "Terminal too small",
            f"need {self.min_size.width}x{self.min_size.height}, have {rect.width}x{rect.height}",
        ]
        area = rect.centered(max(len(line) for line in lines), len(lines))
        for row, line in enumerate(lines):
            frame.write(area, row, line.center(area.width), "bold red" if row == 0 else "")
