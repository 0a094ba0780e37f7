from typing import List, Optional

from reqdeck.models import Response
from reqdeck.pages.collection_viewer.session import ResponseTab
from reqdeck.tui.surface import Frame, Rect


def readable_byte_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    unit = 0
    while value >= 1024.0 and unit < len(units) - 1:
        value /= 1024.0
        unit += 1
    return f"{value:.2f}{units[unit]}"


def status_style(status: Optional[int]) -> str:
    if status is None:
        return "red"
    if status < 300:
        return "green"
    if status < 400:
        return "yellow"
    return "red"


def tab_lines(response: Response, tab: ResponseTab) -> List[str]:
    if tab is ResponseTab.HEADERS:
        return [f"{name}: {value}" for name, value in response.headers]
    if tab is ResponseTab.RAW:
        return (response.body or "").splitlines()
    return (response.pretty_body or response.body or "").splitlines()


def draw_tabs(frame: Frame, rect: Rect, row: int, active: ResponseTab) -> None:
    col = 0
    for tab in ResponseTab:
        label = f" {tab.value.capitalize()} "
        frame.write(rect, row, label, "reverse" if tab is active else "dim", col=col)
        col += len(label) + 1


def draw_response(
    frame: Frame,
    rect: Rect,
    response: Optional[Response],
    pending: bool,
    tab: ResponseTab = ResponseTab.PRETTY,
) -> None:
    frame.box(rect, "response")
    inner = rect.inner()
    if pending:
        frame.write(inner, 0, "waiting for response...", "yellow")
        return
    if response is None:
        frame.write(inner, 0, "no response yet, press s to send", "dim")
        return
    if response.is_error:
        frame.write(inner, 0, "request failed", "bold red")
        frame.write(inner, 1, response.cause or "unknown error", "red")
        return

    summary = (
        f"{response.status}  "
        f"{response.duration * 1000:.0f}ms  "
        f"{readable_byte_size(response.total_size)} "
        f"(headers {readable_byte_size(response.headers_size)}, body {readable_byte_size(response.body_size)})"
    )
    frame.write(inner, 0, summary, status_style(response.status))
    draw_tabs(frame, inner, 1, tab)
    for row, line in enumerate(tab_lines(response, tab)[: max(0, inner.height - 3)]):
        frame.write(inner, row + 3, line)
