"""Editors for the parts of a request the request form does not cover.

``HeadersEditor`` lists the request headers and edits them through a small
form and a delete prompt; ``BodyEditor`` is a multi-line text buffer for the
JSON body. Both write through ``CollectionStore.update_request`` and return
to the explorer with the request id.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from pydantic import ValidationError

from reqdeck.core.commands import Command
from reqdeck.models import BodyKind, HeaderEntry
from reqdeck.pages import Page
from reqdeck.pages.collection_viewer.forms import Dialog, is_cancel
from reqdeck.pages.collection_viewer.session import ViewerSession
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.surface import Frame, Rect

logger = logging.getLogger(__name__)

INDENT = "  "


class HeadersMode(Enum):
    LIST = "list"
    FORM = "form"
    DELETE = "delete"


class HeadersEditor(Dialog):
    title = "headers"
    width = 70

    HINTS = {
        HeadersMode.LIST: "[n] new [enter] edit [space] toggle [d] delete [esc] done",
        HeadersMode.FORM: "[Tab] switch field [Confirm: Enter] [Cancel: Esc]",
        HeadersMode.DELETE: "[y] delete [n] keep",
    }

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.request_id: Optional[str] = None
        self.headers: List[HeaderEntry] = []
        self.row = 0
        self.mode = HeadersMode.LIST
        self.editing: Optional[int] = None
        self.fields = ["", ""]
        self.focus = 0
        self.message: Optional[str] = None

    @property
    def hint(self) -> str:
        return self.HINTS[self.mode]

    def update(self, payload: Optional[str] = None) -> None:
        self.request_id = payload
        self.mode = HeadersMode.LIST
        self.row = 0
        self.message = None
        request = self.session.store.find_request(payload) if self.session.store and payload else None
        self.headers = list(request.headers) if request is not None else []

    def _apply(self, headers: List[HeaderEntry]) -> None:
        updated = self.session.store.update_request(self.request_id, headers=headers)
        if updated is None:
            # request deleted underneath us
            self.close()
            return
        self.headers = list(updated.headers)
        self.row = max(0, min(self.row, len(self.headers) - 1))

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        if self.session.store is None or self.request_id is None:
            self.close()
        elif self.mode is HeadersMode.FORM:
            self._handle_form_key(key)
        elif self.mode is HeadersMode.DELETE:
            self._handle_delete_key(key)
        else:
            self._handle_list_key(key)
        return None

    def _handle_list_key(self, key: KeyEvent) -> None:
        if is_cancel(key):
            self.close(self.request_id)
        elif key.code in ("j", "down") and self.headers:
            self.row = min(self.row + 1, len(self.headers) - 1)
        elif key.code in ("k", "up"):
            self.row = max(self.row - 1, 0)
        elif key.code == " " and self.headers:
            headers = list(self.headers)
            current = headers[self.row]
            headers[self.row] = current.model_copy(update={"enabled": not current.enabled})
            self._apply(headers)
        elif key.code == "n":
            self._open_form(None)
        elif key.code == "enter" and self.headers:
            self._open_form(self.row)
        elif key.code == "d" and self.headers:
            self.mode = HeadersMode.DELETE

    def _open_form(self, index: Optional[int]) -> None:
        self.editing = index
        self.focus = 0
        self.message = None
        if index is None:
            self.fields = ["", ""]
        else:
            self.fields = [self.headers[index].name, self.headers[index].value]
        self.mode = HeadersMode.FORM

    def _handle_form_key(self, key: KeyEvent) -> None:
        if is_cancel(key):
            self.mode = HeadersMode.LIST
        elif key.code in ("tab", "backtab"):
            self.focus = 1 - self.focus
        elif key.code == "enter":
            self._save_form()
        elif key.code == "backspace":
            self.fields[self.focus] = self.fields[self.focus][:-1]
        elif key.char is not None:
            self.fields[self.focus] += key.char

    def _save_form(self) -> None:
        name, value = self.fields
        headers = list(self.headers)
        enabled = True if self.editing is None else headers[self.editing].enabled
        try:
            entry = HeaderEntry(name=name, value=value, enabled=enabled)
        except ValidationError:
            self.message = "name and value are required"
            return
        if self.editing is None:
            headers.append(entry)
            self.row = len(headers) - 1
        else:
            headers[self.editing] = entry
            self.row = self.editing
        self._apply(headers)
        self.mode = HeadersMode.LIST

    def _handle_delete_key(self, key: KeyEvent) -> None:
        if key.code in ("y", "Y"):
            headers = list(self.headers)
            removed = headers.pop(self.row)
            logger.debug("deleting header %s", removed.name)
            self._apply(headers)
        self.mode = HeadersMode.LIST

    def body_lines(self) -> List[str]:
        if self.mode is HeadersMode.FORM:
            marks = ["> " if idx == self.focus else INDENT for idx in range(2)]
            lines = [f"{marks[0]}Name:  {self.fields[0]}", f"{marks[1]}Value: {self.fields[1]}"]
            if self.message:
                lines.append(self.message)
            return lines
        if self.mode is HeadersMode.DELETE:
            return [f"delete header {self.headers[self.row].name}? [y/n]"]
        if not self.headers:
            return ["no headers, press n to add one"]
        return [
            f"{'>' if idx == self.row else ' '} [{'x' if header.enabled else ' '}] {header.name}: {header.value}"
            for idx, header in enumerate(self.headers)
        ]


class BodyEditor(Dialog):
    """A plain text buffer for the request body.

    ``Ctrl+S`` stores the buffer as the JSON body of the request, or clears
    the body when the buffer is blank. The text is stored as typed.
    """

    title = "body (json)"
    hint = "[Save: Ctrl+S] [Cancel: Esc]"

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.request_id: Optional[str] = None
        self.lines: List[str] = [""]
        self.row = 0
        self.col = 0

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def update(self, payload: Optional[str] = None) -> None:
        self.request_id = payload
        request = self.session.store.find_request(payload) if self.session.store and payload else None
        body = request.body if request is not None else None
        self.lines = (body or "").split("\n")
        self.row = len(self.lines) - 1
        self.col = len(self.lines[self.row])

    def save(self) -> None:
        if self.session.store is None or self.request_id is None:
            return
        if self.text.strip():
            self.session.store.update_request(self.request_id, body=self.text, body_kind=BodyKind.JSON)
        else:
            self.session.store.update_request(self.request_id, body=None, body_kind=BodyKind.NO_BODY)

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        line = self.lines[self.row]
        if is_cancel(key):
            self.close(self.request_id)
        elif key.chord == "ctrl+s":
            self.save()
            self.close(self.request_id)
        elif key.code == "enter":
            self.lines[self.row] = line[: self.col]
            self.lines.insert(self.row + 1, line[self.col :])
            self.row += 1
            self.col = 0
        elif key.code == "backspace":
            if self.col > 0:
                self.lines[self.row] = line[: self.col - 1] + line[self.col :]
                self.col -= 1
            elif self.row > 0:
                previous = self.lines.pop(self.row - 1)
                self.row -= 1
                self.col = len(previous)
                self.lines[self.row] = previous + line
        elif key.code == "delete":
            if self.col < len(line):
                self.lines[self.row] = line[: self.col] + line[self.col + 1 :]
            elif self.row < len(self.lines) - 1:
                self.lines[self.row] = line + self.lines.pop(self.row + 1)
        elif key.code == "left":
            self.col = max(0, self.col - 1)
        elif key.code == "right":
            self.col = min(len(line), self.col + 1)
        elif key.code in ("up", "down"):
            self.row = max(0, min(self.row + (1 if key.code == "down" else -1), len(self.lines) - 1))
            self.col = min(self.col, len(self.lines[self.row]))
        elif key.code == "home":
            self.col = 0
        elif key.code == "end":
            self.col = len(line)
        elif key.code == "tab":
            self._insert(INDENT)
        elif key.char is not None:
            self._insert(key.char)
        return None

    def _insert(self, text: str) -> None:
        line = self.lines[self.row]
        self.lines[self.row] = line[: self.col] + text + line[self.col :]
        self.col += len(text)

    def draw(self, frame: Frame, rect: Rect) -> None:
        self.backdrop.draw(frame, rect)
        box = rect.centered(max(20, rect.width - 8), max(6, rect.height - 4))
        frame.box(box, self.title, self.style)
        inner = box.inner()
        visible = max(1, inner.height - 2)
        top = max(0, self.row - visible + 1)
        for offset, line in enumerate(self.lines[top : top + visible]):
            frame.write(inner, offset, line)
        frame.write(inner, inner.height - 1, self.hint, "dim")
        frame.set_cursor(inner.x + self.col, inner.y + self.row - top)
