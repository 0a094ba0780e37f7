"""Dialogs of the collection viewer.

Each dialog is a page of the viewer's router. It draws the explorer as a
backdrop, edits a small buffer, applies its change to the store on ``Enter``
and always returns to the explorer, handing it the id it touched.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from reqdeck.core.commands import Command
from reqdeck.models import RequestMethod
from reqdeck.pages import Page
from reqdeck.pages.collection_viewer.session import ViewerSession
from reqdeck.pages.routes import ViewerRoutes
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.router import NavigateTo
from reqdeck.tui.surface import Frame, Rect

logger = logging.getLogger(__name__)

HINT = "[Confirm: Enter] [Cancel: Esc]"


def is_cancel(key: KeyEvent) -> bool:
    return key.code == "esc" or key.chord == "ctrl+c"


class Dialog(Page):
    title = ""
    style = "green"
    width = 50
    hint = HINT

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__()
        self.session = session
        self.backdrop = backdrop

    def close(self, touched: Optional[str] = None) -> None:
        self.navigate(NavigateTo(ViewerRoutes.EXPLORER, touched))

    def body_lines(self) -> List[str]:
        return []

    def draw(self, frame: Frame, rect: Rect) -> None:
        self.backdrop.draw(frame, rect)
        lines = self.body_lines()
        box = rect.centered(self.width, len(lines) + 4)
        frame.box(box, self.title, self.style)
        inner = box.inner()
        for row, line in enumerate(lines):
            frame.write(inner, row, line)
        frame.write(inner, len(lines) + 1, self.hint, "dim")


class DirectoryForm(Dialog):
    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.dir_name = ""

    def reset(self) -> None:
        self.dir_name = ""

    def confirm(self) -> Optional[str]:
        raise NotImplementedError

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        if is_cancel(key):
            self.reset()
            self.close()
        elif key.code == "enter":
            touched = self.confirm()
            self.reset()
            self.close(touched)
        elif key.code == "backspace":
            self.dir_name = self.dir_name[:-1]
        elif key.char is not None:
            self.dir_name += key.char
        return None

    def body_lines(self) -> List[str]:
        return [f"Name: {self.dir_name}"]


class CreateDirectoryForm(DirectoryForm):
    title = "new directory"

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.parent_id: Optional[str] = None

    def update(self, payload: Optional[str] = None) -> None:
        self.parent_id = payload
        self.reset()

    def confirm(self) -> Optional[str]:
        if self.session.store is None:
            return None
        return self.session.store.create_directory(self.dir_name, self.parent_id)


class RenameDirectoryForm(DirectoryForm):
    title = "rename directory"

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.dir_id: Optional[str] = None

    def update(self, payload: Optional[str] = None) -> None:
        self.dir_id = payload
        self.reset()
        found = self.session.store.find(payload) if self.session.store and payload else None
        if found is not None:
            self.dir_name = found.name

    def confirm(self) -> Optional[str]:
        if self.session.store is None or self.dir_id is None:
            return None
        self.session.store.rename_directory(self.dir_id, self.dir_name)
        return self.dir_id


class RequestForm(Dialog):
    FIELDS = ("name", "uri", "method")

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.reset()

    def reset(self) -> None:
        self.name = ""
        self.uri = ""
        self.method = RequestMethod.GET
        self.focus = 0

    def confirm(self) -> Optional[str]:
        raise NotImplementedError

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        field = self.FIELDS[self.focus]
        if is_cancel(key):
            self.reset()
            self.close()
        elif key.code == "enter":
            touched = self.confirm()
            self.reset()
            self.close(touched)
        elif key.code == "tab":
            self.focus = (self.focus + 1) % len(self.FIELDS)
        elif key.code == "backtab":
            self.focus = (self.focus - 1) % len(self.FIELDS)
        elif field == "method":
            if key.code in ("right", " "):
                self.method = self.method.next()
            elif key.code == "left":
                self.method = self.method.prev()
        elif key.code == "backspace":
            setattr(self, field, getattr(self, field)[:-1])
        elif key.char is not None:
            setattr(self, field, getattr(self, field) + key.char)
        return None

    def body_lines(self) -> List[str]:
        marks = ["> " if idx == self.focus else "  " for idx in range(len(self.FIELDS))]
        return [
            f"{marks[0]}Name:   {self.name}",
            f"{marks[1]}URI:    {self.uri}",
            f"{marks[2]}Method: < {self.method.value} >",
        ]


class CreateRequestForm(RequestForm):
    title = "new request"

    def update(self, payload: Optional[str] = None) -> None:
        self.parent_id = payload
        self.reset()

    def confirm(self) -> Optional[str]:
        if self.session.store is None:
            return None
        return self.session.store.create_request(self.name, self.method, self.uri, self.parent_id)


class EditRequestForm(RequestForm):
    title = "edit request"

    def update(self, payload: Optional[str] = None) -> None:
        self.request_id = payload
        self.reset()
        request = self.session.store.find_request(payload) if self.session.store and payload else None
        if request is not None:
            self.name, self.uri, self.method = request.name, request.uri, request.method

    def confirm(self) -> Optional[str]:
        if self.session.store is None or self.request_id is None:
            return None
        try:
            self.session.store.update_request(
                self.request_id, name=self.name or "unnamed request", uri=self.uri, method=self.method
            )
        except ValidationError as ex:
            logger.warning("rejected request edit: %s", ex)
        return self.request_id


class DeleteItemPrompt(Dialog):
    title = "delete"
    style = "red"

    def __init__(self, session: ViewerSession, backdrop: Page):
        super().__init__(session, backdrop)
        self.node_id: Optional[str] = None

    def update(self, payload: Optional[str] = None) -> None:
        self.node_id = payload

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        if key.code in ("y", "Y") and self.node_id is not None and self.session.store is not None:
            self.session.store.delete_node(self.node_id)
            self.close(self.node_id)
        elif key.code in ("n", "N") or is_cancel(key):
            self.close()
        return None

    def body_lines(self) -> List[str]:
        found = self.session.store.find(self.node_id) if self.session.store and self.node_id else None
        name = found.name if found is not None else "?"
        return [f"delete {name}? [y/n]"]

    def draw(self, frame: Frame, rect: Rect) -> None:
        self.backdrop.draw(frame, rect)
        box = rect.centered(self.width, 3)
        frame.box(box, self.title, self.style)
        frame.write(box.inner(), 0, self.body_lines()[0])
