"""Collection list: the landing page.

Lists every collection found on disk. Selecting one emits
``SelectCollection``; the create form persists a new collection and emits
``CreateCollection``; the edit form renames a collection in place. Errors received on the bus are shown in a popup that
any key dismisses.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from reqdeck.config import Action, Config
from reqdeck.core.commands import Command, CreateCollection, Error, Quit, SelectCollection
from reqdeck.core.storage import StorageEngine, StorageError
from reqdeck.models import Collection, CollectionInfo
from reqdeck.pages import Page
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.surface import Frame, Rect

logger = logging.getLogger(__name__)


class Mode(Enum):
    LIST = "list"
    CREATE = "create"
    EDIT = "edit"
    CONFIRM_DELETE = "confirm_delete"


class CollectionList(Page):
    def __init__(self, config: Config, storage: StorageEngine, collections: Optional[List[Collection]] = None):
        super().__init__()
        self.config = config
        self.storage = storage
        self.collections: List[Collection] = list(collections or [])
        self.hovered = 0
        self.mode = Mode.LIST
        self.error: Optional[str] = None
        # create and edit form state
        self.form_fields = ["", ""]
        self.form_focus = 0

    def update(self, payload=None) -> None:
        # coming back from a collection: pick up anything written meanwhile
        self.reload()

    def reload(self) -> None:
        self.collections = self.storage.load_collections()
        self.hovered = min(self.hovered, max(0, len(self.collections) - 1))

    def handle_command(self, command: Command) -> None:
        if isinstance(command, Error):
            self.error = command.message

    # --- keys ---

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        if self.error is not None:
            self.error = None
            return None
        if self.mode in (Mode.CREATE, Mode.EDIT):
            return self._handle_form_key(key)
        if self.mode is Mode.CONFIRM_DELETE:
            return self._handle_delete_key(key)

        action = self.config.action_for(key.chord)
        if action is Action.QUIT:
            return Quit()
        if action is Action.MOVE_DOWN and self.collections:
            self.hovered = min(self.hovered + 1, len(self.collections) - 1)
        elif action is Action.MOVE_UP:
            self.hovered = max(self.hovered - 1, 0)
        elif action is Action.SELECT and self.collections:
            return SelectCollection(self.collections[self.hovered])
        elif action is Action.CREATE_COLLECTION:
            self.mode = Mode.CREATE
        elif action is Action.DELETE_COLLECTION and self.collections:
            self.mode = Mode.CONFIRM_DELETE
        elif action is Action.EDIT_COLLECTION and self.collections:
            info = self.collections[self.hovered].info
            self.form_fields = [info.name, info.description]
            self.form_focus = 0
            self.mode = Mode.EDIT
        return None

    def _reset_form(self) -> None:
        self.form_fields = ["", ""]
        self.form_focus = 0

    def _handle_form_key(self, key: KeyEvent) -> Optional[Command]:
        if key.code == "esc" or key.chord == "ctrl+c":
            self._reset_form()
            self.mode = Mode.LIST
            return None
        if key.code in ("tab", "backtab"):
            self.form_focus = 1 - self.form_focus
        elif key.code == "backspace":
            self.form_fields[self.form_focus] = self.form_fields[self.form_focus][:-1]
        elif key.code == "enter" and self.mode is Mode.EDIT:
            return self._save_edit()
        elif key.code == "enter":
            name, description = self.form_fields
            try:
                collection = self.storage.create_collection(name, description)
            except StorageError as ex:
                return Error(str(ex))
            self.collections.append(collection)
            self._reset_form()
            self.mode = Mode.LIST
            return CreateCollection(collection)
        elif key.char is not None:
            self.form_fields[self.form_focus] += key.char
        return None

    def _save_edit(self) -> Optional[Command]:
        name, description = self.form_fields
        collection = self.collections[self.hovered]
        try:
            # the file may hold a newer tree than this listing
            if collection.path is not None:
                collection = self.storage.read(collection.path)
            collection.info = CollectionInfo(name=name or collection.info.name, description=description)
            if collection.path is not None:
                self.storage.write(collection.path, collection)
        except StorageError as ex:
            return Error(str(ex))
        logger.info("edited collection %s", collection.info.name)
        self.collections[self.hovered] = collection
        self._reset_form()
        self.mode = Mode.LIST
        return None

    def _handle_delete_key(self, key: KeyEvent) -> Optional[Command]:
        self.mode = Mode.LIST
        if key.code not in ("y", "Y"):
            return None
        collection = self.collections[self.hovered]
        try:
            if collection.path is not None:
                self.storage.delete(collection.path)
        except StorageError as ex:
            return Error(str(ex))
        self.collections.pop(self.hovered)
        self.hovered = max(0, min(self.hovered, len(self.collections) - 1))
        return None

    # --- drawing ---

    def draw(self, frame: Frame, rect: Rect) -> None:
        frame.box(rect, "collections", "blue")
        body = rect.inner()
        if not self.collections:
            frame.write(body, 0, "no collections yet, press n to create one", "dim")
        for row, collection in enumerate(self.collections[: body.height - 1]):
            hovered = row == self.hovered
            marker = "> " if hovered else "  "
            line = f"{marker}{collection.info.name}"
            if collection.info.description:
                line += f"  {collection.info.description}"
            frame.write(body, row, line, "bold" if hovered else "")
        frame.write(body, body.height - 1, "[n] new  [c] edit  [d] delete  [enter] open  [q] quit", "dim")

        if self.mode in (Mode.CREATE, Mode.EDIT):
            self._draw_form(frame, rect)
        elif self.mode is Mode.CONFIRM_DELETE:
            popup = rect.centered(50, 3)
            frame.box(popup, "delete", "red")
            name = self.collections[self.hovered].info.name
            frame.write(popup.inner(), 0, f"delete {name}? [y/n]")
        if self.error is not None:
            popup = rect.centered(min(rect.width, 60), 4)
            frame.box(popup, "error", "red")
            frame.write(popup.inner(), 0, self.error, "red")
            frame.write(popup.inner(), 1, "press any key to dismiss", "dim")

    def _draw_form(self, frame: Frame, rect: Rect) -> None:
        form = rect.centered(50, 6)
        frame.box(form, "edit collection" if self.mode is Mode.EDIT else "new collection", "green")
        inner = form.inner()
        labels = ("name", "description")
        for idx, label in enumerate(labels):
            frame.write(inner, idx * 2, f"{label}: {self.form_fields[idx]}", "bold" if idx == self.form_focus else "")
        focus_row = self.form_focus * 2
        frame.set_cursor(inner.x + len(labels[self.form_focus]) + 2 + len(self.form_fields[self.form_focus]), inner.y + focus_row)
        frame.write(inner, 3, "[Confirm: Enter] [Cancel: Esc]", "dim")
