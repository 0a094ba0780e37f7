"""Collection viewer: a nested router over the explorer and its dialogs.

The viewer owns the session shared by its pages, drains finished responses
into it on every tick and frame, and writes the collection back to disk in a
worker thread whenever the store changed since the last save.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from reqdeck.config import Config
from reqdeck.core.commands import Command, Error, SelectRequest
from reqdeck.core.engine import RequestRunner
from reqdeck.core.storage import StorageEngine, StorageError
from reqdeck.core.store import CollectionStore
from reqdeck.models import Collection
from reqdeck.pages.collection_viewer.explorer import Explorer
from reqdeck.pages.collection_viewer.forms import (
    CreateDirectoryForm,
    CreateRequestForm,
    DeleteItemPrompt,
    EditRequestForm,
    RenameDirectoryForm,
)
from reqdeck.pages.collection_viewer.request_editor import BodyEditor, HeadersEditor
from reqdeck.pages.collection_viewer.session import ViewerSession
from reqdeck.pages.routes import ViewerRoutes
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.router import NavigateTo, Router
from reqdeck.tui.surface import Frame, Rect

logger = logging.getLogger(__name__)


class CollectionViewer(Router):
    def __init__(self, config: Config, storage: StorageEngine, runner: RequestRunner):
        super().__init__()
        self.config = config
        self.storage = storage
        self.session = ViewerSession()
        self.error: Optional[str] = None
        self._saving: Optional[asyncio.Task] = None
        self._write_lock = threading.Lock()
        self._failed_version: Optional[int] = None

        self.explorer = Explorer(self.session, config, runner)
        self.add_route(ViewerRoutes.EXPLORER, self.explorer)
        self.add_route(ViewerRoutes.CREATE_DIRECTORY, CreateDirectoryForm(self.session, self.explorer))
        self.add_route(ViewerRoutes.RENAME_DIRECTORY, RenameDirectoryForm(self.session, self.explorer))
        self.add_route(ViewerRoutes.CREATE_REQUEST, CreateRequestForm(self.session, self.explorer))
        self.add_route(ViewerRoutes.EDIT_REQUEST, EditRequestForm(self.session, self.explorer))
        self.add_route(ViewerRoutes.DELETE_ITEM, DeleteItemPrompt(self.session, self.explorer))
        self.add_route(ViewerRoutes.EDIT_HEADERS, HeadersEditor(self.session, self.explorer))
        self.add_route(ViewerRoutes.EDIT_BODY, BodyEditor(self.session, self.explorer))

    def update(self, payload: Optional[Collection] = None) -> None:
        if payload is None:
            return
        self.flush()
        logger.info("opening collection %s", payload.info.name)
        self.session.reset(CollectionStore(payload))
        self.error = None
        self._failed_version = None
        self.navigate(NavigateTo(ViewerRoutes.EXPLORER))

    def handle_command(self, command: Command) -> None:
        store = self.session.store
        if isinstance(command, SelectRequest) and store is not None and store.contains(command.request.id):
            self.session.selected = command.request.id
        elif isinstance(command, Error):
            self.error = command.message
        super().handle_command(command)

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        if self.error is not None:
            self.error = None
            return None
        return super().handle_key_event(key)

    def tick(self) -> None:
        self.session.collect_responses()
        self.autosave()
        super().tick()

    def draw(self, frame: Frame, rect: Rect) -> None:
        self.session.collect_responses()
        super().draw(frame, rect)
        if self.error is not None:
            popup = rect.centered(min(60, rect.width), 5)
            frame.box(popup, "error", "red")
            frame.write(popup.inner(), 0, self.error, "red")
            frame.write(popup.inner(), 2, "press any key to dismiss", "dim")

    # --- persistence ---

    def _dirty(self) -> bool:
        store = self.session.store
        if store is None or store.path is None or self.storage.dry_run:
            return False
        return store.version != store.saved_version

    def _write(self, store: CollectionStore) -> None:
        # runs on the loop thread (flush) and on a worker (autosave)
        with self._write_lock:
            version, collection = store.snapshot()
            if version <= store.saved_version:
                return
            self.storage.write(collection.path, collection)
            store.saved_version = version

    def autosave(self) -> None:
        if self._saving is not None or not self._dirty():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        store = self.session.store
        self._saving = loop.create_task(asyncio.to_thread(self._write, store))
        self._saving.add_done_callback(lambda task: self._saved(task, store))

    def _saved(self, task: asyncio.Task, store: CollectionStore) -> None:
        self._saving = None
        if task.cancelled():
            return
        ex = task.exception()
        if ex is not None:
            self._report(store, ex)

    def _report(self, store: CollectionStore, ex: Exception) -> None:
        # the next tick retries; only tell the user once per failing version
        if self._failed_version == store.version:
            logger.debug("save still failing: %s", ex)
            return
        self._failed_version = store.version
        logger.error("save failed: %s", ex)
        self.send(Error(f"Failed to save collection: {ex}"))

    def flush(self) -> None:
        """Write pending changes synchronously."""
        if not self._dirty():
            return
        store = self.session.store
        try:
            self._write(store)
        except StorageError as ex:
            self._report(store, ex)

    def on_leave(self) -> None:
        self.flush()
        super().on_leave()
