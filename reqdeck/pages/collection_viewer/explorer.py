from __future__ import annotations

import logging
from typing import Optional

from reqdeck.config import Action, Config
from reqdeck.core.commands import Command, Quit, SelectRequest
from reqdeck.core.engine import RequestRunner
from reqdeck.pages import Page
from reqdeck.pages.collection_viewer.response_view import draw_response
from reqdeck.pages.collection_viewer.session import ViewerSession
from reqdeck.pages.routes import Routes, ViewerRoutes
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.router import NavigateTo, NavigateUp
from reqdeck.tui.surface import Frame, Rect

logger = logging.getLogger(__name__)

SIDEBAR_WIDTH = 32
REQUEST_LINE_HEIGHT = 3


class Explorer(Page):
    """Sidebar tree, request line and response pane of one collection."""

    def __init__(self, session: ViewerSession, config: Config, runner: RequestRunner):
        super().__init__()
        self.session = session
        self.config = config
        self.runner = runner

    def update(self, payload: Optional[str] = None) -> None:
        """``payload`` is the id a dialog just created, renamed or deleted."""
        store = self.session.store
        if store is None or payload is None:
            return
        if not store.contains(payload):
            self.session.forget(payload)
            return
        parent = store.parent_of(payload)
        if parent is not None:
            self.session.expanded.add(parent)
        self.session.hovered = payload

    # --- keys ---

    def _move(self, delta: int) -> None:
        rows = self.session.rows()
        if not rows:
            self.session.hovered = None
            return
        ids = [row.id for row in rows]
        if self.session.hovered not in ids:
            self.session.hovered = ids[0]
            return
        idx = ids.index(self.session.hovered) + delta
        self.session.hovered = ids[max(0, min(idx, len(ids) - 1))]

    def _insertion_parent(self) -> Optional[str]:
        """New items go inside the hovered directory, or next to the hovered request."""
        store, hovered = self.session.store, self.session.hovered
        if store is None or hovered is None:
            return None
        if self._hovered_is_dir():
            return hovered
        return store.parent_of(hovered)

    def _hovered_is_dir(self) -> bool:
        return any(row.id == self.session.hovered and row.is_dir for row in self.session.rows())

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        action = self.config.action_for(key.chord)
        store = self.session.store
        if action is Action.QUIT:
            return Quit()
        if action is Action.BACK:
            self.navigate(NavigateUp(Routes.COLLECTION_LIST))
            return None
        if store is None:
            return None

        if action is Action.MOVE_DOWN:
            self._move(1)
        elif action is Action.MOVE_UP:
            self._move(-1)
        elif action is Action.SELECT and self.session.hovered is not None:
            hovered = self.session.hovered
            if self._hovered_is_dir():
                self.session.expanded ^= {hovered}
            else:
                request = store.find_request(hovered)
                if request is not None:
                    return SelectRequest(request)
        elif action is Action.CREATE_REQUEST:
            self.navigate(NavigateTo(ViewerRoutes.CREATE_REQUEST, self._insertion_parent()))
        elif action is Action.CREATE_DIRECTORY:
            self.navigate(NavigateTo(ViewerRoutes.CREATE_DIRECTORY, self._insertion_parent()))
        elif action is Action.RENAME_DIRECTORY and self._hovered_is_dir():
            self.navigate(NavigateTo(ViewerRoutes.RENAME_DIRECTORY, self.session.hovered))
        elif action is Action.EDIT_REQUEST and self.session.selected is not None:
            self.navigate(NavigateTo(ViewerRoutes.EDIT_REQUEST, self.session.selected))
        elif action is Action.DELETE_ITEM and self.session.hovered is not None:
            self.navigate(NavigateTo(ViewerRoutes.DELETE_ITEM, self.session.hovered))
        elif action is Action.EDIT_HEADERS and self.session.selected is not None:
            self.navigate(NavigateTo(ViewerRoutes.EDIT_HEADERS, self.session.selected))
        elif action is Action.EDIT_BODY and self.session.selected is not None:
            self.navigate(NavigateTo(ViewerRoutes.EDIT_BODY, self.session.selected))
        elif action is Action.NEXT_RESPONSE_TAB:
            self.session.response_tab = self.session.response_tab.next()
        elif action is Action.CYCLE_METHOD and self.session.selected is not None:
            store.cycle_method(self.session.selected)
        elif action is Action.SEND_REQUEST:
            self.send_selected()
        return None

    def send_selected(self) -> None:
        selected = self.session.selected
        if selected is None or selected in self.session.pending:
            return
        request = self.session.store.find_request(selected)
        if request is None:
            return
        logger.debug("sending %s %s", request.method.value, request.uri)
        self.session.pending.add(selected)
        self.runner.handle_request(request, self.session.results.sender())

    # --- drawing ---

    def draw(self, frame: Frame, rect: Rect) -> None:
        store = self.session.store
        if store is None:
            frame.write(rect, 0, "no collection selected", "dim")
            return

        sidebar, main = rect.split_columns(SIDEBAR_WIDTH)
        self._draw_sidebar(frame, sidebar, store.info.name)

        request_line, response_area = main.split_rows(REQUEST_LINE_HEIGHT)
        frame.box(request_line, "request")
        request = store.find_request(self.session.selected) if self.session.selected else None
        if request is None:
            frame.write(request_line.inner(), 0, "select a request", "dim")
        else:
            frame.write(request_line.inner(), 0, f"{request.method.value:<7}", "bold magenta")
            frame.write(request_line.inner(), 0, request.uri, col=8)
            extras = f"{len(request.enabled_headers())} headers" + (", json body" if request.body is not None else "")
            col = request_line.inner().width - len(extras)
            if col > 8 + len(request.uri):
                frame.write(request_line.inner(), 0, extras, "dim", col=col)

        response = self.session.responses.get(self.session.selected) if self.session.selected else None
        pending = self.session.selected in self.session.pending
        draw_response(frame, response_area, response, pending, self.session.response_tab)

    def _draw_sidebar(self, frame: Frame, rect: Rect, title: str) -> None:
        frame.box(rect, title, "blue")
        inner = rect.inner()
        for row_idx, row in enumerate(self.session.rows()[: inner.height]):
            indent = "  " * row.depth
            if row.is_dir:
                label = f"{indent}{'▾' if row.expanded else '▸'} {row.name}"
            else:
                label = f"{indent}{row.method.value:<6} {row.name}"
                if row.id in self.session.pending:
                    label += " …"
            style = ""
            if row.id == self.session.selected:
                style = "bold"
            if row.id == self.session.hovered:
                style = "reverse"
            frame.write(inner, row_idx, label, style)
