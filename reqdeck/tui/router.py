"""Page routing.

A ``Router`` owns a fixed set of pages registered at startup and forwards
drawing, keys, ticks, resizes and commands to the active one only. Pages ask
for navigation through the navigator the router attaches to them; requests
are queued and applied once the page hands control back, so a page is never
swapped out from under itself.

Routers nest: a router registered as a route of another router receives that
parent's queue as its navigator, and ``NavigateUp`` re-emits there as a
``NavigateTo``.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Hashable, Optional, Union

from reqdeck.core.bus import Sender
from reqdeck.core.commands import Command
from reqdeck.pages import Page
from reqdeck.pages.terminal_too_small import TerminalTooSmall
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.surface import Frame, Rect, Size

logger = logging.getLogger(__name__)


class UnknownRouteError(RuntimeError):
    """Navigation to a key no page was registered under."""


@dataclass(frozen=True)
class NavigateTo:
    key: Hashable
    payload: Any = None


@dataclass(frozen=True)
class NavigateUp:
    key: Hashable
    payload: Any = None


Navigation = Union[NavigateTo, NavigateUp]


class Router(Page):
    def __init__(self, min_size: Optional[Size] = None):
        super().__init__()
        self.routes: Dict[Hashable, Page] = {}
        self.active_key: Optional[Hashable] = None
        self.size: Optional[Size] = None
        self.min_size = min_size
        self.too_small = TerminalTooSmall(min_size) if min_size else None
        self._pending: Deque[Navigation] = deque()

    def add_route(self, key: Hashable, page: Page) -> None:
        page.attach_navigator(self._pending.append)
        if self.commands is not None:
            page.register_command_handler(self.commands)
        self.routes[key] = page
        if self.active_key is None:
            self.active_key = key

    def register_command_handler(self, sender: Sender[Command]) -> None:
        super().register_command_handler(sender)
        for page in self.routes.values():
            page.register_command_handler(sender)

    @property
    def active(self) -> Optional[Page]:
        if self.active_key is None:
            return None
        return self.routes[self.active_key]

    def navigate(self, navigation: Navigation) -> None:
        self._pending.append(navigation)
        self._flush()

    def _flush(self) -> None:
        while self._pending:
            navigation = self._pending.popleft()
            if isinstance(navigation, NavigateUp):
                if self.navigator is None:
                    logger.error("cannot navigate up to %r: router has no parent", navigation.key)
                    continue
                self.navigator(NavigateTo(navigation.key, navigation.payload))
            else:
                self._go(navigation.key, navigation.payload)

    def _go(self, key: Hashable, payload: Any) -> None:
        if key not in self.routes:
            raise UnknownRouteError(f"tried to navigate to an unknown route: {key!r}")
        logger.debug("navigating from %r to %r", self.active_key, key)
        if self.active is not None and key != self.active_key:
            self.active.on_leave()
        self.active_key = key
        page = self.routes[key]
        if self.size is not None:
            page.resize(self.size)
        page.update(payload)

    # --- forwarded to the active page only ---

    def draw(self, frame: Frame, rect: Rect) -> None:
        if self.too_small is not None and (
            rect.width < self.min_size.width or rect.height < self.min_size.height
        ):
            self.too_small.draw(frame, rect)
            return
        if self.active is not None:
            self.active.draw(frame, rect)

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        if self.active is None:
            return None
        result = self.active.handle_key_event(key)
        self._flush()
        return result

    def handle_command(self, command: Command) -> None:
        if self.active is not None:
            self.active.handle_command(command)
        self._flush()

    def tick(self) -> None:
        if self.active is not None:
            self.active.tick()
        self._flush()

    def resize(self, size: Size) -> None:
        self.size = size
        if self.active is not None:
            self.active.resize(size)

    def on_leave(self) -> None:
        if self.active is not None:
            self.active.on_leave()
