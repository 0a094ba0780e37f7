"""Screens of the application and the contract the router drives them with."""

from __future__ import annotations

from typing import Any, Callable, Optional

from reqdeck.core.bus import Sender
from reqdeck.core.commands import Command
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.surface import Frame, Rect, Size


class Page:
    """A navigable screen.

    Every hook has a no-op default so a page only overrides what it cares
    about. A page must be usable before it is ever activated: ``draw`` on a
    page that never received ``update`` has to render a sensible empty state.
    """

    def __init__(self) -> None:
        self.navigator: Optional[Callable[[Any], None]] = None
        self.commands: Optional[Sender[Command]] = None

    def attach_navigator(self, navigator: Callable[[Any], None]) -> None:
        self.navigator = navigator

    def register_command_handler(self, sender: Sender[Command]) -> None:
        self.commands = sender

    def navigate(self, navigation) -> None:
        if self.navigator is None:
            raise RuntimeError(f"{type(self).__name__} is not attached to a router")
        self.navigator(navigation)

    def send(self, command: Command) -> None:
        if self.commands is not None:
            self.commands.send(command)

    def update(self, payload: Any = None) -> None:
        """Receive the payload of the navigation that activated this page."""

    def draw(self, frame: Frame, rect: Rect) -> None:
        pass

    def resize(self, size: Size) -> None:
        pass

    def tick(self) -> None:
        pass

    def on_leave(self) -> None:
        """Called when this page stops being the active one, and on shutdown."""

    def handle_command(self, command: Command) -> None:
        pass

    def handle_key_event(self, key: KeyEvent) -> Optional[Command]:
        return None
