"""Top-level application loop.

Each iteration waits for one event, turns it into page calls or commands,
then drains the command bus to empty and applies every effect before
checking whether to quit. Waiting on the event source is the loop's only
suspension point: draining and drawing are synchronous.
"""

from __future__ import annotations

import logging
from typing import Hashable, Optional

from reqdeck.core import commands
from reqdeck.core.bus import CommandBus
from reqdeck.core.events import Event, EventSource, Key, Render, Resize, Tick
from reqdeck.tui.router import NavigateTo, Router
from reqdeck.tui.surface import Frame, Size

logger = logging.getLogger(__name__)


class App:
    def __init__(
        self,
        router: Router,
        events: EventSource,
        screen=None,
        viewer_route: Optional[Hashable] = None,
        bus: Optional[CommandBus] = None,
    ):
        self.router = router
        self.events = events
        self.screen = screen
        self.viewer_route = viewer_route
        self.bus = bus or CommandBus()
        self.should_quit = False
        self.size = screen.size() if screen is not None else Size(80, 24)
        self.router.register_command_handler(self.bus.sender())

    async def run(self) -> None:
        """Run until a ``Quit`` command is processed or input ends."""
        self.events.start()
        self.router.resize(self.size)
        try:
            while not self.should_quit:
                event = await self.events.next()
                if event is None:
                    logger.info("event source closed, shutting down")
                    break
                self.handle_event(event)
                self.drain_commands()
        finally:
            self.events.close()
            # last chance for pages to persist what they hold
            self.router.on_leave()

    def handle_event(self, event: Event) -> None:
        if isinstance(event, Tick):
            self.bus.send(commands.Tick())
        elif isinstance(event, Render):
            self.bus.send(commands.Render())
        elif isinstance(event, Resize):
            self.size = event.size
            self.router.resize(event.size)
        elif isinstance(event, Key):
            command = self.router.handle_key_event(event.event)
            if command is not None:
                self.bus.send(command)

    def drain_commands(self) -> None:
        # commands sent while applying effects are picked up in the same pass
        while (command := self.bus.try_recv()) is not None:
            self.apply(command)

    def apply(self, command: commands.Command) -> None:
        if isinstance(command, commands.Quit):
            self.should_quit = True
        elif isinstance(command, commands.Tick):
            self.router.tick()
        elif isinstance(command, commands.Render):
            self.draw()
        elif isinstance(command, commands.Error):
            logger.error("%s", command.message)
            self.router.handle_command(command)
        elif isinstance(command, (commands.SelectCollection, commands.CreateCollection)):
            logger.debug("opening collection %s", command.collection.info.name)
            if self.viewer_route is None:
                self.router.handle_command(command)
            else:
                self.router.navigate(NavigateTo(self.viewer_route, command.collection))
        else:
            self.router.handle_command(command)

    def draw(self) -> None:
        frame = Frame(self.size)
        try:
            self.router.draw(frame, frame.area)
        except Exception as e:
            logger.exception("failed to draw")
            self.bus.send(commands.Error(f"Failed to draw: {e}"))
            return
        if self.screen is not None:
            self.screen.present(frame)
