"""Event source merging terminal input, a tick timer and a render timer.

All three producers feed one unbounded channel. Every iteration of the
merging task waits for whichever producer is ready first, forwards what it
produced, and re-arms only that producer, so a chatty producer never starves
the others.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from reqdeck.core.bus import Channel, ChannelClosed
from reqdeck.tui.keys import InputParseError, KeyEvent
from reqdeck.tui.surface import Size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Key:
    event: KeyEvent


@dataclass(frozen=True)
class Resize:
    size: Size


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Render:
    pass


Event = Union[Key, Resize, Tick, Render]


class InputSource(Protocol):
    async def read(self) -> Optional[Union[Key, Resize]]:
        """Next input event, ``None`` at end of input.

        May raise ``InputParseError`` for bytes that are not a known key.
        """


class EventSource:
    def __init__(self, input_source: InputSource, tick_rate: float = 30.0, frame_rate: float = 60.0):
        self.input_source = input_source
        self.tick_delay = 1.0 / tick_rate
        self.render_delay = 1.0 / frame_rate
        self._channel: Channel[Event] = Channel()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            logger.debug("event source already started")
            return
        self._task = asyncio.get_running_loop().create_task(self._pump())

    async def next(self) -> Optional[Event]:
        return await self._channel.recv()

    def close(self) -> None:
        self._channel.close()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _read_input(self) -> Optional[Union[Key, Resize]]:
        while True:
            try:
                return await self.input_source.read()
            except InputParseError as e:
                logger.debug("dropping unparsable input: %s", e)

    async def _pump(self) -> None:
        producers = {
            "input": self._read_input,
            "tick": lambda: asyncio.sleep(self.tick_delay, Tick()),
            "render": lambda: asyncio.sleep(self.render_delay, Render()),
        }
        pending = {asyncio.ensure_future(factory()): name for name, factory in producers.items()}
        try:
            while True:
                done, _ = await asyncio.wait(pending.keys(), return_when=asyncio.FIRST_COMPLETED)
                for fut in done:
                    name = pending.pop(fut)
                    event = fut.result()
                    if event is None:
                        # input exhausted: nothing else will ever drive the app
                        logger.debug("input source closed")
                        self._channel.close()
                        return
                    try:
                        self._channel.send(event)
                    except ChannelClosed:
                        logger.debug("event channel closed, stopping %s producer", name)
                        return
                    pending[asyncio.ensure_future(producers[name]())] = name
        finally:
            for fut in pending:
                fut.cancel()
