"""Unbounded multi-producer, single-consumer channels.

``Channel`` is the building block for the command bus, the event source
output and the per-page response channels. Producers hold a ``Sender``;
the single consumer either drains synchronously (``drain``/``try_recv``) or
awaits the next value (``recv``). Once closed, sends raise ``ChannelClosed``
so background producers can tell that the consumer is gone.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

from reqdeck.core.commands import QUIET_COMMANDS, Command

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised when sending on a channel whose receiver is gone."""


class Channel(Generic[T]):
    def __init__(self) -> None:
        self._items: Deque[T] = deque()
        self._closed = False
        self._ready: Optional[asyncio.Event] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def sender(self) -> "Sender[T]":
        return Sender(self)

    def send(self, item: T) -> None:
        if self._closed:
            raise ChannelClosed("receiver dropped")
        self._items.append(item)
        if self._ready is not None:
            self._ready.set()

    def try_recv(self) -> Optional[T]:
        if self._items:
            return self._items.popleft()
        return None

    def drain(self) -> List[T]:
        items = list(self._items)
        self._items.clear()
        return items

    async def recv(self) -> Optional[T]:
        """Wait for the next item; ``None`` once closed and empty."""
        while not self._items:
            if self._closed:
                return None
            if self._ready is None:
                self._ready = asyncio.Event()
            self._ready.clear()
            await self._ready.wait()
        return self._items.popleft()

    def close(self) -> None:
        self._closed = True
        if self._ready is not None:
            self._ready.set()

    def __len__(self) -> int:
        return len(self._items)


class Sender(Generic[T]):
    """Producer handle; cheap to copy and hand to pages and tasks."""

    def __init__(self, channel: Channel[T]) -> None:
        self._channel = channel

    def send(self, item: T) -> None:
        self._channel.send(item)

    @property
    def closed(self) -> bool:
        return self._channel.closed


class CommandBus(Channel[Command]):
    def send(self, item: Command) -> None:
        if not isinstance(item, QUIET_COMMANDS):
            logger.debug("command enqueued: %r", item)
        super().send(item)
