"""Non-blocking terminal input for the asyncio loop.

stdin is watched with ``loop.add_reader``; every readable chunk is decoded
into key events and queued. Window size changes arrive through ``SIGWINCH``
and are queued as ``Resize`` events carrying the new size.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
from typing import Optional, Union

from reqdeck.core.events import Key, Resize
from reqdeck.tui.keys import InputParseError, decode_keys
from reqdeck.tui.surface import Size

logger = logging.getLogger(__name__)

READ_CHUNK = 1024


class TerminalInput:
    def __init__(self, fd: int):
        self.fd = fd
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def attach(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self.fd, self._on_readable)
        self._loop.add_signal_handler(signal.SIGWINCH, self._on_resize)

    def detach(self) -> None:
        if self._loop is None:
            return
        self._loop.remove_reader(self.fd)
        self._loop.remove_signal_handler(signal.SIGWINCH)
        self._loop = None

    def _on_readable(self) -> None:
        data = os.read(self.fd, READ_CHUNK)
        if not data:
            self._queue.put_nowait(None)
            self.detach()
            return
        for item in decode_keys(data):
            self._queue.put_nowait(item if isinstance(item, InputParseError) else Key(item))

    def _on_resize(self) -> None:
        columns, rows = shutil.get_terminal_size()
        self._queue.put_nowait(Resize(Size(columns, rows)))

    async def read(self) -> Optional[Union[Key, Resize]]:
        item = await self._queue.get()
        if isinstance(item, InputParseError):
            raise item
        return item
