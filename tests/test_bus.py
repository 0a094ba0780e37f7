import asyncio
import logging

import pytest

from reqdeck.core.bus import Channel, ChannelClosed, CommandBus
from reqdeck.core.commands import Quit, Render, Tick


def test_channel_is_fifo():
    channel = Channel()
    sender = channel.sender()
    for i in range(3):
        sender.send(i)
    assert [channel.try_recv() for _ in range(3)] == [0, 1, 2]
    assert channel.try_recv() is None


def test_drain_empties_channel():
    bus = CommandBus()
    bus.send(Render())
    bus.send(Quit())
    assert bus.drain() == [Render(), Quit()]
    assert len(bus) == 0


def test_send_after_close_raises():
    channel = Channel()
    sender = channel.sender()
    channel.close()
    assert sender.closed
    with pytest.raises(ChannelClosed):
        sender.send("late")


@pytest.mark.asyncio
async def test_recv_waits_for_send():
    channel = Channel()

    async def produce():
        await asyncio.sleep(0.01)
        channel.send("hello")

    task = asyncio.create_task(produce())
    assert await asyncio.wait_for(channel.recv(), timeout=1) == "hello"
    await task


@pytest.mark.asyncio
async def test_recv_returns_none_once_closed_and_empty():
    channel = Channel()
    channel.send("last")

    async def close_later():
        await asyncio.sleep(0.01)
        channel.close()

    task = asyncio.create_task(close_later())
    assert await channel.recv() == "last"
    assert await asyncio.wait_for(channel.recv(), timeout=1) is None
    await task


def test_tick_and_render_are_not_debug_logged(caplog):
    caplog.set_level(logging.DEBUG, logger="reqdeck.core.bus")
    bus = CommandBus()
    bus.send(Tick())
    bus.send(Render())
    bus.send(Quit())

    messages = [record.getMessage() for record in caplog.records if record.name == "reqdeck.core.bus"]
    assert len(messages) == 1
    assert "Quit" in messages[0]
    assert len(bus) == 3
