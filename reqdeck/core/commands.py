"""Vocabulary of intents flowing through the command bus.

Producers (pages, background tasks, the application loop itself) only
enqueue these values; the application loop is the only consumer and the only
place where their effects are applied.
"""

from __future__ import annotations

from dataclasses import dataclass

from reqdeck.models import Collection, Request


class Command:
    """Base class for every command sent on the bus."""


@dataclass(frozen=True)
class Quit(Command):
    pass


@dataclass(frozen=True)
class Tick(Command):
    pass


@dataclass(frozen=True)
class Render(Command):
    pass


@dataclass(frozen=True)
class Error(Command):
    message: str


@dataclass(frozen=True)
class SelectCollection(Command):
    collection: Collection


@dataclass(frozen=True)
class CreateCollection(Command):
    collection: Collection


@dataclass(frozen=True)
class SelectRequest(Command):
    request: Request


# high frequency, low information: never debug-logged
QUIET_COMMANDS = (Tick, Render)
