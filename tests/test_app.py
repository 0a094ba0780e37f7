import pytest

from reqdeck.app import App
from reqdeck.core import commands
from reqdeck.core.events import Key, Render, Resize, Tick
from reqdeck.models import Collection, CollectionInfo
from reqdeck.pages import Page
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.router import NavigateTo, Router, UnknownRouteError
from reqdeck.tui.surface import Size


class ScriptedEvents:
    def __init__(self, events):
        self.events = list(events)
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    async def next(self):
        if not self.events:
            return None
        return self.events.pop(0)

    def close(self):
        self.closed = True


class FakeScreen:
    def __init__(self, size=Size(80, 24)):
        self._size = size
        self.frames = []

    def size(self):
        return self._size

    def present(self, frame):
        self.frames.append(frame)


class ScriptedPage(Page):
    """Reacts to each key with a scripted callable."""

    def __init__(self, on_key=None, text="page"):
        super().__init__()
        self.on_key = on_key
        self.text = text
        self.commands_seen = []
        self.ticks = 0

    def handle_key_event(self, key):
        if self.on_key is not None:
            return self.on_key(self, key)
        return None

    def handle_command(self, command):
        self.commands_seen.append(command)

    def tick(self):
        self.ticks += 1

    def draw(self, frame, rect):
        frame.write(rect, 0, self.text)


def make_app(page, events, screen=None):
    router = Router()
    router.add_route("main", page)
    return App(router, ScriptedEvents(events), screen=screen)


@pytest.mark.asyncio
async def test_every_queued_command_is_applied_before_quitting():
    def burst(page, key):
        for i in range(5):
            page.send(commands.Error(f"e{i}"))
        return commands.Quit()

    page = ScriptedPage(on_key=burst)
    app = make_app(page, [Key(KeyEvent("x")), Key(KeyEvent("never"))])
    await app.run()

    assert app.should_quit
    assert [c.message for c in page.commands_seen] == [f"e{i}" for i in range(5)]
    assert app.events.closed
    # the second key was never consumed
    assert len(app.events.events) == 1


@pytest.mark.asyncio
async def test_end_of_events_stops_the_loop():
    page = ScriptedPage()
    app = make_app(page, [Tick(), Tick()])
    await app.run()
    assert page.ticks == 2
    assert not app.should_quit
    assert app.events.closed


@pytest.mark.asyncio
async def test_render_presents_a_frame():
    screen = FakeScreen(Size(30, 5))
    app = make_app(ScriptedPage(text="hello"), [Render()], screen=screen)
    await app.run()
    assert len(screen.frames) == 1
    assert screen.frames[0].row_text(0).startswith("hello")


@pytest.mark.asyncio
async def test_resize_changes_frame_size():
    screen = FakeScreen(Size(30, 5))
    app = make_app(ScriptedPage(), [Resize(Size(50, 8)), Render()], screen=screen)
    await app.run()
    assert screen.frames[0].size == Size(50, 8)


@pytest.mark.asyncio
async def test_draw_failure_becomes_error_command():
    class Broken(ScriptedPage):
        def draw(self, frame, rect):
            raise ValueError("boom")

    page = Broken()
    screen = FakeScreen()
    app = make_app(page, [Render()], screen=screen)
    await app.run()

    assert screen.frames == []
    assert page.commands_seen == [commands.Error("Failed to draw: boom")]


@pytest.mark.asyncio
async def test_unknown_route_propagates_out_of_run():
    def lost(page, key):
        page.navigate(NavigateTo("missing"))

    app = make_app(ScriptedPage(on_key=lost), [Key(KeyEvent("x"))])
    with pytest.raises(UnknownRouteError):
        await app.run()
    assert app.events.closed


@pytest.mark.asyncio
async def test_selected_collection_opens_viewer_route():
    class Viewer(ScriptedPage):
        def update(self, payload=None):
            self.opened = payload

    collection = Collection(info=CollectionInfo(name="api"))
    home = ScriptedPage(on_key=lambda page, key: commands.SelectCollection(collection))
    viewer = Viewer()
    router = Router()
    router.add_route("home", home)
    router.add_route("viewer", viewer)
    app = App(router, ScriptedEvents([Key(KeyEvent("enter"))]), viewer_route="viewer")
    await app.run()

    assert router.active is viewer
    assert viewer.opened is collection
