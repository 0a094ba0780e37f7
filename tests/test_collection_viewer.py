import asyncio

import httpx
import pytest

from reqdeck.config import Config
from reqdeck.core.bus import CommandBus
from reqdeck.core.commands import Error, Quit, SelectRequest
from reqdeck.core.engine import RequestRunner
from reqdeck.core.storage import StorageEngine, StorageError
from reqdeck.core.store import UNNAMED_DIRECTORY
from reqdeck.models import (
    BodyKind,
    Collection,
    CollectionInfo,
    Directory,
    HeaderEntry,
    Request,
    RequestMethod,
    Response,
)
from reqdeck.pages.collection_viewer.forms import CreateDirectoryForm
from reqdeck.pages.collection_viewer.request_editor import HeadersMode
from reqdeck.pages.collection_viewer.session import ResponseTab
from reqdeck.pages.collection_viewer.viewer import CollectionViewer
from reqdeck.pages.routes import ViewerRoutes
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.surface import Frame, Size


def sample_collection():
    return Collection(
        info=CollectionInfo(name="api"),
        requests=[
            Request(id="r1", name="ping", uri="http://api.test/ping"),
            Directory(id="d1", name="users", requests=[Request(id="r2", name="list users")]),
        ],
    )


def make_viewer(tmp_path, handler=None, dry_run=True):
    handler = handler or (lambda request: httpx.Response(200, json={"pong": True}))
    runner = RequestRunner(transport=httpx.MockTransport(handler))
    storage = StorageEngine(tmp_path, dry_run=dry_run)
    return CollectionViewer(Config(collections_dir=tmp_path), storage, runner)


def press(viewer, *codes):
    results = []
    for code in codes:
        results.append(viewer.handle_key_event(KeyEvent(code)))
    return results


@pytest.fixture
def viewer(tmp_path):
    viewer = make_viewer(tmp_path)
    viewer.update(sample_collection())
    return viewer


def test_opening_a_collection_hovers_and_selects_first_request(viewer):
    assert viewer.active_key == ViewerRoutes.EXPLORER
    assert viewer.session.hovered == "r1"
    assert viewer.session.selected == "r1"


def test_empty_directory_name_is_stored_as_unnamed(viewer):
    before = set(viewer.session.store.ids())
    press(viewer, "f")
    assert viewer.active_key == ViewerRoutes.CREATE_DIRECTORY
    press(viewer, "enter")

    (new_id,) = set(viewer.session.store.ids()) - before
    assert viewer.session.store.find(new_id).name == UNNAMED_DIRECTORY
    assert viewer.active_key == ViewerRoutes.EXPLORER
    assert viewer.session.hovered == new_id


def test_escape_cancels_directory_form_without_changes(viewer):
    before = viewer.session.store.ids()
    press(viewer, "f", "a", "b", "c")
    form = viewer.active
    assert isinstance(form, CreateDirectoryForm)
    assert form.dir_name == "abc"

    press(viewer, "esc")
    assert viewer.active_key == ViewerRoutes.EXPLORER
    assert viewer.session.store.ids() == before
    assert form.dir_name == ""


def test_new_request_goes_into_hovered_directory(viewer):
    press(viewer, "j")
    assert viewer.session.hovered == "d1"
    press(viewer, "r", "n", "e", "w", "enter")

    new_id = viewer.session.hovered
    assert viewer.session.store.parent_of(new_id) == "d1"
    assert viewer.session.store.find_request(new_id).name == "new"
    assert "d1" in viewer.session.expanded


def test_rename_directory_prefills_name(viewer):
    press(viewer, "j", "e")
    assert viewer.active.dir_name == "users"
    press(viewer, "backspace", "backspace", "backspace", "backspace", "backspace", "t", "e", "a", "m", "enter")
    assert viewer.session.store.find("d1").name == "team"


def test_edit_request_cycles_method_in_form(viewer):
    press(viewer, "i")
    assert viewer.active.name == "ping"
    press(viewer, "tab", "tab", "right", "enter")
    assert viewer.session.store.find_request("r1").method == RequestMethod.POST


def test_cycle_method_key(viewer):
    press(viewer, "m")
    assert viewer.session.store.find_request("r1").method == RequestMethod.POST


def test_delete_prompt(viewer):
    press(viewer, "j", "x", "n")
    assert viewer.session.store.contains("d1")

    press(viewer, "x", "y")
    assert not viewer.session.store.contains("d1")
    assert not viewer.session.store.contains("r2")
    assert viewer.session.hovered == "r1"


def test_deleting_selected_request_clears_selection(viewer):
    press(viewer, "x", "y")
    assert viewer.session.selected is None
    assert viewer.session.hovered == "d1"


def test_select_request_command_changes_selection(viewer):
    press(viewer, "j", "enter")
    assert "d1" in viewer.session.expanded
    (command,) = press(viewer, "j", "enter")[1:]
    assert command == SelectRequest(viewer.session.store.find_request("r2"))

    viewer.handle_command(command)
    assert viewer.session.selected == "r2"


def test_quit_key_returns_quit(viewer):
    assert press(viewer, "q") == [Quit()]


def test_error_popup_swallows_next_key(viewer):
    viewer.handle_command(Error("disk full"))
    frame = Frame(Size(100, 30))
    viewer.draw(frame, frame.area)
    assert any("disk full" in frame.row_text(y) for y in range(30))

    assert press(viewer, "q") == [None]
    assert viewer.error is None


def test_draw_shows_tree_and_request_line(viewer):
    frame = Frame(Size(100, 30))
    viewer.draw(frame, frame.area)
    text = "\n".join(frame.row_text(y) for y in range(30))
    assert "ping" in text
    assert "users" in text
    assert "http://api.test/ping" in text


@pytest.mark.asyncio
async def test_send_request_stores_response(tmp_path):
    viewer = make_viewer(tmp_path)
    viewer.update(sample_collection())
    press(viewer, "s")
    assert "r1" in viewer.session.pending
    # a second send while pending is ignored
    press(viewer, "s")

    for _ in range(100):
        await asyncio.sleep(0.01)
        viewer.tick()
        if "r1" in viewer.session.responses:
            break

    response = viewer.session.responses["r1"]
    assert response.status == 200
    assert "r1" not in viewer.session.pending


@pytest.mark.asyncio
async def test_failed_request_is_shown_as_error(tmp_path):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    viewer = make_viewer(tmp_path, handler)
    viewer.update(sample_collection())
    press(viewer, "s")
    for _ in range(100):
        await asyncio.sleep(0.01)
        viewer.tick()
        if "r1" in viewer.session.responses:
            break

    assert viewer.session.responses["r1"].is_error
    frame = Frame(Size(100, 30))
    viewer.draw(frame, frame.area)
    assert any("refused" in frame.row_text(y) for y in range(30))


def test_changes_are_saved_on_tick(tmp_path):
    viewer = make_viewer(tmp_path, dry_run=False)
    collection = viewer.storage.create_collection("api")
    viewer.update(collection)

    press(viewer, "f", "d", "o", "c", "s", "enter")
    viewer.tick()

    saved = viewer.storage.read(collection.path)
    assert [item.name for item in saved.requests] == ["docs"]


@pytest.mark.asyncio
async def test_autosave_runs_in_worker_thread(tmp_path):
    viewer = make_viewer(tmp_path, dry_run=False)
    collection = viewer.storage.create_collection("api")
    viewer.update(collection)

    viewer.session.store.create_request("health", uri="http://api.test/health")
    viewer.tick()
    assert viewer._saving is not None
    await viewer._saving

    saved = viewer.storage.read(collection.path)
    assert saved.requests[0].name == "health"


class FlakyStorage(StorageEngine):
    """Fails the first ``failures`` writes, then behaves."""

    def __init__(self, path, failures=1):
        super().__init__(path)
        self.failures = failures

    def write(self, path, collection):
        if self.failures:
            self.failures -= 1
            raise StorageError("disk full")
        super().write(path, collection)


def test_failed_save_is_retried_on_next_tick(tmp_path):
    viewer = make_viewer(tmp_path, dry_run=False)
    collection = viewer.storage.create_collection("api")
    viewer.storage = FlakyStorage(tmp_path, failures=2)
    viewer.update(collection)
    bus = CommandBus()
    viewer.register_command_handler(bus.sender())

    press(viewer, "f", "d", "o", "c", "s", "enter")
    viewer.tick()
    viewer.tick()
    # reported once for the version that keeps failing
    (error,) = bus.drain()
    assert isinstance(error, Error)
    assert "disk full" in error.message
    assert viewer.storage.read(collection.path).requests == []

    viewer.tick()
    saved = viewer.storage.read(collection.path)
    assert [item.name for item in saved.requests] == ["docs"]
    assert viewer.session.store.saved_version == viewer.session.store.version


def test_leaving_the_viewer_writes_pending_changes(tmp_path):
    viewer = make_viewer(tmp_path, dry_run=False)
    collection = viewer.storage.create_collection("api")
    viewer.update(collection)

    viewer.session.store.create_directory("dir")
    viewer.on_leave()

    saved = viewer.storage.read(collection.path)
    assert [item.name for item in saved.requests] == ["dir"]


def test_deleting_a_directory_drops_responses_of_its_requests(viewer):
    viewer.session.responses["r1"] = Response(request_id="r1", status=200)
    viewer.session.responses["r2"] = Response(request_id="r2", status=200)

    press(viewer, "j", "x", "y")

    assert "r2" not in viewer.session.responses
    assert "r1" in viewer.session.responses


def open_headers(viewer):
    press(viewer, "h")
    assert viewer.active_key == ViewerRoutes.EDIT_HEADERS
    return viewer.active


def test_headers_editor_adds_a_header(viewer):
    editor = open_headers(viewer)
    press(viewer, "n", "X", "-", "A", "tab", "1", "enter")

    assert editor.mode is HeadersMode.LIST
    (header,) = viewer.session.store.find_request("r1").headers
    assert (header.name, header.value, header.enabled) == ("X-A", "1", True)

    press(viewer, "esc")
    assert viewer.active_key == ViewerRoutes.EXPLORER


def test_headers_editor_requires_name_and_value(viewer):
    editor = open_headers(viewer)
    press(viewer, "n", "X", "enter")

    assert editor.mode is HeadersMode.FORM
    assert editor.message == "name and value are required"
    assert viewer.session.store.find_request("r1").headers == []


def test_headers_editor_toggles_edits_and_deletes(viewer):
    viewer.session.store.update_request(
        "r1", headers=[HeaderEntry(name="A", value="1"), HeaderEntry(name="B", value="2")]
    )
    editor = open_headers(viewer)

    press(viewer, "j", " ")
    assert [h.enabled for h in viewer.session.store.find_request("r1").headers] == [True, False]

    press(viewer, "enter", "tab", "backspace", "9", "enter")
    edited = viewer.session.store.find_request("r1").headers[1]
    assert (edited.name, edited.value, edited.enabled) == ("B", "9", False)

    press(viewer, "k", "d")
    assert editor.mode is HeadersMode.DELETE
    press(viewer, "n")
    assert len(viewer.session.store.find_request("r1").headers) == 2
    press(viewer, "d", "y")
    assert [h.name for h in viewer.session.store.find_request("r1").headers] == ["B"]


def test_headers_form_escape_keeps_headers(viewer):
    editor = open_headers(viewer)
    press(viewer, "n", "X", "tab", "1", "esc")
    assert editor.mode is HeadersMode.LIST
    assert viewer.session.store.find_request("r1").headers == []


def test_body_editor_saves_json_body(viewer):
    press(viewer, "b")
    assert viewer.active_key == ViewerRoutes.EDIT_BODY
    press(viewer, "{", "enter", "tab", '"', "a", '"', ":", " ", "1", "enter", "}")
    viewer.handle_key_event(KeyEvent("s", ctrl=True))

    request = viewer.session.store.find_request("r1")
    assert request.body_kind == BodyKind.JSON
    assert request.body == '{\n  "a": 1\n}'
    assert viewer.active_key == ViewerRoutes.EXPLORER


def test_body_editor_clearing_the_buffer_removes_the_body(viewer):
    viewer.session.store.update_request("r1", body="{}", body_kind=BodyKind.JSON)
    press(viewer, "b", "backspace", "backspace", "backspace")
    viewer.handle_key_event(KeyEvent("s", ctrl=True))

    request = viewer.session.store.find_request("r1")
    assert request.body_kind == BodyKind.NO_BODY
    assert request.body is None


def test_body_editor_escape_discards_changes(viewer):
    press(viewer, "b", "{", "}", "esc")
    request = viewer.session.store.find_request("r1")
    assert request.body is None
    assert viewer.active_key == ViewerRoutes.EXPLORER


def test_body_editor_joins_lines_on_backspace(viewer):
    press(viewer, "b", "a", "enter", "b")
    editor = viewer.active
    assert editor.lines == ["a", "b"]
    press(viewer, "home", "backspace")
    assert editor.lines == ["ab"]
    assert editor.col == 1


def test_tab_cycles_response_views(viewer):
    viewer.session.responses["r1"] = Response(
        request_id="r1",
        status=200,
        body='{"a":1}',
        pretty_body='{\n  "a": 1\n}',
        headers=(("x-trace", "abc"),),
    )

    def screen_text():
        frame = Frame(Size(100, 30))
        viewer.draw(frame, frame.area)
        return "\n".join(frame.row_text(y) for y in range(30))

    assert '"a": 1' in screen_text()
    press(viewer, "tab")
    assert viewer.session.response_tab is ResponseTab.RAW
    assert '{"a":1}' in screen_text()
    press(viewer, "tab")
    assert "x-trace: abc" in screen_text()
    press(viewer, "tab")
    assert viewer.session.response_tab is ResponseTab.PRETTY
