from reqdeck.config import Config
from reqdeck.core.commands import CreateCollection, Error, Quit, SelectCollection
from reqdeck.core.storage import StorageEngine
from reqdeck.models import Request
from reqdeck.pages.collection_list import CollectionList, Mode
from reqdeck.tui.keys import KeyEvent
from reqdeck.tui.surface import Frame, Size


def make_page(tmp_path, *names):
    storage = StorageEngine(tmp_path)
    for name in names:
        storage.create_collection(name)
    page = CollectionList(Config(collections_dir=tmp_path), storage)
    page.update()
    return page


def press(page, *codes):
    return [page.handle_key_event(KeyEvent(code)) for code in codes]


def test_lists_collections_from_disk(tmp_path):
    page = make_page(tmp_path, "alpha", "beta")
    frame = Frame(Size(80, 20))
    page.draw(frame, frame.area)
    text = "\n".join(frame.row_text(y) for y in range(20))
    assert "alpha" in text
    assert "beta" in text


def test_select_emits_select_collection(tmp_path):
    page = make_page(tmp_path, "alpha", "beta")
    (_, command) = press(page, "j", "enter")
    assert isinstance(command, SelectCollection)
    assert command.collection.info.name == "beta"


def test_create_form_persists_and_emits_create_collection(tmp_path):
    page = make_page(tmp_path)
    press(page, "n")
    assert page.mode is Mode.CREATE
    press(page, "a", "p", "i", "tab", "d", "o", "c", "s")
    (command,) = press(page, "enter")

    assert isinstance(command, CreateCollection)
    assert command.collection.info.name == "api"
    assert command.collection.info.description == "docs"
    assert (tmp_path / "api.json").exists()
    assert page.mode is Mode.LIST


def test_create_existing_collection_returns_error(tmp_path):
    page = make_page(tmp_path, "api")
    (command,) = press(page, "n", "a", "p", "i", "enter")[-1:]
    assert isinstance(command, Error)


def test_escape_closes_form(tmp_path):
    page = make_page(tmp_path)
    press(page, "n", "x", "esc")
    assert page.mode is Mode.LIST
    assert page.form_fields == ["", ""]


def test_delete_requires_confirmation(tmp_path):
    page = make_page(tmp_path, "alpha")
    press(page, "d", "n")
    assert len(page.collections) == 1
    press(page, "d", "y")
    assert page.collections == []
    assert not (tmp_path / "alpha.json").exists()


def test_error_is_shown_until_any_key(tmp_path):
    page = make_page(tmp_path, "alpha")
    page.handle_command(Error("something broke"))
    frame = Frame(Size(80, 20))
    page.draw(frame, frame.area)
    assert any("something broke" in frame.row_text(y) for y in range(20))
    assert press(page, "q") == [None]
    assert press(page, "q") == [Quit()]


def test_edit_collection_updates_name_and_description_in_place(tmp_path):
    page = make_page(tmp_path, "api")
    press(page, "c")
    assert page.mode is Mode.EDIT
    assert page.form_fields == ["api", ""]
    press(page, "backspace", "backspace", "backspace", "s", "h", "o", "p", "tab", "v", "2")
    assert press(page, "enter") == [None]

    assert page.mode is Mode.LIST
    assert page.collections[0].info.name == "shop"
    on_disk = StorageEngine(tmp_path).read(tmp_path / "api.json")
    assert on_disk.info.name == "shop"
    assert on_disk.info.description == "v2"


def test_edit_collection_keeps_the_saved_tree(tmp_path):
    page = make_page(tmp_path, "api")
    storage = StorageEngine(tmp_path)
    saved = storage.read(tmp_path / "api.json")
    saved.requests = [Request(name="ping", uri="http://api.test/ping")]
    storage.write(saved.path, saved)

    press(page, "c", "tab", "d", "o", "c", "s", "enter")

    on_disk = storage.read(tmp_path / "api.json")
    assert on_disk.info.description == "docs"
    assert [node.name for node in on_disk.requests] == ["ping"]


def test_edit_collection_escape_leaves_it_untouched(tmp_path):
    page = make_page(tmp_path, "api")
    press(page, "c", "x", "esc")
    assert page.mode is Mode.LIST
    assert page.collections[0].info.name == "api"
