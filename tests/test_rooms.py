from __future__ import annotations

from canvasync.protocol.constants import DEFAULT_BACKGROUND
from canvasync.protocol.messages import ChatEntry, LineElement, TextElement
from canvasync.server.rooms import RoomStore


def test_ensure_room_creates_empty_room_once():
    store = RoomStore()
    assert "1" not in store

    room = store.ensure_room("1")
    assert room.elements == [] and room.chat == []
    assert room.background == DEFAULT_BACKGROUND
    assert store.ensure_room("1") is room
    assert len(store) == 1


def test_mutators_ignore_unknown_rooms():
    store = RoomStore()
    assert store.append_element("nope", LineElement()) is None
    assert store.replace_all("nope", []) is False
    assert store.append_chat("nope", ChatEntry(text="hi", sender_id="a")) is False
    assert store.set_background("nope", "grid") is False
    assert "nope" not in store


def test_append_element_grows_by_one_and_keeps_order():
    store = RoomStore()
    store.ensure_room("r")
    first = LineElement()
    second = TextElement(content="hello", x=1, y=2)

    assert store.append_element("r", first) == 0
    assert store.append_element("r", second) == 1
    assert [el.id for el in store.get("r").elements] == [first.id, second.id]
    assert store.index_of("r", second.id) == 1
    assert store.index_of("r", "missing") is None


def test_replace_at_respects_bounds():
    store = RoomStore()
    store.ensure_room("r")
    store.append_element("r", LineElement())
    replacement = TextElement(content="x", x=0, y=0)

    assert store.replace_at("r", 5, replacement) is False
    assert store.replace_at("r", -1, replacement) is False
    assert store.replace_at("r", 0, replacement) is True
    assert store.element_at("r", 0) is replacement
    assert store.element_at("r", 1) is None


def test_replace_all_swaps_the_list_wholesale():
    store = RoomStore()
    store.ensure_room("r")
    store.append_element("r", LineElement())
    data = [TextElement(content="a", x=0, y=0), TextElement(content="b", x=1, y=1)]

    assert store.replace_all("r", data) is True
    assert store.get("r").elements == data
    data.clear()
    assert len(store.get("r").elements) == 2


def test_chat_and_background():
    store = RoomStore()
    store.ensure_room("r")
    store.append_chat("r", ChatEntry(text="one", sender_id="a"))
    store.append_chat("r", ChatEntry(text="two", sender_id="b"))
    store.set_background("r", "blueprint")

    room = store.get("r")
    assert [e.text for e in room.chat] == ["one", "two"]
    assert room.background == "blueprint"


def test_clear_forgets_everything():
    store = RoomStore()
    store.ensure_room("a")
    store.ensure_room("b")
    store.clear()
    assert len(store) == 0
