from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from canvasync.protocol.constants import DEFAULT_BACKGROUND
from canvasync.protocol.messages import ChatEntry, Element


@dataclass
class Room:
    # list position is render order; elements are addressed by their `id`
    elements: list[Element] = field(default_factory=list)
    chat: list[ChatEntry] = field(default_factory=list)
    background: str = DEFAULT_BACKGROUND


class RoomStore:
    """
    In-memory table of rooms keyed by room id.

    Knows nothing about sockets. Every mutator is a silent no-op on an unknown
    room (clients may race their own join). Not thread-safe: the router calls
    it from a single event loop.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def ensure_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = self._rooms[room_id] = Room()
        return room

    def append_element(self, room_id: str, element: Element) -> Optional[int]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        room.elements.append(element)
        return len(room.elements) - 1

    def element_at(self, room_id: str, index: int) -> Optional[Element]:
        room = self._rooms.get(room_id)
        if room is None or not 0 <= index < len(room.elements):
            return None
        return room.elements[index]

    def index_of(self, room_id: str, element_id: str) -> Optional[int]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        for i, el in enumerate(room.elements):
            if el.id == element_id:
                return i
        return None

    def replace_at(self, room_id: str, index: int, element: Element) -> bool:
        room = self._rooms.get(room_id)
        if room is None or not 0 <= index < len(room.elements):
            return False
        room.elements[index] = element
        return True

    def replace_all(self, room_id: str, elements: list[Element]) -> bool:
        room = self._rooms.get(room_id)
        if room is None:
            return False
        room.elements = list(elements)
        return True

    def append_chat(self, room_id: str, entry: ChatEntry) -> bool:
        room = self._rooms.get(room_id)
        if room is None:
            return False
        room.chat.append(entry)
        return True

    def set_background(self, room_id: str, value: str) -> bool:
        room = self._rooms.get(room_id)
        if room is None:
            return False
        room.background = value
        return True

    def clear(self) -> None:
        self._rooms.clear()
