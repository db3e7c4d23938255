from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from canvasync.games.authority import vet_game_update
from canvasync.protocol.constants import (
    T_BACKGROUND_UPDATED,
    T_CANVAS_DATA,
    T_CHAT_HISTORY,
    T_CHAT_RECEIVED,
    T_ELEMENT_RECEIVED,
    T_GAME_MOVE_RECEIVED,
    T_LASER_RECEIVED,
)
from canvasync.protocol.messages import (
    BackgroundChange,
    ChatEntry,
    ChatMessage,
    Element,
    FullSync,
    GameMove,
    JoinRoom,
    LaserPointer,
    NewElement,
    dump,
    dump_all,
    envelope,
    parse_inbound,
)

from .config import Settings, get_settings
from .connections import Connection, ConnectionRegistry
from .rooms import RoomStore

log = logging.getLogger(__name__)


class EventRouter:
    """
    Applies client events to the room store and fans them out.

    Each event runs lookup -> mutate -> broadcast under its room's lock, so
    two events for the same room never interleave. Broadcasts never go back
    to the sender; join replies go only to the sender.
    """

    def __init__(
        self,
        store: RoomStore,
        registry: ConnectionRegistry,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.settings = settings or get_settings()
        self._locks: dict[str, asyncio.Lock] = {}
        self._handlers: dict[type, Callable[[Connection, Any], Awaitable[None]]] = {
            NewElement: self._on_new_element,
            FullSync: self._on_full_sync,
            ChatMessage: self._on_chat_message,
            LaserPointer: self._on_laser_pointer,
            BackgroundChange: self._on_background_change,
            GameMove: self._on_game_move,
        }

    def _lock(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    async def handle_text(self, conn: Connection, raw: str) -> None:
        """Entry point for one websocket text frame. Malformed frames are logged and dropped."""
        if len(raw) > self.settings.max_message_bytes:
            log.warning("dropping %d byte frame from %s (limit %d)", len(raw), conn.id, self.settings.max_message_bytes)
            return
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            log.warning("dropping non-JSON frame from %s: %s", conn.id, e)
            return
        if not isinstance(payload, dict):
            log.warning("dropping non-object frame from %s", conn.id)
            return
        await self.handle(conn, payload)

    async def handle(self, conn: Connection, payload: dict[str, Any]) -> None:
        try:
            msg = parse_inbound(payload)
        except ValidationError as e:
            log.warning(
                "dropping malformed t=%s from %s (%d errors): %s",
                payload.get("t"),
                conn.id,
                e.error_count(),
                e.errors(include_input=False)[:3],
            )
            return

        if self.settings.debug_log_msgs:
            log.info("[ws:%s] in t=%s from=%s", msg.room, msg.t, conn.id)

        if isinstance(msg, JoinRoom):
            async with self._lock(msg.room):
                await self._on_join(conn, msg)
            return
        # rooms are never destroyed, so this check holds once the lock is taken
        if msg.room not in self.store:
            log.debug("ignoring t=%s for unknown room %s from %s", msg.t, msg.room, conn.id)
            return
        async with self._lock(msg.room):
            await self._handlers[type(msg)](conn, msg)

    def disconnect(self, conn: Connection) -> list[str]:
        rooms = self.registry.leave_all(conn)
        log.info("connection %s left rooms %s", conn.id, rooms)
        return rooms

    # ---- handlers ----

    async def _on_join(self, conn: Connection, msg: JoinRoom) -> None:
        room = self.store.ensure_room(msg.room)
        self.registry.join(conn, msg.room)
        log.info("connection %s joined room %s", conn.id, msg.room)
        await conn.send(envelope(T_CANVAS_DATA, elements=dump_all(room.elements)))
        await conn.send(envelope(T_CHAT_HISTORY, entries=dump_all(room.chat)))
        await conn.send(envelope(T_BACKGROUND_UPDATED, background=room.background))

    async def _on_new_element(self, conn: Connection, msg: NewElement) -> None:
        index = self.store.append_element(msg.room, msg.element)
        log.debug("room %s: element %s (%s) at index %s", msg.room, msg.element.id, msg.element.type, index)
        await self.registry.broadcast(
            msg.room, envelope(T_ELEMENT_RECEIVED, element=dump(msg.element)), exclude=conn
        )

    async def _on_full_sync(self, conn: Connection, msg: FullSync) -> None:
        data = self._reconcile(msg.room, msg.data, conn.id)
        self.store.replace_all(msg.room, data)
        log.debug("room %s: full sync, %d elements", msg.room, len(data))
        await self.registry.broadcast(
            msg.room, envelope(T_CANVAS_DATA, elements=dump_all(data)), exclude=conn
        )

    async def _on_chat_message(self, conn: Connection, msg: ChatMessage) -> None:
        entry = ChatEntry(text=msg.text, sender_id=conn.id)
        self.store.append_chat(msg.room, entry)
        await self.registry.broadcast(msg.room, envelope(T_CHAT_RECEIVED, entry=dump(entry)), exclude=conn)

    async def _on_laser_pointer(self, conn: Connection, msg: LaserPointer) -> None:
        # relayed only, never stored
        await self.registry.broadcast(msg.room, envelope(T_LASER_RECEIVED, laser=dump(msg.laser)), exclude=conn)

    async def _on_background_change(self, conn: Connection, msg: BackgroundChange) -> None:
        self.store.set_background(msg.room, msg.background)
        await self.registry.broadcast(
            msg.room, envelope(T_BACKGROUND_UPDATED, background=msg.background), exclude=conn
        )

    async def _on_game_move(self, conn: Connection, msg: GameMove) -> None:
        index = self._resolve_game_index(msg)
        if index is None:
            return
        current = self.store.element_at(msg.room, index)
        if current is None or current.type != "game" or current.game_type != msg.game.game_type:
            log.warning(
                "room %s: index %d does not hold a %s game; dropping move from %s",
                msg.room,
                index,
                msg.game.game_type,
                conn.id,
            )
            return
        vetted = vet_game_update(current, msg.game, conn.id)
        if vetted is None:
            log.info("room %s: rejected %s move from %s", msg.room, msg.game.game_type, conn.id)
            return
        if dump(vetted) == dump(current):
            log.debug("room %s: game %s unchanged by move from %s", msg.room, current.id, conn.id)
            return
        self.store.replace_at(msg.room, index, vetted)
        await self.registry.broadcast(
            msg.room,
            envelope(T_GAME_MOVE_RECEIVED, gameIndex=index, game=dump(vetted)),
            exclude=conn,
        )

    # ---- helpers ----

    def _resolve_game_index(self, msg: GameMove) -> Optional[int]:
        # Address by id when the client sent one; bare index only for id-less clients.
        if "id" in msg.game.model_fields_set:
            index = self.store.index_of(msg.room, msg.game.id)
            if index is None:
                log.warning("room %s: game %s no longer exists", msg.room, msg.game.id)
            return index
        if msg.game_index is None:
            log.warning("room %s: game move without id or gameIndex", msg.room)
        return msg.game_index

    def _reconcile(self, room_id: str, data: list[Element], sender_id: str) -> list[Element]:
        """Carry ids over to id-less elements by position and vet every game already in the room."""
        room = self.store.get(room_id)
        existing = room.elements if room is not None else []
        out: list[Element] = []
        for i, el in enumerate(data):
            if "id" not in el.model_fields_set and i < len(existing) and _same_kind(existing[i], el):
                el = el.model_copy(update={"id": existing[i].id})
            out.append(el)

        games = {el.id: el for el in existing if el.type == "game"}
        for i, el in enumerate(out):
            current = games.get(el.id)
            if current is None or el.type != "game":
                continue
            vetted = vet_game_update(current, el, sender_id)
            out[i] = vetted if vetted is not None else current
        return out


def _same_kind(a: Element, b: Element) -> bool:
    return a.type == b.type and getattr(a, "game_type", None) == getattr(b, "game_type", None)
