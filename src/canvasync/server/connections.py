from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

log = logging.getLogger(__name__)


def encode(msg: dict[str, Any]) -> str:
    return json.dumps(msg, separators=(",", ":"), ensure_ascii=False)


@dataclass(eq=False)
class Connection:
    """One live client socket. `ws` only needs an awaitable `send_text(str)`."""

    ws: Any
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    async def send(self, msg: dict[str, Any]) -> None:
        await self.ws.send_text(encode(msg))


class ConnectionRegistry:
    """Room membership for live connections. A connection may sit in several rooms."""

    def __init__(self) -> None:
        self._members: dict[str, set[Connection]] = {}
        self._rooms_of: dict[Connection, set[str]] = {}

    def join(self, conn: Connection, room_id: str) -> None:
        self._members.setdefault(room_id, set()).add(conn)
        self._rooms_of.setdefault(conn, set()).add(room_id)

    def leave(self, conn: Connection, room_id: str) -> None:
        members = self._members.get(room_id)
        if members is not None:
            members.discard(conn)
            if not members:
                del self._members[room_id]
        rooms = self._rooms_of.get(conn)
        if rooms is not None:
            rooms.discard(room_id)
            if not rooms:
                del self._rooms_of[conn]

    def leave_all(self, conn: Connection) -> list[str]:
        rooms = sorted(self._rooms_of.get(conn, ()))
        for room_id in rooms:
            self.leave(conn, room_id)
        return rooms

    def rooms_of(self, conn: Connection) -> set[str]:
        return set(self._rooms_of.get(conn, ()))

    def members(self, room_id: str) -> set[Connection]:
        return set(self._members.get(room_id, ()))

    def others(self, room_id: str, exclude: Optional[Connection]) -> list[Connection]:
        return [c for c in self._members.get(room_id, ()) if c is not exclude]

    async def broadcast(self, room_id: str, msg: dict[str, Any], exclude: Optional[Connection] = None) -> int:
        """Send `msg` to every member of `room_id` except `exclude`; drops sockets that fail."""
        dead: list[Connection] = []
        data = encode(msg)
        sent = 0
        for conn in self.others(room_id, exclude):
            try:
                await conn.ws.send_text(data)
                sent += 1
            except Exception as e:
                log.info("dropping connection %s after send failure: %s", conn.id, e)
                dead.append(conn)
        for conn in dead:
            self.leave_all(conn)
        return sent
