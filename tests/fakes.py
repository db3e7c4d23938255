from __future__ import annotations

import json
from typing import Any

from canvasync.server.connections import Connection


class FakeServerSocket:
    """Stands in for a FastAPI WebSocket: records decoded outbound frames."""

    def __init__(self) -> None:
        self.frames: list[dict[str, Any]] = []

    async def send_text(self, data: str) -> None:
        self.frames.append(json.loads(data))

    def of(self, t: str) -> list[dict[str, Any]]:
        return [f for f in self.frames if f["t"] == t]


class DeadSocket:
    async def send_text(self, data: str) -> None:
        raise ConnectionError("peer gone")


class FakeClientSocket:
    """Stands in for a `websockets` client connection."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def of(self, t: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["t"] == t]


def conn(conn_id: str) -> Connection:
    return Connection(FakeServerSocket(), id=conn_id)


LINE = {
    "type": "line",
    "color": "#ff0000",
    "brushSize": 3,
    "tool": "pen",
    "points": [{"x": 0, "y": 0}, {"x": 10, "y": 5}, {"x": 20, "y": 12}],
}
