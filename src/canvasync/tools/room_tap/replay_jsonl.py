from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import websockets

from canvasync.protocol.constants import (
    MAX_MESSAGE_BYTES,
    T_BACKGROUND_CHANGE,
    T_BACKGROUND_UPDATED,
    T_CANVAS_DATA,
    T_CHAT_MESSAGE,
    T_CHAT_RECEIVED,
    T_ELEMENT_RECEIVED,
    T_FULL_SYNC,
    T_GAME_MOVE,
    T_GAME_MOVE_RECEIVED,
    T_JOIN_ROOM,
    T_LASER_POINTER,
    T_LASER_RECEIVED,
    T_NEW_ELEMENT,
)


def to_client_event(msg: dict[str, Any], room: str) -> Optional[dict[str, Any]]:
    """
    Turn a recorded server->client event into the client->server event that causes it.

    Returns None for events with no client counterpart (chat_history, hello).
    Client events already in the log are re-targeted at `room`.
    """
    t = msg.get("t")
    if t == T_ELEMENT_RECEIVED:
        return {"t": T_NEW_ELEMENT, "room": room, "element": msg["element"]}
    if t == T_CANVAS_DATA:
        return {"t": T_FULL_SYNC, "room": room, "data": msg["elements"]}
    if t == T_CHAT_RECEIVED:
        return {"t": T_CHAT_MESSAGE, "room": room, "text": msg["entry"]["text"]}
    if t == T_LASER_RECEIVED:
        return {"t": T_LASER_POINTER, "room": room, "laser": msg["laser"]}
    if t == T_BACKGROUND_UPDATED:
        return {"t": T_BACKGROUND_CHANGE, "room": room, "background": msg["background"]}
    if t == T_GAME_MOVE_RECEIVED:
        return {"t": T_GAME_MOVE, "room": room, "gameIndex": msg.get("gameIndex"), "game": msg["game"]}
    if t in (T_NEW_ELEMENT, T_FULL_SYNC, T_CHAT_MESSAGE, T_LASER_POINTER, T_BACKGROUND_CHANGE, T_GAME_MOVE):
        return {**msg, "room": room}
    return None


def load_events(jsonl_path: Path) -> list[tuple[Optional[int], dict[str, Any]]]:
    """Accepts record_jsonl.py output (`{"ts", "msg"}` lines) or one raw event per line."""
    events: list[tuple[Optional[int], dict[str, Any]]] = []
    for line in jsonl_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        obj = json.loads(line)
        if isinstance(obj, dict) and isinstance(obj.get("msg"), dict):
            ts = obj.get("ts")
            events.append((int(ts) if isinstance(ts, (int, float)) else None, obj["msg"]))
        elif isinstance(obj, dict):
            events.append((None, obj))
    return events


async def replay(
    ws_url: str,
    jsonl_path: Path,
    room: str,
    *,
    speed: float = 1.0,
    default_dt_ms: int = 0,
) -> int:
    """Join `room` and re-emit the recorded events with their original spacing."""
    sent = 0
    async with websockets.connect(ws_url, max_size=MAX_MESSAGE_BYTES) as ws:
        await ws.send(json.dumps({"t": T_JOIN_ROOM, "room": room}))
        prev_ts: Optional[int] = None
        for ts, msg in load_events(jsonl_path):
            out = to_client_event(msg, room)
            if out is None:
                continue
            if ts is not None and prev_ts is not None:
                dt_ms = max(0, ts - prev_ts)
            else:
                dt_ms = default_dt_ms
            prev_ts = ts if ts is not None else prev_ts
            if dt_ms:
                await asyncio.sleep((dt_ms / 1000.0) / max(0.01, speed))
            await ws.send(json.dumps(out, ensure_ascii=False, separators=(",", ":")))
            sent += 1
    return sent


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay recorded room traffic into a room.")
    ap.add_argument("--ws", default="ws://127.0.0.1:3000/ws", help="Server WebSocket URL")
    ap.add_argument("--in", dest="inp", required=True, help="Input JSONL path")
    ap.add_argument("--room", required=True, help="Target room id")
    ap.add_argument("--speed", type=float, default=1.0, help="Speed multiplier (2.0 = 2x faster)")
    ap.add_argument("--default-dt-ms", type=int, default=0, help="Delay between events without timestamps")
    args = ap.parse_args()

    asyncio.run(replay(args.ws, Path(args.inp), args.room, speed=args.speed, default_dt_ms=args.default_dt_ms))


if __name__ == "__main__":
    main()
