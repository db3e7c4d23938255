from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

import websockets

from canvasync.protocol.constants import MAX_MESSAGE_BYTES, T_HELLO, T_JOIN_ROOM
from canvasync.protocol.messages import now_ms


async def record(ws_url: str, room: str, out_path: Path, *, echo: bool, limit: int | None = None) -> int:
    """
    Join `room` as a silent observer and append every event it receives to `out_path`.

    Each line is `{"ts": <ms>, "msg": {...}}`. The join snapshot (canvas_data,
    chat_history, background_updated) is recorded too, so a replay starts
    from the same canvas.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with out_path.open("a", encoding="utf-8") as f:
        async with websockets.connect(ws_url, max_size=MAX_MESSAGE_BYTES) as ws:
            await ws.send(json.dumps({"t": T_JOIN_ROOM, "room": room}))
            async for raw in ws:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="replace")
                msg = json.loads(raw)
                t = msg.get("t") if isinstance(msg, dict) else None
                if t == T_HELLO:
                    continue
                if echo:
                    print(f"[record:{room}] t={t}")
                f.write(json.dumps({"ts": now_ms(), "msg": msg}, ensure_ascii=False) + "\n")
                f.flush()
                count += 1
                if limit is not None and count >= limit:
                    break
    return count


def main() -> None:
    ap = argparse.ArgumentParser(description="Record a room's traffic to a JSONL file.")
    ap.add_argument("--ws", default="ws://127.0.0.1:3000/ws", help="Server WebSocket URL")
    ap.add_argument("--room", required=True, help="Room id to observe")
    ap.add_argument("--out", required=True, help="Output JSONL path")
    ap.add_argument("--limit", type=int, default=None, help="Stop after this many events")
    ap.add_argument("--print", action="store_true", help="Print event names to stdout")
    args = ap.parse_args()

    asyncio.run(record(args.ws, args.room, Path(args.out), echo=args.print, limit=args.limit))


if __name__ == "__main__":
    main()
