from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from canvasync.protocol.constants import T_HELLO
from canvasync.protocol.messages import dump_all, envelope

from .config import Settings, get_settings
from .connections import Connection, ConnectionRegistry
from .rooms import RoomStore
from .router import EventRouter
from .uploads import UploadTooLarge, store_upload

log = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RoomStore] = None,
    registry: Optional[ConnectionRegistry] = None,
) -> FastAPI:
    """Build the app around its own room store; the store lives as long as the app."""
    settings = settings or get_settings()
    store = store if store is not None else RoomStore()
    registry = registry if registry is not None else ConnectionRegistry()
    router = EventRouter(store, registry, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.upload_dir.mkdir(parents=True, exist_ok=True)
        log.info("uploads directory: %s", settings.upload_dir.resolve())
        yield
        store.clear()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.router = router

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.get("/rooms/{room_id}")
    def room_snapshot(room_id: str):
        # Debug view of the in-memory state; not used by clients.
        room = store.get(room_id)
        if room is None:
            raise HTTPException(status_code=404, detail="Unknown room")
        return {
            "room": room_id,
            "elements": dump_all(room.elements),
            "chat": dump_all(room.chat),
            "background": room.background,
            "members": len(registry.members(room_id)),
        }

    @app.post("/upload")
    async def upload(file: Optional[UploadFile] = File(None)):
        if file is None:
            return JSONResponse({"error": "No file uploaded"}, status_code=400)
        try:
            return await store_upload(file, settings.upload_dir, settings.upload_max_bytes)
        except UploadTooLarge as e:
            return JSONResponse({"error": str(e)}, status_code=413)
        except OSError as e:
            log.exception("upload failed")
            return JSONResponse({"error": f"Upload failed: {e}"}, status_code=500)

    @app.websocket("/ws")
    async def ws(ws: WebSocket):
        await ws.accept()
        conn = Connection(ws)
        log.info("connection %s opened from %s", conn.id, getattr(ws.client, "host", None))
        await conn.send(envelope(T_HELLO, id=conn.id))
        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    log.warning("dropping binary frame from %s", conn.id)
                    continue
                await router.handle_text(conn, raw)
        except WebSocketDisconnect:
            pass
        except Exception:
            log.exception("connection %s failed", conn.id)
        finally:
            router.disconnect(conn)

    return app


app = create_app()
