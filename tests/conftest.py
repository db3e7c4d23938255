from __future__ import annotations

import pytest

from canvasync.server.config import Settings
from canvasync.server.connections import ConnectionRegistry
from canvasync.server.rooms import RoomStore
from canvasync.server.router import EventRouter


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(upload_dir=tmp_path / "uploads")


@pytest.fixture
def store() -> RoomStore:
    return RoomStore()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def router(store, registry, settings) -> EventRouter:
    return EventRouter(store, registry, settings)
