from __future__ import annotations

import json

import pytest

from canvasync.tools.room_tap.replay_jsonl import load_events, to_client_event

from fakes import LINE


@pytest.mark.parametrize(
    "recorded, expected",
    [
        ({"t": "element_received", "element": LINE}, {"t": "new_element", "room": "r", "element": LINE}),
        ({"t": "canvas_data", "elements": []}, {"t": "full_sync", "room": "r", "data": []}),
        (
            {"t": "chat_received", "entry": {"text": "hi", "senderId": "x", "timestamp": 1}},
            {"t": "chat_message", "room": "r", "text": "hi"},
        ),
        (
            {"t": "background_updated", "background": "grid"},
            {"t": "background_change", "room": "r", "background": "grid"},
        ),
        (
            {"t": "game_move_received", "gameIndex": 2, "game": {"id": "g"}},
            {"t": "game_move", "room": "r", "gameIndex": 2, "game": {"id": "g"}},
        ),
        ({"t": "chat_message", "room": "old", "text": "hi"}, {"t": "chat_message", "room": "r", "text": "hi"}),
        ({"t": "chat_history", "entries": []}, None),
        ({"t": "hello", "id": "x"}, None),
    ],
)
def test_to_client_event(recorded, expected):
    assert to_client_event(recorded, "r") == expected


def test_load_events_accepts_both_formats(tmp_path):
    path = tmp_path / "log.jsonl"
    lines = [
        json.dumps({"ts": 1000, "msg": {"t": "chat_received", "entry": {"text": "a"}}}),
        "",
        json.dumps({"t": "chat_message", "room": "1", "text": "b"}),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    events = load_events(path)
    assert events == [
        (1000, {"t": "chat_received", "entry": {"text": "a"}}),
        (None, {"t": "chat_message", "room": "1", "text": "b"}),
    ]
