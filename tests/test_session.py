from __future__ import annotations

import asyncio

import pytest

from canvasync.client.session import CanvasClient
from canvasync.protocol.messages import LineElement, PingPongGame, Point, ShapeElement, TextElement, TicTacToeGame

from fakes import FakeClientSocket


@pytest.fixture
async def client():
    c = CanvasClient(
        FakeClientSocket(),
        sync_window_s=0.02,
        paddle_window_s=0.02,
        echo_hold_s=0.1,
        sim_interval_s=0.005,
    )
    c.handle({"t": "hello", "id": "me"})
    await c.join(7)
    c.ws.sent.clear()
    yield c
    c.close()


async def test_hello_and_join():
    c = CanvasClient(FakeClientSocket())
    assert c.handle({"t": "hello", "id": "abc"})
    assert c.id == "abc" and c.mirror.owner_id == "abc"
    await c.join(1)
    assert c.ws.sent == [{"t": "join_room", "room": "1"}]


async def test_add_element_is_optimistic(client):
    text = TextElement(content="hi", x=1, y=2)
    assert await client.add_element(text) == 0
    assert client.elements == [text]
    (msg,) = client.ws.sent
    assert msg["t"] == "new_element" and msg["room"] == "7"
    assert msg["element"]["id"] == text.id
    assert msg["element"]["textSize"] == 18


async def test_drag_burst_sends_one_full_sync_and_suppresses_echo(client):
    text = TextElement(content="hi", x=0, y=0)
    await client.add_element(text)
    client.ws.sent.clear()

    for x in range(10):
        client.update_element(text.id, x=x)
    await asyncio.sleep(0.05)

    syncs = client.ws.of("full_sync")
    assert len(syncs) == 1
    assert syncs[0]["data"][0]["x"] == 9

    # our own broadcast coming back is ignored while the guard is up
    assert not client.handle({"t": "canvas_data", "elements": []})
    assert len(client.elements) == 1
    await asyncio.sleep(0.15)
    assert client.handle({"t": "canvas_data", "elements": []})
    assert client.elements == []


async def test_end_drag_flushes_immediately(client):
    text = TextElement(content="hi", x=0, y=0)
    await client.add_element(text)
    client.ws.sent.clear()

    client.update_element(text.id, x=5)
    await client.end_drag()
    await asyncio.sleep(0.04)
    assert len(client.ws.of("full_sync")) == 1
    assert not client.update_element("missing", x=1)


async def test_remove_element_syncs_the_rest(client):
    keep, drop = TextElement(content="a", x=0, y=0), TextElement(content="b", x=0, y=0)
    await client.add_element(keep)
    await client.add_element(drop)
    client.ws.sent.clear()

    assert await client.remove_element(drop.id)
    assert [el["id"] for el in client.ws.of("full_sync")[0]["data"]] == [keep.id]
    assert not await client.remove_element(drop.id)


async def test_stroke_draft_is_replaced_by_recognized_shape(client):
    def recognize(draft: LineElement) -> ShapeElement:
        return ShapeElement(id=draft.id, shape_type="circle", x=10, y=10, radius=5)

    client.recognizer = recognize
    draft = client.begin_stroke(Point(x=0, y=0), tool="shape")
    draft.points.append(Point(x=10, y=10))
    assert client.ws.sent == []

    final = await client.finish_stroke(draft)
    assert final.type == "shape"
    assert client.elements == [final]
    assert client.ws.sent[0]["element"]["shapeType"] == "circle"


async def test_plain_stroke_is_sent_as_drawn(client):
    draft = client.begin_stroke(Point(x=0, y=0), color="#00ff00")
    draft.points.append(Point(x=3, y=4))
    await client.finish_stroke(draft)
    sent = client.ws.sent[0]["element"]
    assert sent["type"] == "line" and len(sent["points"]) == 2


async def test_chat_laser_background(client):
    await client.chat("hello")
    await client.laser([Point(x=1, y=1)])
    await client.set_background("blueprint")

    assert [m["t"] for m in client.ws.sent] == ["chat_message", "laser_pointer", "background_change"]
    assert client.mirror.chat[0].sender_id == "me"
    assert len(client.mirror.lasers) == 1
    assert client.mirror.background == "blueprint"


async def test_play_tictactoe(client):
    client.mirror.elements = [TicTacToeGame(id="g")]

    assert await client.play_tictactoe("g", 4)
    (msg,) = client.ws.sent
    assert msg["t"] == "game_move"
    assert msg["gameIndex"] == 0
    assert msg["game"]["board"][4] == "X"
    assert msg["game"]["playerX"] == "me"

    # not our turn any more
    assert not await client.play_tictactoe("g", 0)
    assert len(client.ws.sent) == 1


async def test_one_paddle_per_connection(client):
    client.mirror.elements = [PingPongGame(id="p")]
    assert await client.grab_paddle("p", "left")
    assert not await client.grab_paddle("p", "right")
    assert client.ws.sent[0]["game"]["playerLeft"] == "me"
    assert client.ws.sent[0]["game"]["gameStarted"] is False


async def test_paddle_moves_are_throttled(client):
    client.mirror.elements = [PingPongGame(id="p", player_left="them")]
    assert await client.grab_paddle("p", "right")
    client.ws.sent.clear()

    for y in (100, 150, 200):
        assert client.move_paddle(y)
    await asyncio.sleep(0.05)
    moves = client.ws.of("game_move")
    assert len(moves) == 1
    assert moves[0]["game"]["paddleRight"]["y"] == 170

    await client.release_paddle()
    assert not client.move_paddle(10)


async def test_left_player_runs_the_simulation(client):
    client.mirror.elements = [PingPongGame(id="p", player_right="them")]
    assert await client.grab_paddle("p", "left")
    await asyncio.sleep(0.05)

    moves = client.ws.of("game_move")
    assert moves[0]["game"]["gameStarted"] is True
    assert len(moves) > 2
    client.close()
    count = len(client.ws.sent)
    await asyncio.sleep(0.02)
    assert len(client.ws.sent) == count


async def test_right_player_does_not_simulate(client):
    client.mirror.elements = [PingPongGame(id="p", player_left="them")]
    await client.grab_paddle("p", "right")
    await asyncio.sleep(0.03)
    assert len(client.ws.of("game_move")) == 1
