from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

import websockets

from canvasync.games import authority, pingpong, tictactoe
from canvasync.protocol.constants import (
    ECHO_SUPPRESS_S,
    MAX_MESSAGE_BYTES,
    PADDLE_THROTTLE_S,
    SIM_INTERVAL_S,
    SYNC_THROTTLE_S,
    T_BACKGROUND_CHANGE,
    T_CHAT_MESSAGE,
    T_FULL_SYNC,
    T_GAME_MOVE,
    T_HELLO,
    T_JOIN_ROOM,
    T_LASER_POINTER,
    T_NEW_ELEMENT,
)
from canvasync.protocol.messages import (
    ChatEntry,
    Element,
    Laser,
    LineElement,
    PingPongGame,
    Point,
    ShapeElement,
    TicTacToeGame,
    dump,
    envelope,
)

from .echo import EchoGuard
from .mirror import CanvasMirror
from .throttle import Throttle
from .ticker import Ticker

log = logging.getLogger(__name__)

Recognizer = Callable[[LineElement], Optional[ShapeElement]]


class CanvasClient:
    """
    One participant: optimistic local edits, outbound events, inbound merge.

    `ws` is anything with awaitable `send(str)` and async iteration over
    incoming frames (a `websockets` client connection in practice).
    """

    def __init__(
        self,
        ws: Any,
        *,
        sync_window_s: float = SYNC_THROTTLE_S,
        paddle_window_s: float = PADDLE_THROTTLE_S,
        echo_hold_s: float = ECHO_SUPPRESS_S,
        sim_interval_s: float = SIM_INTERVAL_S,
        recognizer: Optional[Recognizer] = None,
    ) -> None:
        self.ws = ws
        self.id: Optional[str] = None
        self.room: Optional[str] = None
        self.recognizer = recognizer
        self.mirror = CanvasMirror(EchoGuard(echo_hold_s))
        self.sim_interval_s = sim_interval_s
        self._sync = Throttle(sync_window_s, self.sync_now)
        self._paddle = Throttle(paddle_window_s, self._emit_dragged_paddle)
        self._dragged: Optional[tuple[str, pingpong.Side]] = None
        self._simulators: dict[str, Ticker] = {}

    @classmethod
    @asynccontextmanager
    async def connect(cls, url: str, **kwargs: Any) -> AsyncIterator["CanvasClient"]:
        async with websockets.connect(url, max_size=MAX_MESSAGE_BYTES) as ws:
            client = cls(ws, **kwargs)
            client.handle(json.loads(await ws.recv()))  # hello
            try:
                yield client
            finally:
                client.close()

    @property
    def elements(self) -> list[Element]:
        return self.mirror.elements

    # ---- inbound ----

    def handle(self, msg: dict[str, Any]) -> bool:
        if msg.get("t") == T_HELLO:
            self.id = msg["id"]
            self.mirror.owner_id = self.id
            return True
        changed = self.mirror.apply(msg)
        if changed:
            self._sync_simulators()
        return changed

    async def run(self) -> None:
        """Consume server frames until the socket closes."""
        async for raw in self.ws:
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError as e:
                log.warning("dropping non-JSON frame: %s", e)
                continue
            self.handle(msg)

    # ---- outbound ----

    async def _send(self, msg: dict[str, Any]) -> None:
        await self.ws.send(json.dumps(msg, separators=(",", ":"), ensure_ascii=False))

    async def join(self, room: str | int) -> None:
        self.room = str(room)
        await self._send(envelope(T_JOIN_ROOM, room=self.room))

    async def add_element(self, element: Element) -> int:
        self.mirror.elements.append(element)
        await self._send(envelope(T_NEW_ELEMENT, room=self.room, element=dump(element)))
        self._sync_simulators()
        return len(self.mirror.elements) - 1

    def begin_stroke(
        self, start: Point, *, color: str = "#000000", brush_size: float = 3, tool: str = "pen"
    ) -> LineElement:
        """Local-only draft; nothing is sent until `finish_stroke`."""
        draft = LineElement(color=color, brush_size=brush_size, tool=tool, points=[start])
        self.mirror.elements.append(draft)
        return draft

    async def finish_stroke(self, draft: LineElement) -> Element:
        final: Element = draft
        index = self.mirror.index_of(draft.id)
        if draft.tool == "shape" and self.recognizer is not None:
            shape = self.recognizer(draft)
            if shape is not None:
                final = shape
                if index is not None:
                    self.mirror.elements[index] = shape
        await self._send(envelope(T_NEW_ELEMENT, room=self.room, element=dump(final)))
        return final

    def update_element(self, element_id: str, **fields: Any) -> bool:
        """Mutate a local element (drag, resize) and schedule a throttled full sync."""
        el = self.mirror.find(element_id)
        if el is None:
            return False
        for name, value in fields.items():
            setattr(el, name, value)
        self._sync.poke()
        return True

    async def end_drag(self) -> None:
        self._sync.cancel()
        await self.sync_now()

    async def remove_element(self, element_id: str) -> bool:
        before = len(self.mirror.elements)
        self.mirror.elements = [el for el in self.mirror.elements if el.id != element_id]
        if len(self.mirror.elements) == before:
            return False
        self._drop_simulator(element_id)
        await self.sync_now()
        return True

    async def sync_now(self) -> None:
        self.mirror.echo.arm()
        await self._send(envelope(T_FULL_SYNC, room=self.room, data=self.mirror.snapshot()))

    async def chat(self, text: str) -> None:
        self.mirror.chat.append(ChatEntry(text=text, sender_id=self.id or ""))
        await self._send(envelope(T_CHAT_MESSAGE, room=self.room, text=text))

    async def laser(self, points: list[Point]) -> Laser:
        laser = Laser(points=points)
        self.mirror.lasers.add(laser)
        await self._send(envelope(T_LASER_POINTER, room=self.room, laser=dump(laser)))
        return laser

    async def set_background(self, background: str) -> None:
        self.mirror.background = background
        await self._send(envelope(T_BACKGROUND_CHANGE, room=self.room, background=background))

    # ---- games ----

    async def send_game(self, game: TicTacToeGame | PingPongGame) -> None:
        await self._send(
            envelope(
                T_GAME_MOVE,
                room=self.room,
                gameIndex=self.mirror.index_of(game.id),
                game=dump(game),
            )
        )

    async def play_tictactoe(self, game_id: str, cell: int) -> bool:
        game = self.mirror.find(game_id)
        if not isinstance(game, TicTacToeGame) or self.id is None:
            return False
        if not tictactoe.play(game, self.id, cell):
            return False
        await self.send_game(game)
        return True

    async def grab_paddle(self, game_id: str, side: pingpong.Side) -> bool:
        """Claim `side` if free and start dragging it; starts the match once both seats are taken."""
        game = self.mirror.find(game_id)
        if not isinstance(game, PingPongGame) or game.winner is not None or self.id is None:
            return False
        seat = "player_left" if side == "left" else "player_right"
        changed = authority.claim_seat(game, seat, self.id)
        if getattr(game, seat) != self.id:
            return False
        self._dragged = (game_id, side)
        if pingpong.start(game):
            changed = True
        if changed:
            await self.send_game(game)
        self._sync_simulators()
        return True

    def move_paddle(self, center_y: float) -> bool:
        """`center_y` is relative to the table's top edge."""
        if self._dragged is None:
            return False
        game_id, side = self._dragged
        game = self.mirror.find(game_id)
        if not isinstance(game, PingPongGame):
            self._dragged = None
            return False
        pingpong.move_paddle(game, side, center_y)
        self._paddle.poke()
        return True

    async def release_paddle(self) -> None:
        self._paddle.cancel()
        await self._emit_dragged_paddle()
        self._dragged = None

    async def _emit_dragged_paddle(self) -> None:
        if self._dragged is None:
            return
        game = self.mirror.find(self._dragged[0])
        if isinstance(game, PingPongGame):
            await self.send_game(game)

    def _sync_simulators(self) -> None:
        for el in self.mirror.elements:
            if not isinstance(el, PingPongGame) or not authority.may_simulate(el, self.id):
                continue
            if not pingpong.in_play(el):
                continue
            ticker = self._simulators.get(el.id)
            if ticker is None:
                ticker = self._simulators[el.id] = Ticker(
                    self.sim_interval_s, self._simulation_step(el.id), name=f"pingpong-{el.id}"
                )
            if ticker.start():
                log.info("simulating ping-pong %s", el.id)

    def _simulation_step(self, game_id: str) -> Callable[[], Any]:
        async def step() -> bool:
            game = self.mirror.find(game_id)
            if not isinstance(game, PingPongGame) or game.winner is not None:
                return False
            if not authority.may_simulate(game, self.id):
                return False
            if not pingpong.in_play(game):
                return True
            pingpong.advance(game)
            await self.send_game(game)
            return game.winner is None

        return step

    def _drop_simulator(self, game_id: str) -> None:
        ticker = self._simulators.pop(game_id, None)
        if ticker is not None:
            ticker.stop()

    def close(self) -> None:
        self._sync.cancel()
        self._paddle.cancel()
        self.mirror.echo.lower()
        for game_id in list(self._simulators):
            self._drop_simulator(game_id)
