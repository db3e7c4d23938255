from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from canvasync.games.authority import may_simulate
from canvasync.protocol.constants import (
    DEFAULT_BACKGROUND,
    T_BACKGROUND_UPDATED,
    T_CANVAS_DATA,
    T_CHAT_HISTORY,
    T_CHAT_RECEIVED,
    T_ELEMENT_RECEIVED,
    T_GAME_MOVE_RECEIVED,
    T_LASER_RECEIVED,
)
from canvasync.protocol.messages import (
    ELEMENT,
    ELEMENTS,
    ChatEntry,
    Element,
    Laser,
    PingPongGame,
    dump,
    dump_all,
)

from .echo import EchoGuard
from .laser import LaserTrail

log = logging.getLogger(__name__)


def _keep_physics(local: PingPongGame, remote: PingPongGame) -> PingPongGame:
    """The simulator never takes ball/score state from anyone else."""
    remote.ball = local.ball.model_copy()
    remote.paddle_left.score = local.paddle_left.score
    remote.paddle_right.score = local.paddle_right.score
    remote.winner = local.winner
    remote.last_update = local.last_update
    return remote


class CanvasMirror:
    """
    A client's local copy of one room, fed by server events.

    `owner_id` is this client's connection id; it decides whether incoming
    ping-pong physics is authoritative (it is, unless we are the simulator).
    """

    def __init__(
        self,
        echo: Optional[EchoGuard] = None,
        lasers: Optional[LaserTrail] = None,
        owner_id: Optional[str] = None,
    ) -> None:
        self.elements: list[Element] = []
        self.chat: list[ChatEntry] = []
        self.background: str = DEFAULT_BACKGROUND
        self.echo = echo or EchoGuard()
        self.lasers = lasers or LaserTrail()
        self.owner_id = owner_id
        self._appliers: dict[str, Callable[[dict[str, Any]], bool]] = {
            T_CANVAS_DATA: self._canvas_data,
            T_ELEMENT_RECEIVED: self._element_received,
            T_GAME_MOVE_RECEIVED: self._game_move_received,
            T_CHAT_HISTORY: self._chat_history,
            T_CHAT_RECEIVED: self._chat_received,
            T_BACKGROUND_UPDATED: self._background_updated,
            T_LASER_RECEIVED: self._laser_received,
        }

    def index_of(self, element_id: str) -> Optional[int]:
        for i, el in enumerate(self.elements):
            if el.id == element_id:
                return i
        return None

    def find(self, element_id: str) -> Optional[Element]:
        i = self.index_of(element_id)
        return None if i is None else self.elements[i]

    def snapshot(self) -> list[dict[str, Any]]:
        return dump_all(self.elements)

    def apply(self, msg: dict[str, Any]) -> bool:
        """Merge one server event; returns True when local state changed."""
        applier = self._appliers.get(msg.get("t"))
        if applier is None:
            return False
        try:
            return applier(msg)
        except (KeyError, TypeError, ValidationError) as e:
            log.warning("dropping malformed %s: %s", msg.get("t"), e)
            return False

    def _canvas_data(self, msg: dict[str, Any]) -> bool:
        if self.echo.raised:
            log.debug("ignoring canvas_data while own full sync is in flight")
            return False
        incoming = ELEMENTS.validate_python(msg["elements"])
        for i, el in enumerate(incoming):
            local = self.find(el.id)
            if isinstance(el, PingPongGame) and isinstance(local, PingPongGame) and may_simulate(local, self.owner_id):
                incoming[i] = _keep_physics(local, el)
        self.elements = incoming
        return True

    def _element_received(self, msg: dict[str, Any]) -> bool:
        self.elements.append(ELEMENT.validate_python(msg["element"]))
        return True

    def _game_move_received(self, msg: dict[str, Any]) -> bool:
        game = msg["game"]
        # gameIndex only addresses id-less games
        index = self.index_of(game["id"]) if "id" in game else msg.get("gameIndex")
        if index is None or not 0 <= index < len(self.elements) or self.elements[index].type != "game":
            log.warning("game move for unknown game %s at index %s", game.get("id"), index)
            return False
        current = self.elements[index]
        if game.get("gameType", current.game_type) != current.game_type:
            log.warning("game move of type %s for %s game %s", game.get("gameType"), current.game_type, current.id)
            return False
        merged = ELEMENT.validate_python({**dump(current), **game})
        simulating = isinstance(current, PingPongGame) and may_simulate(current, self.owner_id)
        if simulating and isinstance(merged, PingPongGame):
            merged = _keep_physics(current, merged)
        self.elements[index] = merged
        return True

    def _chat_history(self, msg: dict[str, Any]) -> bool:
        self.chat = [ChatEntry.model_validate(e) for e in msg["entries"]]
        return True

    def _chat_received(self, msg: dict[str, Any]) -> bool:
        self.chat.append(ChatEntry.model_validate(msg["entry"]))
        return True

    def _background_updated(self, msg: dict[str, Any]) -> bool:
        self.background = msg["background"]
        return True

    def _laser_received(self, msg: dict[str, Any]) -> bool:
        self.lasers.add(Laser.model_validate(msg["laser"]))
        return True
