"""
Seat ownership and single-writer authority for game elements.

Seats (player_x/player_o, player_left/player_right) are claimed with a
compare-and-set and never reassigned. For ping-pong the left seat is the sole
simulator: only its holder may move the ball, change scores or declare a
winner. The server runs every inbound game state through `vet_game_update`
so a misbehaving or stale client cannot break those rules.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from canvasync.protocol.messages import PingPongGame, TicTacToeGame

from . import tictactoe

log = logging.getLogger(__name__)

Game = Union[TicTacToeGame, PingPongGame]

SEATS: dict[str, tuple[str, str]] = {
    "tictactoe": ("player_x", "player_o"),
    "pingpong": ("player_left", "player_right"),
}


def seats(game: Game) -> tuple[str, str]:
    return SEATS[game.game_type]


def seat_of(game: Game, conn_id: Optional[str]) -> Optional[str]:
    if conn_id is None:
        return None
    for seat in seats(game):
        if getattr(game, seat) == conn_id:
            return seat
    return None


def claim_seat(game: Game, seat: str, conn_id: str) -> bool:
    """Take `seat` for `conn_id` only if it is empty and the connection holds no other seat."""
    if seat not in seats(game):
        raise ValueError(f"{game.game_type} has no seat {seat!r}")
    if getattr(game, seat) is not None or seat_of(game, conn_id) is not None:
        return False
    setattr(game, seat, conn_id)
    return True


def simulator_of(game: Game) -> Optional[str]:
    return game.player_left if isinstance(game, PingPongGame) else None


def may_simulate(game: Game, conn_id: Optional[str]) -> bool:
    return conn_id is not None and simulator_of(game) == conn_id


def _merge_claims(current: Game, incoming: Game, vetted: Game, sender_id: str) -> None:
    for seat in seats(current):
        if getattr(incoming, seat) == sender_id and getattr(current, seat) is None:
            claim_seat(vetted, seat, sender_id)


def _vet_tictactoe(current: TicTacToeGame, incoming: TicTacToeGame, sender_id: str) -> Optional[TicTacToeGame]:
    changed = [i for i in range(9) if incoming.board[i] != current.board[i]]
    vetted = current.model_copy(deep=True)
    # geometry is free for anyone to move
    vetted.x, vetted.y, vetted.size = incoming.x, incoming.y, incoming.size
    if not changed:
        _merge_claims(current, incoming, vetted, sender_id)
        return vetted
    if len(changed) > 1:
        log.warning("tictactoe %s: %d cells changed in one move", current.id, len(changed))
        return None
    cell = changed[0]
    mark = incoming.board[cell]
    if mark is None or not tictactoe.play(vetted, sender_id, cell) or vetted.board[cell] != mark:
        log.info("tictactoe %s: rejected move at cell %d from %s", current.id, cell, sender_id)
        return None
    return vetted


def _vet_pingpong(current: PingPongGame, incoming: PingPongGame, sender_id: str) -> PingPongGame:
    vetted = incoming.model_copy(deep=True)
    vetted.id = current.id
    vetted.player_left = current.player_left
    vetted.player_right = current.player_right
    _merge_claims(current, incoming, vetted, sender_id)
    left, right = vetted.player_left, vetted.player_right

    if sender_id != left:
        # physics belongs to the simulator
        vetted.ball = current.ball.model_copy()
        vetted.paddle_left.score = current.paddle_left.score
        vetted.paddle_right.score = current.paddle_right.score
        vetted.winner = current.winner
        vetted.last_update = current.last_update
        vetted.paddle_left.y = current.paddle_left.y
    if sender_id != right:
        vetted.paddle_right.y = current.paddle_right.y
    if sender_id not in (left, right):
        # spectators may only move the table on the canvas
        vetted.width, vetted.height = current.width, current.height
        vetted.paused = current.paused
        for side in ("paddle_left", "paddle_right"):
            mine, theirs = getattr(vetted, side), getattr(current, side)
            mine.x, mine.width, mine.height = theirs.x, theirs.width, theirs.height

    # a match only ever starts, and only with both seats taken
    if current.game_started:
        vetted.game_started = True
    elif vetted.game_started and (left is None or right is None):
        vetted.game_started = False
    return vetted


def vet_game_update(current: Game, incoming: Game, sender_id: str) -> Optional[Game]:
    """
    Reconcile `incoming` (sent by `sender_id`) against the stored `current` game.

    Returns the state to store and broadcast, or None when the update must be
    dropped entirely (different game kind, illegal tic-tac-toe move).
    """
    if current.game_type != incoming.game_type:
        return None
    if isinstance(current, TicTacToeGame):
        assert isinstance(incoming, TicTacToeGame)
        return _vet_tictactoe(current, incoming, sender_id)
    assert isinstance(incoming, PingPongGame)
    return _vet_pingpong(current, incoming, sender_id)
