from __future__ import annotations

import random
from typing import Literal, Optional

from canvasync.protocol.messages import PingPongGame, now_ms

Side = Literal["left", "right"]

FRAME_MS = 16.67
MAX_FRAMES_PER_STEP = 5.0
WIN_SCORE = 7
SERVE_SPEED = 4.0
SPIN = 8.0


def new_game(x: float, y: float) -> PingPongGame:
    return PingPongGame(x=x, y=y)


def in_play(game: PingPongGame) -> bool:
    return (
        game.game_started
        and not game.paused
        and game.winner is None
        and game.player_left is not None
        and game.player_right is not None
    )


def start(game: PingPongGame, now: Optional[int] = None) -> bool:
    """Start once both seats are filled. Resets the step clock so the first tick is small."""
    if game.game_started or game.player_left is None or game.player_right is None:
        return False
    game.game_started = True
    game.last_update = now_ms() if now is None else now
    return True


def reset_ball(game: PingPongGame, rng: random.Random | None = None) -> None:
    r = rng or random
    game.ball.x = game.width / 2
    game.ball.y = game.height / 2
    game.ball.dx = (1 if r.random() > 0.5 else -1) * SERVE_SPEED
    game.ball.dy = (r.random() - 0.5) * 4


def move_paddle(game: PingPongGame, side: Side, center_y: float) -> float:
    """Centre `side`'s paddle on `center_y` (table coordinates), clamped to the table."""
    paddle = game.paddle_left if side == "left" else game.paddle_right
    paddle.y = max(0.0, min(game.height - paddle.height, center_y - paddle.height / 2))
    return paddle.y


def advance(game: PingPongGame, now: Optional[int] = None, rng: random.Random | None = None) -> Optional[Side]:
    """
    Advance the ball by the time since `last_update` (in 60 fps frames).

    Returns the side that scored during this step, if any. Only the left
    player's client calls this; everyone else receives the result.
    """
    now = now_ms() if now is None else now
    frames = min(MAX_FRAMES_PER_STEP, max(0.0, (now - game.last_update) / FRAME_MS))
    game.last_update = now

    ball = game.ball
    left = game.paddle_left
    right = game.paddle_right
    ball.x += ball.dx * frames
    ball.y += ball.dy * frames

    # top/bottom walls
    if ball.y - ball.radius <= 0 or ball.y + ball.radius >= game.height:
        ball.dy *= -1
        ball.y = ball.radius if ball.y - ball.radius <= 0 else game.height - ball.radius

    if (
        ball.x - ball.radius <= left.x + left.width
        and ball.x >= left.x
        and left.y <= ball.y <= left.y + left.height
    ):
        ball.dx = abs(ball.dx)
        ball.x = left.x + left.width + ball.radius
        ball.dy = ((ball.y - left.y) / left.height - 0.5) * SPIN

    if (
        ball.x + ball.radius >= right.x
        and ball.x <= right.x + right.width
        and right.y <= ball.y <= right.y + right.height
    ):
        ball.dx = -abs(ball.dx)
        ball.x = right.x - ball.radius
        ball.dy = ((ball.y - right.y) / right.height - 0.5) * SPIN

    scored: Optional[Side] = None
    if ball.x - ball.radius <= 0:
        right.score += 1
        scored = "right"
    elif ball.x + ball.radius >= game.width:
        left.score += 1
        scored = "left"

    if scored is not None:
        reset_ball(game, rng)
        if (right if scored == "right" else left).score >= WIN_SCORE:
            game.winner = scored
    return scored
