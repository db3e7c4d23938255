from __future__ import annotations

from typing import Optional

from canvasync.protocol.messages import TicTacToeGame

from . import authority

LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),  # diagonals
)


def new_game(x: float, y: float, size: float = 300) -> TicTacToeGame:
    return TicTacToeGame(x=x, y=y, size=size)


def evaluate(board: list[Optional[str]]) -> Optional[tuple[str, Optional[list[int]]]]:
    """Return (winner, win_line) for a finished board, ("Draw", None) when full, else None."""
    for a, b, c in LINES:
        if board[a] and board[a] == board[b] == board[c]:
            return board[a], [a, b, c]
    if all(cell is not None for cell in board):
        return "Draw", None
    return None


def cell_at(game: TicTacToeGame, x: float, y: float) -> Optional[int]:
    """Board cell under a canvas point, or None outside the board."""
    if not (game.x <= x <= game.x + game.size and game.y <= y <= game.y + game.size):
        return None
    cell = game.size / 3
    col = min(2, int((x - game.x) // cell))
    row = min(2, int((y - game.y) // cell))
    return row * 3 + col


def mark_for(game: TicTacToeGame, conn_id: str) -> Optional[str]:
    """Mark this connection plays, taking the next free seat if it holds none yet."""
    if game.player_x == conn_id:
        return "X"
    if game.player_o == conn_id:
        return "O"
    if game.player_x is None:
        return "X"
    if game.player_o is None:
        return "O"
    return None


def play(game: TicTacToeGame, conn_id: str, cell: int) -> bool:
    """
    Place `conn_id`'s mark at `cell`, mutating `game`.

    The first mover becomes X, the next distinct mover O. Rejected moves (game
    over, spectator, wrong turn, occupied cell) leave the game untouched.
    """
    if game.winner is not None or not 0 <= cell < 9:
        return False
    mark = mark_for(game, conn_id)
    if mark is None or mark != game.current_player:
        return False
    if game.board[cell] is not None:
        return False

    seat = "player_x" if mark == "X" else "player_o"
    if getattr(game, seat) is None and not authority.claim_seat(game, seat, conn_id):
        return False

    game.board[cell] = mark
    result = evaluate(game.board)
    if result is not None:
        game.winner, game.win_line = result
    else:
        game.current_player = "O" if mark == "X" else "X"
    return True
