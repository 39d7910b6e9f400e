from .minimax import (
    EMPTY,
    O,
    WINNING_LINES,
    X,
    best_move,
    check_winner,
    minimax,
    score_moves,
)

__all__ = [
    "EMPTY",
    "O",
    "WINNING_LINES",
    "X",
    "best_move",
    "check_winner",
    "minimax",
    "score_moves",
]
