"""Exhaustive minimax for Tic-Tac-Toe.

Boards are 9-cell sequences (row-major) of EMPTY, X or O. Terminal scores
are +10 when the maximizing symbol owns a line, -10 when the other symbol
does, 0 for a full board. Without ``depth_discount`` a fast win and a slow
win score the same; with it, wins score ``10 - depth`` and losses
``depth - 10``.

The full tree has fewer than 9! paths, so no pruning is done. Node values
are memoised by (board, ai symbol, side to move, discount), which is all a
value depends on.
"""

from typing import Dict, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

EMPTY = 0
X = 1
O = 2

WIN_SCORE = 10

WINNING_LINES = [
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),  # diagonals
]

# (board, ai_symbol, maximizing, depth_discount, depth) -> score
_cache: Dict[Tuple[Tuple[int, ...], int, bool, bool, int], int] = {}


def other(symbol: int) -> int:
    return O if symbol == X else X


def check_winner(board: Sequence[int]) -> Optional[int]:
    """Return the symbol owning a complete line, or None."""
    for a, b, c in WINNING_LINES:
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return board[a]
    return None


def is_full(board: Sequence[int]) -> bool:
    return all(cell != EMPTY for cell in board)


def minimax(
    board: Sequence[int],
    ai_symbol: int,
    maximizing: bool,
    depth: int = 0,
    depth_discount: bool = False,
) -> int:
    """
    Value of ``board`` for ``ai_symbol``.

    ``maximizing`` is True when ``ai_symbol`` is to move. Children are
    visited in cell-index order.
    """
    board = tuple(board)
    # depth only changes the value when discounting
    key = (board, ai_symbol, maximizing, depth_discount, depth if depth_discount else 0)
    cached = _cache.get(key)
    if cached is not None:
        return cached

    winner = check_winner(board)
    if winner is not None:
        penalty = depth if depth_discount else 0
        score = WIN_SCORE - penalty if winner == ai_symbol else penalty - WIN_SCORE
    elif is_full(board):
        score = 0
    else:
        symbol = ai_symbol if maximizing else other(ai_symbol)
        child_scores = []
        for i in range(9):
            if board[i] == EMPTY:
                child = board[:i] + (symbol,) + board[i + 1:]
                child_scores.append(
                    minimax(child, ai_symbol, not maximizing, depth + 1, depth_discount)
                )
        score = max(child_scores) if maximizing else min(child_scores)

    _cache[key] = score
    return score


def score_moves(
    board: Sequence[int], ai_symbol: int, depth_discount: bool = False
) -> Dict[int, int]:
    """Minimax score of placing ``ai_symbol`` on each empty cell."""
    board = tuple(board)
    scores = {}
    for i in range(9):
        if board[i] == EMPTY:
            child = board[:i] + (ai_symbol,) + board[i + 1:]
            scores[i] = minimax(child, ai_symbol, False, 1, depth_discount)
    return scores


def best_move(
    board: Sequence[int], ai_symbol: int, depth_discount: bool = False
) -> Optional[int]:
    """
    Optimal cell for ``ai_symbol``; ties go to the lowest cell index.

    Returns None when the board is full or already won.
    """
    # engines imports this module, so the error is resolved at call time
    from engines.errors import InvalidCommandError

    if ai_symbol not in (X, O):
        raise InvalidCommandError(f"ai_symbol must be X or O, got {ai_symbol!r}")
    if len(board) != 9:
        raise InvalidCommandError(f"board must have 9 cells, got {len(board)}")
    if check_winner(board) is not None:
        return None

    best_score = None
    best_cell = None
    for cell, score in score_moves(board, ai_symbol, depth_discount).items():
        if best_score is None or score > best_score:
            best_score = score
            best_cell = cell

    if best_cell is not None:
        logger.debug("minimax: cell %d scores %d", best_cell, best_score)
    return best_cell


def clear_cache() -> None:
    _cache.clear()
