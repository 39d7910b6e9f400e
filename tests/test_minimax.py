from __future__ import annotations

from functools import lru_cache

import pytest

from engines.errors import InvalidCommandError
from search import EMPTY, O, X, best_move, check_winner, score_moves
from search.minimax import is_full, other

_ = EMPTY


@lru_cache(maxsize=None)
def negamax(board: tuple[int, ...], to_move: int) -> int:
    """+1 if ``to_move`` wins with best play, -1 if it loses, 0 for a draw."""
    if check_winner(board) is not None:
        # the previous mover completed a line
        return -1
    if is_full(board):
        return 0
    return max(
        -negamax(board[:i] + (to_move,) + board[i + 1:], other(to_move))
        for i in range(9)
        if board[i] == EMPTY
    )


def reachable_positions() -> list[tuple[tuple[int, ...], int]]:
    """Every non-terminal position reachable from the empty board, with the side to move."""
    seen = set()
    stack = [((EMPTY,) * 9, X)]
    while stack:
        board, to_move = stack.pop()
        if (board, to_move) in seen:
            continue
        seen.add((board, to_move))
        if check_winner(board) is not None or is_full(board):
            continue
        for i in range(9):
            if board[i] == EMPTY:
                stack.append((board[:i] + (to_move,) + board[i + 1:], other(to_move)))
    return [
        (board, to_move)
        for board, to_move in seen
        if check_winner(board) is None and not is_full(board)
    ]


@pytest.mark.parametrize(
    "board, winner",
    [
        ([X, X, X, _, O, O, _, _, _], X),
        ([O, X, _, O, X, _, O, _, _], O),
        ([X, O, _, O, X, _, _, _, X], X),
        ([_, _, O, X, O, X, O, _, _], O),
        ([X, O, X, X, O, O, O, X, X], None),
        ([_] * 9, None),
    ],
)
def test_check_winner(board: list[int], winner: int | None) -> None:
    assert check_winner(board) == winner


def test_takes_the_win_over_the_block() -> None:
    board = [X, X, _, O, O, _, X, _, _]
    assert best_move(board, O) == 5


def test_blocks_an_immediate_threat() -> None:
    board = [X, X, _, _, O, _, _, _, _]
    assert best_move(board, O) == 2


def test_answers_a_corner_opening_with_the_center() -> None:
    board = [X, _, _, _, _, _, _, _, _]
    assert best_move(board, O) == 4


def test_empty_board_ties_go_to_the_lowest_index() -> None:
    scores = score_moves([_] * 9, X)
    assert set(scores.values()) == {0}
    assert best_move([_] * 9, X) == 0


def test_no_move_on_finished_boards() -> None:
    assert best_move([X, X, X, O, O, _, _, _, _], O) is None
    assert best_move([X, O, X, X, O, O, O, X, X], X) is None


def test_rejects_unknown_symbol() -> None:
    with pytest.raises(InvalidCommandError):
        best_move([_] * 9, 3)


@pytest.mark.parametrize("size", [0, 8, 10])
def test_rejects_boards_of_the_wrong_size(size: int) -> None:
    with pytest.raises(InvalidCommandError):
        best_move([_] * size, X)


def test_chosen_move_is_optimal_in_every_reachable_position() -> None:
    positions = reachable_positions()
    assert len(positions) > 4000
    for board, to_move in positions:
        cell = best_move(board, to_move)
        assert board[cell] == EMPTY
        child = board[:cell] + (to_move,) + board[cell + 1:]
        assert -negamax(child, other(to_move)) == negamax(board, to_move), board


def test_self_play_is_a_draw() -> None:
    board = [_] * 9
    to_move = X
    while check_winner(board) is None and not is_full(board):
        board[best_move(board, to_move)] = to_move
        to_move = other(to_move)
    assert check_winner(board) is None


def test_depth_discount_prefers_the_faster_win() -> None:
    # X wins at once on 5, or later via the fork on 0
    board = [_, O, O, X, X, _, _, _, _]

    plain = score_moves(board, X)
    assert plain[0] == plain[5] == 10
    assert best_move(board, X) == 0

    discounted = score_moves(board, X, depth_discount=True)
    assert discounted[5] == 9
    assert discounted[0] == 7
    assert best_move(board, X, depth_discount=True) == 5


def test_depth_discount_prefers_the_slower_loss() -> None:
    # Edge reply to a corner opening: O is lost whatever it does
    board = [X, O, _, _, X, _, _, _, _]

    plain = score_moves(board, O)
    assert set(plain.values()) == {-10}
    assert best_move(board, O) == 2

    # blocking on 8 only delays the X fork
    scores = score_moves(board, O, depth_discount=True)
    assert scores[8] == -6
    assert all(score == -8 for cell, score in scores.items() if cell != 8)
    assert best_move(board, O, depth_discount=True) == 8
