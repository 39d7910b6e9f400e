from __future__ import annotations

import numpy as np
import pytest

from engines.base import TerminalKind
from engines.errors import InvalidCommandError
from engines.tictactoe import (
    DRAW,
    TicTacToeEngine,
    new_board,
    parse_symbol,
    place,
)
from search import O, X


def play(cells: list[int]):
    """Alternate X and O over ``cells``, starting with X."""
    state = new_board()
    symbol = X
    result = None
    for cell in cells:
        result = place(state, cell, symbol)
        assert result.changed
        state = result.new_state
        symbol = O if symbol == X else X
    return result


def test_new_board_is_empty_with_x_to_move() -> None:
    state = new_board()
    assert state.cells == (0,) * 9
    assert state.current_player == X
    assert not state.done


def test_place_alternates_turns_without_mutating() -> None:
    state = new_board()
    result = place(state, 4, "X")
    assert result.changed
    assert result.new_state.board[1, 1] == X
    assert result.new_state.current_player == O
    assert state.board[1, 1] == 0


def test_out_of_turn_and_occupied_cells_are_noops() -> None:
    state = new_board()
    wrong_turn = place(state, 0, O)
    assert not wrong_turn.changed
    assert wrong_turn.new_state is state

    state = place(state, 0, X).new_state
    taken = place(state, 0, O)
    assert not taken.changed
    assert taken.new_state is state


@pytest.mark.parametrize("cell", [-1, 9, 1.0, True, "4"])
def test_bad_cell_index_is_rejected(cell) -> None:
    with pytest.raises(InvalidCommandError):
        place(new_board(), cell, X)


@pytest.mark.parametrize("symbol", ["Z", 0, 3, None])
def test_bad_symbol_is_rejected(symbol) -> None:
    with pytest.raises(InvalidCommandError):
        parse_symbol(symbol)


def test_parse_symbol() -> None:
    assert parse_symbol("x") == X
    assert parse_symbol("O") == O
    assert parse_symbol(2) == O


def test_completed_line_wins() -> None:
    result = play([0, 3, 1, 4, 2])
    assert result.terminal is TerminalKind.WON
    assert result.new_state.winner == X
    assert result.new_state.done

    after = place(result.new_state, 8, O)
    assert not after.changed
    assert after.terminal is TerminalKind.WON


def test_full_board_without_line_is_a_draw() -> None:
    result = play([0, 1, 2, 4, 3, 5, 7, 6, 8])
    assert result.terminal is TerminalKind.DRAW
    assert result.new_state.winner == DRAW


def test_engine_step_places_current_player(rng: np.random.Generator) -> None:
    engine = TicTacToeEngine(rng=rng)
    state = engine.reset()
    result = engine.step(state, 4)
    assert result.changed
    assert result.new_state.board[1, 1] == X
    assert engine.current_player(result.new_state) == 1

    again = engine.step(result.new_state, 4)
    assert not again.changed
    with pytest.raises(InvalidCommandError):
        engine.step(state, 9)


def test_legal_actions_are_empty_cells() -> None:
    engine = TicTacToeEngine()
    state = play([0, 4]).new_state
    assert engine.legal_actions(state) == [1, 2, 3, 5, 6, 7, 8]
    finished = play([0, 3, 1, 4, 2]).new_state
    assert engine.legal_actions(finished) == []


def test_ai_move_waits_for_its_turn() -> None:
    engine = TicTacToeEngine(ai_symbol="O")
    state = engine.reset()
    result = engine.ai_move(state)
    assert not result.changed
    assert result.new_state is state


def test_ai_answers_corner_with_center() -> None:
    engine = TicTacToeEngine(ai_symbol="O")
    state = engine.place(engine.reset(), 0, X).new_state
    result = engine.ai_move(state)
    assert result.changed
    assert result.new_state.board[1, 1] == O
    assert result.new_state.current_player == X


def test_ai_can_play_first_as_x() -> None:
    engine = TicTacToeEngine(ai_symbol="X")
    result = engine.ai_move(engine.reset())
    assert result.new_state.board[0, 0] == X


def test_self_play_draws() -> None:
    engine = TicTacToeEngine()
    state = engine.reset()
    while not engine.is_terminal(state):
        state = engine.step(state, engine.best_move(state, state.current_player)).new_state
    assert engine.terminal_kind(state) is TerminalKind.DRAW
    assert "Draw" in engine.render(state)


@pytest.mark.parametrize("ai_symbol", ["X", "O"])
def test_ai_never_loses_to_random_play(ai_symbol: str) -> None:
    engine = TicTacToeEngine(ai_symbol=ai_symbol)
    rng = np.random.default_rng(42)
    for _ in range(40):
        state = engine.reset()
        while not engine.is_terminal(state):
            if state.current_player == engine.ai_symbol:
                state = engine.ai_move(state).new_state
            else:
                legal = engine.legal_actions(state)
                state = engine.step(state, legal[rng.integers(len(legal))]).new_state
        assert state.winner in (DRAW, engine.ai_symbol)


def test_render_reports_winner() -> None:
    engine = TicTacToeEngine()
    state = play([0, 3, 1, 4, 2]).new_state
    text = engine.render(state)
    assert text.splitlines()[0] == "X X X"
    assert "X wins!" in text
