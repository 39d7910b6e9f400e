"""Tic-Tac-Toe with an optimal-play opponent.

Fully deterministic (chance_space_size=1). Cells are addressed by flat index
0..8, row-major. X always moves first and turns strictly alternate, so the
count of X is equal to or one more than the count of O.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import numpy as np

from search.minimax import EMPTY, O, X, best_move, check_winner, other

from .base import Engine, MoveResult, TerminalKind
from .errors import InvalidCommandError
from .grid import is_index

logger = logging.getLogger(__name__)

SYMBOLS = {EMPTY: ".", X: "X", O: "O"}
DRAW = 0  # ``winner`` value for a drawn game


@dataclass
class TicTacToeState:
    """State of a Tic-Tac-Toe game."""

    board: np.ndarray  # 3x3, values: 0=empty, 1=X, 2=O
    current_player: int = X
    done: bool = False
    winner: Optional[int] = None  # None, X, O, or 0 for draw

    @property
    def cells(self) -> Tuple[int, ...]:
        return tuple(int(v) for v in self.board.flatten())

    def copy(self) -> "TicTacToeState":
        return TicTacToeState(
            board=self.board.copy(),
            current_player=self.current_player,
            done=self.done,
            winner=self.winner,
        )


def parse_symbol(symbol: Union[int, str]) -> int:
    if isinstance(symbol, str):
        lookup = {"X": X, "O": O}
        if symbol.upper() in lookup:
            return lookup[symbol.upper()]
    elif isinstance(symbol, (int, np.integer)) and not isinstance(symbol, bool) and symbol in (X, O):
        return int(symbol)
    raise InvalidCommandError(f"Unknown symbol: {symbol!r}")


def check_cell_index(cell: int) -> int:
    if not is_index(cell) or not 0 <= cell < 9:
        raise InvalidCommandError(f"Cell index must be in 0..8, got {cell!r}")
    return int(cell)


def new_board() -> TicTacToeState:
    return TicTacToeState(board=np.zeros((3, 3), dtype=np.int32))


def place(state: TicTacToeState, cell: int, symbol: Union[int, str]) -> MoveResult:
    """
    Put ``symbol`` on ``cell``.

    No-op when the cell is taken, the game is over, or it is not
    ``symbol``'s turn.
    """
    cell = check_cell_index(cell)
    symbol = parse_symbol(symbol)
    row, col = divmod(cell, 3)

    if state.done or state.board[row, col] != EMPTY or symbol != state.current_player:
        return MoveResult(new_state=state, terminal=_terminal_kind(state))

    new_board = state.board.copy()
    new_board[row, col] = symbol

    winner = check_winner(new_board.flatten().tolist())
    if winner is not None:
        done = True
    elif np.all(new_board != EMPTY):
        done = True
        winner = DRAW
    else:
        done = False

    new_state = TicTacToeState(
        board=new_board,
        current_player=other(symbol),
        done=done,
        winner=winner,
    )
    terminal = _terminal_kind(new_state)
    if terminal is not None:
        logger.debug("tictactoe: %s", "draw" if winner == DRAW else f"{SYMBOLS[winner]} wins")
    return MoveResult(new_state=new_state, changed=True, terminal=terminal)


def _terminal_kind(state: TicTacToeState) -> Optional[TerminalKind]:
    if not state.done:
        return None
    return TerminalKind.DRAW if state.winner == DRAW else TerminalKind.WON


class TicTacToeEngine(Engine):
    """
    Tic-Tac-Toe behind the common engine interface.

    ``step`` places the symbol of the side to move; ``best_move`` asks the
    exhaustive search for the automated opponent's cell.
    """

    name = "tictactoe"

    def __init__(
        self,
        ai_symbol: Union[int, str] = O,
        depth_discount: bool = False,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.ai_symbol = parse_symbol(ai_symbol)
        self.depth_discount = depth_discount

    @property
    def action_space_size(self) -> int:
        return 9  # 3x3 grid positions

    @property
    def chance_space_size(self) -> int:
        return 1  # Fully deterministic

    @property
    def observation_shape(self) -> Tuple[int, ...]:
        return (3, 3)

    @property
    def is_two_player(self) -> bool:
        return True

    def current_player(self, state: TicTacToeState) -> int:
        return 0 if state.current_player == X else 1

    def reset(self) -> TicTacToeState:
        return new_board()

    def clone_state(self, state: TicTacToeState) -> TicTacToeState:
        return state.copy()

    def legal_actions(self, state: TicTacToeState) -> List[int]:
        if state.done:
            return []
        return [i for i in range(9) if state.board[i // 3, i % 3] == EMPTY]

    def apply_action(
        self, state: TicTacToeState, action: int
    ) -> Tuple[TicTacToeState, int, Dict[str, Any]]:
        """Place the current player's symbol. Fully deterministic."""
        result = place(state, action, state.current_player)
        return result.new_state, 0, {"changed": result.changed}

    def terminal_kind(self, state: TicTacToeState) -> Optional[TerminalKind]:
        return _terminal_kind(state)

    def place(self, state: TicTacToeState, cell: int, symbol: Union[int, str]) -> MoveResult:
        return place(state, cell, symbol)

    def best_move(self, state: TicTacToeState, symbol: Union[int, str, None] = None) -> Optional[int]:
        """Optimal cell for ``symbol`` (defaults to the automated opponent)."""
        symbol = self.ai_symbol if symbol is None else parse_symbol(symbol)
        if state.done:
            return None
        return best_move(state.cells, symbol, self.depth_discount)

    def ai_move(self, state: TicTacToeState) -> MoveResult:
        """Let the automated opponent play, if it is its turn."""
        if state.done or state.current_player != self.ai_symbol:
            return MoveResult(new_state=state, terminal=_terminal_kind(state))
        cell = self.best_move(state)
        return place(state, cell, self.ai_symbol)

    def render(self, state: TicTacToeState) -> str:
        lines = []
        for r in range(3):
            lines.append(" ".join(SYMBOLS[int(state.board[r, c])] for c in range(3)))
        lines.append(f"Player: {SYMBOLS[state.current_player]}")
        if state.done:
            if state.winner == DRAW:
                lines.append("Result: Draw")
            else:
                lines.append(f"Result: {SYMBOLS[state.winner]} wins!")
        return "\n".join(lines)
