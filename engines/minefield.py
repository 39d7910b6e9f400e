"""Minesweeper engine.

The board is fully determined once mines are placed, so commands have no
chance component:
1. new_game places mines uniformly and precomputes neighbor counts
2. reveal flood-fills from the clicked cell (or detonates a mine)
3. toggle_flag flips a flag on an unrevealed cell

By default the first click can hit a mine. With ``safe_first_click`` the mines
are placed on the first reveal, avoiding the clicked cell.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Tuple
import logging

import numpy as np

from .base import Engine, MoveResult, TerminalKind
from .errors import InvalidCommandError
from .grid import check_cell, empty_grid, neighbor_counts, neighbors

logger = logging.getLogger(__name__)

ROWS = 16
COLS = 16
MINES = 40


class Cell(NamedTuple):
    """Read-only view of one cell."""

    is_mine: bool
    is_revealed: bool
    is_flagged: bool
    neighbor_mine_count: int


@dataclass
class MinefieldState:
    """State of a Minesweeper game."""

    mines: np.ndarray  # bool, True = mine
    revealed: np.ndarray  # bool
    flagged: np.ndarray  # bool
    counts: np.ndarray  # int, mines among the 8 neighbors (0 for mine cells)
    mine_count: int
    terminal: Optional[TerminalKind] = None
    armed: bool = True  # False until mines are placed (safe first click)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.mines.shape

    @property
    def remaining_mines(self) -> int:
        """Mines minus flags; negative when over-flagged."""
        return self.mine_count - int(self.flagged.sum())

    @property
    def revealed_count(self) -> int:
        return int(self.revealed.sum())

    def cell(self, row: int, col: int) -> Cell:
        return Cell(
            is_mine=bool(self.mines[row, col]),
            is_revealed=bool(self.revealed[row, col]),
            is_flagged=bool(self.flagged[row, col]),
            neighbor_mine_count=int(self.counts[row, col]),
        )

    def copy(self) -> "MinefieldState":
        return MinefieldState(
            mines=self.mines.copy(),
            revealed=self.revealed.copy(),
            flagged=self.flagged.copy(),
            counts=self.counts.copy(),
            mine_count=self.mine_count,
            terminal=self.terminal,
            armed=self.armed,
        )


def place_mines(
    mines: np.ndarray,
    mine_count: int,
    rng: np.random.Generator,
    exclude: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """Sample (row, col) pairs until ``mine_count`` distinct cells are mined."""
    rows, cols = mines.shape
    mines = mines.copy()
    placed = int(mines.sum())
    while placed < mine_count:
        r = int(rng.integers(rows))
        c = int(rng.integers(cols))
        if mines[r, c] or (r, c) == exclude:
            continue
        mines[r, c] = True
        placed += 1
    return mines


def board_from_mines(mines: np.ndarray) -> MinefieldState:
    """Build a fresh (nothing revealed) state around a fixed mine layout."""
    mines = np.asarray(mines, dtype=bool).copy()
    counts = neighbor_counts(mines)
    counts[mines] = 0
    return MinefieldState(
        mines=mines,
        revealed=np.zeros_like(mines),
        flagged=np.zeros_like(mines),
        counts=counts,
        mine_count=int(mines.sum()),
    )


def new_game(
    rows: int = ROWS,
    cols: int = COLS,
    mine_count: int = MINES,
    rng: Optional[np.random.Generator] = None,
    safe_first_click: bool = False,
) -> MinefieldState:
    """Create a board with ``mine_count`` uniformly placed mines."""
    total = rows * cols
    limit = total - 1 if safe_first_click else total
    if not 0 <= mine_count <= limit:
        raise InvalidCommandError(
            f"Cannot place {mine_count} mines on a {rows}x{cols} board"
        )
    if rng is None:
        rng = np.random.default_rng()

    mines = empty_grid(rows, cols, dtype=bool)
    if safe_first_click:
        state = board_from_mines(mines)
        state.mine_count = mine_count
        state.armed = False
    else:
        state = board_from_mines(place_mines(mines, mine_count, rng))

    logger.debug(
        "minesweeper: new %dx%d game with %d mines (safe first click: %s)",
        rows, cols, mine_count, safe_first_click,
    )
    return state


def _arm(state: MinefieldState, row: int, col: int, rng: Optional[np.random.Generator]) -> MinefieldState:
    """Place the deferred mines, keeping ``(row, col)`` clear."""
    if rng is None:
        rng = np.random.default_rng()
    armed = board_from_mines(place_mines(state.mines, state.mine_count, rng, exclude=(row, col)))
    armed.flagged = state.flagged.copy()
    return armed


def flood_fill(state: MinefieldState, row: int, col: int) -> List[Tuple[int, int]]:
    """
    Reveal from ``(row, col)`` in place; return cells revealed, in visit order.

    Cells are checked when popped, not when pushed, so a flagged neighbor of a
    zero cell may sit on the stack but is never revealed.
    """
    shape = state.shape
    opened = []
    stack = [(row, col)]
    while stack:
        r, c = stack.pop()
        if state.revealed[r, c] or state.flagged[r, c]:
            continue
        state.revealed[r, c] = True
        opened.append((r, c))
        if state.counts[r, c] == 0:
            for nr, nc in neighbors(shape, r, c):
                if not state.revealed[nr, nc]:
                    stack.append((nr, nc))
    return opened


def is_won(state: MinefieldState) -> bool:
    """Every non-mine cell revealed; flags do not matter."""
    return bool(np.all(state.revealed | state.mines))


def reveal(
    state: MinefieldState,
    row: int,
    col: int,
    rng: Optional[np.random.Generator] = None,
) -> MoveResult:
    """
    Reveal a cell.

    No-op on revealed or flagged cells and after the game ended. ``rng`` is
    only used to place deferred mines on a safe first click.
    """
    row, col = check_cell(state.shape, row, col)
    if (
        state.terminal is not None
        or state.revealed[row, col]
        or state.flagged[row, col]
    ):
        return MoveResult(new_state=state, terminal=state.terminal)

    new_state = _arm(state, row, col, rng) if not state.armed else state.copy()

    if new_state.mines[row, col]:
        # Boom: show every mine
        new_state.revealed |= new_state.mines
        new_state.terminal = TerminalKind.LOST
        logger.debug("minesweeper: mine hit at (%d, %d)", row, col)
        return MoveResult(
            new_state=new_state,
            changed=True,
            terminal=TerminalKind.LOST,
            info={"revealed": [(row, col)]},
        )

    opened = flood_fill(new_state, row, col)
    if is_won(new_state):
        new_state.terminal = TerminalKind.WON
        logger.debug("minesweeper: cleared the board")

    return MoveResult(
        new_state=new_state,
        changed=True,
        terminal=new_state.terminal,
        info={"revealed": opened},
    )


def toggle_flag(state: MinefieldState, row: int, col: int) -> MoveResult:
    """Flip the flag on an unrevealed cell while the game is in progress."""
    row, col = check_cell(state.shape, row, col)
    if state.terminal is not None or state.revealed[row, col]:
        return MoveResult(new_state=state, terminal=state.terminal)

    new_state = state.copy()
    new_state.flagged[row, col] = not new_state.flagged[row, col]
    return MoveResult(
        new_state=new_state,
        changed=True,
        info={"flagged": bool(new_state.flagged[row, col])},
    )


class MinefieldEngine(Engine):
    """
    Minesweeper behind the common engine interface.

    Actions:
        0..N-1:  reveal flat cell a (row = a // cols)
        N..2N-1: toggle the flag on flat cell a - N

    With ``safe_first_click`` the mine layout is drawn from the engine's
    generator inside the first reveal's ``apply_action``. That draw is not
    modelled as a chance outcome (``chance_space_size`` stays 1), so the
    first reveal is reproducible only through the engine seed.
    """

    name = "minesweeper"

    def __init__(
        self,
        rows: int = ROWS,
        cols: int = COLS,
        mines: int = MINES,
        safe_first_click: bool = False,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.rows = rows
        self.cols = cols
        self.mines = mines
        self.safe_first_click = safe_first_click

    @property
    def num_cells(self) -> int:
        return self.rows * self.cols

    @property
    def action_space_size(self) -> int:
        return 2 * self.num_cells

    @property
    def chance_space_size(self) -> int:
        return 1  # Board is fixed once mines are placed

    @property
    def observation_shape(self) -> Tuple[int, ...]:
        return (self.rows, self.cols)

    def reset(self) -> MinefieldState:
        return new_game(
            self.rows, self.cols, self.mines,
            rng=self._rng, safe_first_click=self.safe_first_click,
        )

    def clone_state(self, state: MinefieldState) -> MinefieldState:
        return state.copy()

    def legal_actions(self, state: MinefieldState) -> List[int]:
        if state.terminal is not None:
            return []
        hidden = ~state.revealed
        reveals = np.flatnonzero(hidden & ~state.flagged)
        flags = np.flatnonzero(hidden) + self.num_cells
        return [int(a) for a in reveals] + [int(a) for a in flags]

    def apply_action(
        self, state: MinefieldState, action: int
    ) -> Tuple[MinefieldState, int, Dict[str, Any]]:
        """Reveal or flag. Deterministic except for a deferred first-reveal mine layout."""
        flat = action % self.num_cells
        row, col = divmod(flat, self.cols)
        if action < self.num_cells:
            result = reveal(state, row, col, rng=self._rng)
        else:
            result = toggle_flag(state, row, col)
        result.info["changed"] = result.changed
        return result.new_state, 0, result.info

    def terminal_kind(self, state: MinefieldState) -> Optional[TerminalKind]:
        return state.terminal

    def reveal(self, state: MinefieldState, row: int, col: int) -> MoveResult:
        return reveal(state, row, col, rng=self._rng)

    def toggle_flag(self, state: MinefieldState, row: int, col: int) -> MoveResult:
        return toggle_flag(state, row, col)

    def render(self, state: MinefieldState) -> str:
        lines = [f"Mines left: {state.remaining_mines}"]
        rows, cols = state.shape
        for r in range(rows):
            chars = []
            for c in range(cols):
                if state.revealed[r, c]:
                    if state.mines[r, c]:
                        chars.append("*")
                    else:
                        n = state.counts[r, c]
                        chars.append(str(n) if n else " ")
                elif state.flagged[r, c]:
                    chars.append("F")
                else:
                    chars.append(".")
            lines.append(" ".join(chars))
        if state.terminal is not None:
            lines.append(f"Result: {state.terminal.value}")
        return "\n".join(lines)
