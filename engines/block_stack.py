"""Falling-block stacking engine (Tetris, "Neon Stack").

The grid holds colour tags (0 = empty, 1..7 = tetromino kind). The falling
piece lives beside the grid until it locks:
1. Commands move, rotate or drop the piece against the fixed grid
2. A soft drop or tick that cannot move down locks the piece, clearing rows
3. After a lock the next tetromino is drawn (the chance outcome) and spawned

Rotation has no wall kicks: a colliding rotation is rejected outright.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple
import logging

import numpy as np

from .base import ChanceOutcome, Engine, MoveResult, TerminalKind
from .errors import InvalidCommandError
from .grid import empty_grid, rotate_clockwise

logger = logging.getLogger(__name__)

ROWS = 20
COLS = 10

GHOST_TAG = -1

# Kind name -> spawn shape; the colour tag of a kind is its index + 1
SHAPES: Dict[str, np.ndarray] = {
    "I": np.array([[1, 1, 1, 1]], dtype=np.int8),
    "O": np.array([[1, 1], [1, 1]], dtype=np.int8),
    "T": np.array([[0, 1, 0], [1, 1, 1]], dtype=np.int8),
    "S": np.array([[0, 1, 1], [1, 1, 0]], dtype=np.int8),
    "Z": np.array([[1, 1, 0], [0, 1, 1]], dtype=np.int8),
    "J": np.array([[1, 0, 0], [1, 1, 1]], dtype=np.int8),
    "L": np.array([[0, 0, 1], [1, 1, 1]], dtype=np.int8),
}
KINDS = list(SHAPES)
COLORS = {
    "I": "cyan",
    "O": "yellow",
    "T": "purple",
    "S": "green",
    "Z": "red",
    "J": "blue",
    "L": "orange",
}

# Points for rows cleared by a single lock
LINE_SCORES = {0: 0, 1: 100, 2: 300, 3: 500, 4: 800}


class Action(IntEnum):
    LEFT = 0
    RIGHT = 1
    ROTATE = 2
    SOFT_DROP = 3
    HARD_DROP = 4
    TICK = 5


@dataclass(frozen=True, eq=False)
class Piece:
    """A falling tetromino: occupied sub-cells of ``shape`` offset by (row, col)."""

    shape: np.ndarray
    row: int
    col: int
    kind: str

    @property
    def color_tag(self) -> int:
        return KINDS.index(self.kind) + 1

    @property
    def color(self) -> str:
        return COLORS[self.kind]

    def cells(self) -> List[Tuple[int, int]]:
        """Absolute (row, col) of every occupied sub-cell."""
        return [
            (self.row + int(r), self.col + int(c))
            for r, c in zip(*np.nonzero(self.shape))
        ]


@dataclass
class BlockStackState:
    """State of a block-stacking game."""

    grid: np.ndarray  # rows x cols colour tags
    piece: Optional[Piece] = None
    score: int = 0
    lines: int = 0
    game_over: bool = False

    def copy(self) -> "BlockStackState":
        return BlockStackState(
            grid=self.grid.copy(),
            piece=self.piece,
            score=self.score,
            lines=self.lines,
            game_over=self.game_over,
        )


def new_board(rows: int = ROWS, cols: int = COLS) -> BlockStackState:
    return BlockStackState(grid=empty_grid(rows, cols, dtype=np.int8))


def collides(grid: np.ndarray, shape: np.ndarray, row: int, col: int) -> bool:
    """
    True iff ``shape`` placed at (row, col) hits a wall, the floor or a
    filled cell. Sub-cells above the grid only collide with the walls.
    """
    rows, cols = grid.shape
    for r, c in zip(*np.nonzero(shape)):
        y = row + int(r)
        x = col + int(c)
        if x < 0 or x >= cols or y >= rows:
            return True
        if y >= 0 and grid[y, x] != 0:
            return True
    return False


def rotate_shape(shape: np.ndarray) -> np.ndarray:
    """Quarter turn clockwise."""
    return rotate_clockwise(shape)


def spawn(state: BlockStackState, kind: str) -> BlockStackState:
    """Place a new ``kind`` piece centered on the top row, or end the game."""
    if kind not in SHAPES:
        raise InvalidCommandError(f"Unknown tetromino kind: {kind!r}")
    shape = SHAPES[kind].copy()
    cols = state.grid.shape[1]
    piece = Piece(shape=shape, row=0, col=cols // 2 - shape.shape[1] // 2, kind=kind)

    new_state = state.copy()
    if collides(state.grid, piece.shape, piece.row, piece.col):
        new_state.piece = None
        new_state.game_over = True
        logger.debug("tetris: spawn blocked, game over at score %d", state.score)
    else:
        new_state.piece = piece
    return new_state


def _can_act(state: BlockStackState) -> bool:
    return state.piece is not None and not state.game_over


def _shift(state: BlockStackState, dr: int, dc: int) -> MoveResult:
    if not _can_act(state):
        return MoveResult(new_state=state)
    piece = state.piece
    if collides(state.grid, piece.shape, piece.row + dr, piece.col + dc):
        return MoveResult(new_state=state)
    new_state = state.copy()
    new_state.piece = replace(piece, row=piece.row + dr, col=piece.col + dc)
    return MoveResult(new_state=new_state, changed=True)


def move_left(state: BlockStackState) -> MoveResult:
    return _shift(state, 0, -1)


def move_right(state: BlockStackState) -> MoveResult:
    return _shift(state, 0, 1)


def clear_full_rows(grid: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    Remove full rows bottom-to-top, inserting empty rows on top.

    After a removal the same row index is examined again, so stacked full
    rows all clear in one pass.
    """
    rows, cols = grid.shape
    grid = grid.copy()
    cleared = 0
    r = rows - 1
    while r >= 0:
        if np.all(grid[r] != 0):
            grid[1:r + 1] = grid[0:r].copy()
            grid[0] = 0
            cleared += 1
        else:
            r -= 1
    return grid, cleared


def lock(state: BlockStackState) -> MoveResult:
    """Merge the active piece into the grid, clear rows and score them."""
    if not _can_act(state):
        return MoveResult(new_state=state)
    piece = state.piece

    grid = state.grid.copy()
    for y, x in piece.cells():
        if y >= 0:
            grid[y, x] = piece.color_tag

    grid, cleared = clear_full_rows(grid)
    score_delta = LINE_SCORES.get(cleared, 0)
    if cleared:
        logger.debug("tetris: cleared %d row(s) for %d", cleared, score_delta)

    new_state = BlockStackState(
        grid=grid,
        piece=None,
        score=state.score + score_delta,
        lines=state.lines + cleared,
        game_over=False,
    )
    return MoveResult(
        new_state=new_state,
        score_delta=score_delta,
        changed=True,
        info={"locked": True, "rows_cleared": cleared},
    )


def soft_drop(state: BlockStackState) -> MoveResult:
    """Move down one row, or lock the piece when it cannot."""
    if not _can_act(state):
        return MoveResult(new_state=state)
    result = _shift(state, 1, 0)
    if result.changed:
        return result
    return lock(state)


# Gravity is a soft drop issued by the caller's timer
tick = soft_drop


def rotate(state: BlockStackState) -> MoveResult:
    """Rotate clockwise in place; rejected if the rotated shape collides."""
    if not _can_act(state):
        return MoveResult(new_state=state)
    piece = state.piece
    rotated = rotate_shape(piece.shape)
    if collides(state.grid, rotated, piece.row, piece.col):
        return MoveResult(new_state=state)
    new_state = state.copy()
    new_state.piece = replace(piece, shape=rotated)
    return MoveResult(new_state=new_state, changed=True)


def ghost_row(state: BlockStackState) -> Optional[int]:
    """Row the active piece would land on if hard-dropped now."""
    if state.piece is None:
        return None
    piece = state.piece
    row = piece.row
    while not collides(state.grid, piece.shape, row + 1, piece.col):
        row += 1
    return row


def hard_drop(state: BlockStackState) -> MoveResult:
    """Move the piece to its lowest legal row. Locking is left to the caller."""
    if not _can_act(state):
        return MoveResult(new_state=state)
    landing = ghost_row(state)
    if landing == state.piece.row:
        return MoveResult(new_state=state)
    new_state = state.copy()
    new_state.piece = replace(state.piece, row=landing)
    return MoveResult(new_state=new_state, changed=True)


def composite(state: BlockStackState) -> np.ndarray:
    """Grid with the ghost (on empty cells only) and the active piece drawn in."""
    display = state.grid.copy()
    piece = state.piece
    if piece is None:
        return display

    landing = ghost_row(state)
    for y, x in replace(piece, row=landing).cells():
        if y >= 0 and display[y, x] == 0:
            display[y, x] = GHOST_TAG

    for y, x in piece.cells():
        if y >= 0:
            display[y, x] = piece.color_tag
    return display


_COMMANDS = {
    Action.LEFT: move_left,
    Action.RIGHT: move_right,
    Action.ROTATE: rotate,
    Action.SOFT_DROP: soft_drop,
    Action.HARD_DROP: hard_drop,
    Action.TICK: tick,
}


class BlockStackEngine(Engine):
    """
    Tetris behind the common engine interface.

    Chance outcomes:
    - 0: no spawn (the piece did not lock)
    - 1..7: spawn tetromino KINDS[c - 1]
    """

    name = "tetris"

    def __init__(
        self,
        rows: int = ROWS,
        cols: int = COLS,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.rows = rows
        self.cols = cols

    @property
    def action_space_size(self) -> int:
        return len(Action)

    @property
    def chance_space_size(self) -> int:
        return len(KINDS) + 1

    @property
    def observation_shape(self) -> Tuple[int, ...]:
        return (self.rows, self.cols)

    def reset(self) -> BlockStackState:
        """Empty grid with a freshly spawned piece."""
        state = new_board(self.rows, self.cols)
        logger.debug("tetris: new %dx%d game", self.rows, self.cols)
        return self.apply_chance(state, self.sample_chance(state, {"locked": True}))

    def clone_state(self, state: BlockStackState) -> BlockStackState:
        return state.copy()

    def legal_actions(self, state: BlockStackState) -> List[int]:
        if not _can_act(state):
            return []
        return [int(a) for a, command in _COMMANDS.items() if command(state).changed]

    def apply_action(
        self, state: BlockStackState, action: int
    ) -> Tuple[BlockStackState, int, Dict[str, Any]]:
        result = _COMMANDS[Action(action)](state)
        result.info["changed"] = result.changed
        return result.new_state, result.score_delta, result.info

    def sample_chance(self, afterstate: BlockStackState, info: Dict[str, Any]) -> ChanceOutcome:
        """Draw the next tetromino uniformly once the previous one locked."""
        if not info.get("locked", False):
            return 0
        return int(self._rng.integers(len(KINDS))) + 1

    def get_chance_distribution(
        self, afterstate: BlockStackState, info: Dict[str, Any]
    ) -> np.ndarray:
        dist = np.zeros(self.chance_space_size, dtype=np.float64)
        if not info.get("locked", False):
            dist[0] = 1.0
        else:
            dist[1:] = 1.0 / len(KINDS)
        return dist

    def apply_chance(self, afterstate: BlockStackState, chance: ChanceOutcome) -> BlockStackState:
        chance = self.validate_chance(chance)
        if chance == 0:
            return afterstate
        return spawn(afterstate, KINDS[chance - 1])

    def terminal_kind(self, state: BlockStackState) -> Optional[TerminalKind]:
        return TerminalKind.LOST if state.game_over else None

    def move_left(self, state: BlockStackState) -> MoveResult:
        return self.step(state, Action.LEFT)

    def move_right(self, state: BlockStackState) -> MoveResult:
        return self.step(state, Action.RIGHT)

    def rotate(self, state: BlockStackState) -> MoveResult:
        return self.step(state, Action.ROTATE)

    def soft_drop(self, state: BlockStackState) -> MoveResult:
        return self.step(state, Action.SOFT_DROP)

    def hard_drop(self, state: BlockStackState) -> MoveResult:
        return self.step(state, Action.HARD_DROP)

    def tick(self, state: BlockStackState) -> MoveResult:
        return self.step(state, Action.TICK)

    def render(self, state: BlockStackState) -> str:
        symbols = {0: ".", GHOST_TAG: ":"}
        display = composite(state)
        lines = [f"Score: {state.score}  Lines: {state.lines}"]
        if state.piece is not None:
            lines.append(f"Piece: {state.piece.kind} ({state.piece.color})")
        for row in display:
            lines.append("".join(
                symbols.get(int(v), KINDS[int(v) - 1] if v > 0 else "?") for v in row
            ))
        if state.game_over:
            lines.append("GAME OVER")
        return "\n".join(lines)


if __name__ == "__main__":
    # Quick demo: drop pieces straight down until the stack tops out
    engine = BlockStackEngine(seed=0)
    state = engine.reset()
    while not engine.is_terminal(state):
        state = engine.hard_drop(state).new_state
        state = engine.tick(state).new_state
    print(engine.render(state))
