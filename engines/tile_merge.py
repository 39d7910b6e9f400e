"""2048 tile-merge engine.

Every move is reduced to a single left slide:
1. Rotate the grid so the requested direction becomes "left"
2. Slide and merge each row to the left (each tile merges at most once)
3. Rotate back

After a move that changed the grid, exactly one tile spawns (90% a 2,
10% a 4) in a uniformly chosen empty cell. The spawn is the chance outcome;
the slide itself is deterministic.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import numpy as np

from .base import ChanceOutcome, Engine, TerminalKind
from .errors import InvalidCommandError
from .grid import empty_cells, empty_grid, rotate

logger = logging.getLogger(__name__)


class Direction(IntEnum):
    """Move directions; values are the engine's action ids."""

    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3


# Counter-clockwise quarter turns that turn a direction into "left"
ROTATIONS = {
    Direction.LEFT: 0,
    Direction.UP: 1,
    Direction.RIGHT: 2,
    Direction.DOWN: 3,
}

WIN_TILE = 2048
FOUR_PROBABILITY = 0.1


@dataclass
class TileMergeState:
    """State of a 2048 game."""

    grid: np.ndarray  # size x size tile values (0 = empty, 2, 4, 8, ...)
    score: int = 0
    done: bool = False
    won: bool = False

    def copy(self) -> "TileMergeState":
        return TileMergeState(
            grid=self.grid.copy(),
            score=self.score,
            done=self.done,
            won=self.won,
        )


def parse_direction(direction: Union[Direction, str, int]) -> Direction:
    """Normalize a direction given as enum, name or action id."""
    if isinstance(direction, Direction):
        return direction
    if isinstance(direction, str):
        try:
            return Direction[direction.strip().upper()]
        except KeyError:
            raise InvalidCommandError(f"Unknown direction: {direction!r}")
    if isinstance(direction, (int, np.integer)) and not isinstance(direction, bool):
        try:
            return Direction(int(direction))
        except ValueError:
            raise InvalidCommandError(f"Unknown direction id: {direction!r}")
    raise InvalidCommandError(f"Unknown direction: {direction!r}")


def slide_row_left(row: np.ndarray) -> Tuple[np.ndarray, int]:
    """Slide and merge a single row to the left, return new row and score gained."""
    # Remove zeros
    non_zero = row[row != 0]

    # Merge adjacent equal tiles
    merged = []
    score = 0
    i = 0
    while i < len(non_zero):
        if i + 1 < len(non_zero) and non_zero[i] == non_zero[i + 1]:
            merged_val = int(non_zero[i]) * 2
            merged.append(merged_val)
            score += merged_val
            i += 2
        else:
            merged.append(int(non_zero[i]))
            i += 1

    # Pad with zeros
    result = np.zeros_like(row)
    result[: len(merged)] = merged
    return result, score


def apply_move(
    grid: np.ndarray, direction: Union[Direction, str, int]
) -> Tuple[np.ndarray, int, bool]:
    """
    Slide the whole grid in one direction.

    Returns:
        (new_grid, score_delta, changed). ``grid`` itself is never modified.
    """
    k = ROTATIONS[parse_direction(direction)]

    # Rotate board so we always slide left
    rotated = rotate(grid, k)

    new_grid = np.zeros_like(rotated)
    score_delta = 0
    for i in range(rotated.shape[0]):
        new_grid[i], row_score = slide_row_left(rotated[i])
        score_delta += row_score

    # Rotate back
    new_grid = rotate(new_grid, (4 - k) % 4)

    changed = not np.array_equal(grid, new_grid)
    return new_grid, score_delta, changed


def spawn_tile(
    grid: np.ndarray,
    rng: np.random.Generator,
    four_probability: float = FOUR_PROBABILITY,
) -> Tuple[np.ndarray, Optional[Tuple[int, int]]]:
    """Add a 2 or a 4 to a uniformly chosen empty cell (no-op on a full grid)."""
    empty = empty_cells(grid)
    if not empty:
        return grid.copy(), None

    row, col = empty[rng.integers(len(empty))]
    new_grid = grid.copy()
    new_grid[row, col] = 4 if rng.random() < four_probability else 2
    return new_grid, (row, col)


def is_stuck(grid: np.ndarray) -> bool:
    """True iff no direction changes the grid."""
    return not any(apply_move(grid, d)[2] for d in Direction)


def has_won(grid: np.ndarray, target: int = WIN_TILE) -> bool:
    """Advisory win check: some tile reached ``target``."""
    return bool((grid >= target).any())


class TileMergeEngine(Engine):
    """
    2048 with explicit afterstate separation.

    Chance outcomes:
    - 0: no spawn (invalid move or full grid)
    - 1..N: spawn tile value 2 at flat positions 0..N-1
    - N+1..2N: spawn tile value 4 at flat positions 0..N-1
    """

    name = "2048"

    def __init__(
        self,
        size: int = 4,
        four_probability: float = FOUR_PROBABILITY,
        win_tile: int = WIN_TILE,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(rng=rng, seed=seed)
        self.size = size
        self.four_probability = four_probability
        self.win_tile = win_tile

    @property
    def action_space_size(self) -> int:
        return 4  # up, right, down, left

    @property
    def chance_space_size(self) -> int:
        return 2 * self.size * self.size + 1

    @property
    def observation_shape(self) -> Tuple[int, ...]:
        return (self.size, self.size)

    def reset(self) -> TileMergeState:
        """Empty grid with two random tiles."""
        grid = empty_grid(self.size, self.size)
        grid, _ = spawn_tile(grid, self._rng, self.four_probability)
        grid, _ = spawn_tile(grid, self._rng, self.four_probability)
        logger.debug("2048: new %dx%d game", self.size, self.size)
        return TileMergeState(grid=grid)

    def clone_state(self, state: TileMergeState) -> TileMergeState:
        return state.copy()

    def legal_actions(self, state: TileMergeState) -> List[int]:
        """Return list of directions that would change the grid."""
        if state.done:
            return []
        return [int(d) for d in Direction if apply_move(state.grid, d)[2]]

    def apply_action(
        self, state: TileMergeState, action: int
    ) -> Tuple[TileMergeState, int, Dict[str, Any]]:
        """
        Slide and merge (DETERMINISTIC).

        The afterstate is the grid after sliding, before a tile spawns.
        """
        new_grid, score_delta, changed = apply_move(state.grid, action)

        afterstate = TileMergeState(
            grid=new_grid,
            score=state.score + score_delta,
            done=False,  # Updated after chance
            won=state.won,
        )
        info = {
            "changed": changed,
            "empty_positions": empty_cells(new_grid),
        }
        return afterstate, score_delta, info

    def sample_chance(
        self, afterstate: TileMergeState, info: Dict[str, Any]
    ) -> ChanceOutcome:
        """Sample a tile spawn location and value."""
        empty_positions = info.get("empty_positions", [])
        if not info.get("changed", True) or len(empty_positions) == 0:
            return 0

        row, col = empty_positions[self._rng.integers(len(empty_positions))]
        flat_pos = row * self.size + col
        n = self.size * self.size
        if self._rng.random() < self.four_probability:
            return flat_pos + n + 1
        return flat_pos + 1

    def get_chance_distribution(
        self, afterstate: TileMergeState, info: Dict[str, Any]
    ) -> np.ndarray:
        """Uniform over empty positions, 90/10 split between 2 and 4."""
        dist = np.zeros(self.chance_space_size, dtype=np.float64)

        empty_positions = info.get("empty_positions", [])
        if not info.get("changed", True) or len(empty_positions) == 0:
            dist[0] = 1.0
            return dist

        n = self.size * self.size
        prob_per_pos = 1.0 / len(empty_positions)
        for row, col in empty_positions:
            flat_pos = row * self.size + col
            dist[flat_pos + 1] = prob_per_pos * (1.0 - self.four_probability)
            dist[flat_pos + n + 1] = prob_per_pos * self.four_probability
        return dist

    def apply_chance(self, afterstate: TileMergeState, chance: ChanceOutcome) -> TileMergeState:
        """Spawn the tile encoded by ``chance`` and refresh the terminal flags."""
        chance = self.validate_chance(chance)
        next_state = afterstate.copy()
        n = self.size * self.size

        if chance != 0:
            if chance <= n:
                flat_pos, value = chance - 1, 2
            else:
                flat_pos, value = chance - n - 1, 4
            row, col = divmod(flat_pos, self.size)
            if next_state.grid[row, col] != 0:
                raise InvalidCommandError(f"Cannot spawn a tile on occupied cell ({row}, {col})")
            next_state.grid[row, col] = value

        if not next_state.won and has_won(next_state.grid, self.win_tile):
            next_state.won = True
            logger.debug("2048: reached %d", self.win_tile)
        next_state.done = is_stuck(next_state.grid)
        return next_state

    def terminal_kind(self, state: TileMergeState) -> Optional[TerminalKind]:
        return TerminalKind.STUCK if state.done else None

    def move(self, state: TileMergeState, direction: Union[Direction, str, int]):
        """Named-direction wrapper around :meth:`step`."""
        return self.step(state, int(parse_direction(direction)))

    def render(self, state: TileMergeState) -> str:
        """Render the game state as a string."""
        lines = [f"Score: {state.score}", "-" * (6 * self.size)]
        for row in range(self.size):
            cells = []
            for col in range(self.size):
                val = state.grid[row, col]
                cells.append("    ." if val == 0 else f"{val:5d}")
            lines.append(" ".join(cells))
        lines.append("-" * (6 * self.size))
        if state.won:
            lines.append("YOU WIN!")
        if state.done:
            lines.append("GAME OVER")
        return "\n".join(lines)


if __name__ == "__main__":
    # Quick demo
    engine = TileMergeEngine(seed=0)
    state = engine.reset()
    print(engine.render(state))

    for _ in range(5):
        legal = engine.legal_actions(state)
        if not legal:
            break
        result = engine.step(state, legal[0])
        state = result.new_state
        print(f"\nMove: {Direction(legal[0]).name.lower()} (+{result.score_delta})")
        print(engine.render(state))
