from __future__ import annotations

import numpy as np

from engines.block_stack import BlockStackState, new_board
from engines.tile_merge import TileMergeState


def tile_state(rows: list[list[int]]) -> TileMergeState:
    return TileMergeState(grid=np.array(rows, dtype=np.int64))


def stack_state(filled: dict[int, list[int]] | None = None, rows: int = 20, cols: int = 10) -> BlockStackState:
    """Empty block-stack board with ``{row: [cols...]}`` filled with tag 1."""
    state = new_board(rows, cols)
    for r, cs in (filled or {}).items():
        for c in cs:
            state.grid[r, c] = 1
    return state
