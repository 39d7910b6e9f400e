from typing import Optional

import numpy as np

from .base import Engine, MoveResult, TerminalKind
from .block_stack import BlockStackEngine, BlockStackState
from .errors import InvalidCommandError
from .minefield import MinefieldEngine, MinefieldState
from .tictactoe import TicTacToeEngine, TicTacToeState
from .tile_merge import Direction, TileMergeEngine, TileMergeState

__all__ = [
    "Engine",
    "MoveResult",
    "TerminalKind",
    "InvalidCommandError",
    "TileMergeEngine",
    "TileMergeState",
    "Direction",
    "MinefieldEngine",
    "MinefieldState",
    "BlockStackEngine",
    "BlockStackState",
    "TicTacToeEngine",
    "TicTacToeState",
    "ENGINE_NAMES",
    "make_engine",
]

ENGINE_NAMES = ["2048", "minesweeper", "tetris", "tictactoe"]


def make_engine(name: str, config=None, rng: Optional[np.random.Generator] = None) -> Engine:
    """Create an engine by game name, configured from a ``utils.config.Config``."""
    if config is None:
        from utils.config import Config

        config = Config()
    if rng is None:
        rng = np.random.default_rng(config.seed)

    key = name.lower()
    if key == "2048":
        cfg = config.tile_merge
        return TileMergeEngine(
            size=cfg.size,
            four_probability=cfg.four_probability,
            win_tile=cfg.win_tile,
            rng=rng,
        )
    if key == "minesweeper":
        cfg = config.minefield
        return MinefieldEngine(
            rows=cfg.rows,
            cols=cfg.cols,
            mines=cfg.mines,
            safe_first_click=cfg.safe_first_click,
            rng=rng,
        )
    if key == "tetris":
        cfg = config.block_stack
        return BlockStackEngine(rows=cfg.rows, cols=cfg.cols, rng=rng)
    if key == "tictactoe":
        cfg = config.tictactoe
        return TicTacToeEngine(ai_symbol=cfg.ai_symbol, depth_discount=cfg.depth_discount, rng=rng)
    raise ValueError(f"Unknown game: {name}")
