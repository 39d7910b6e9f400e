from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest
import yaml

from engines import (
    ENGINE_NAMES,
    BlockStackEngine,
    MinefieldEngine,
    TicTacToeEngine,
    TileMergeEngine,
    make_engine,
)
from search import X
from utils import BestScores, Config, get_logger, load_config, save_config, setup_logging
from utils.config import MinefieldCfg, TileMergeCfg


def test_defaults_match_classic_games() -> None:
    config = Config()
    assert config.tile_merge.size == 4
    assert config.tile_merge.four_probability == pytest.approx(0.1)
    assert (config.minefield.rows, config.minefield.cols, config.minefield.mines) == (16, 16, 40)
    assert not config.minefield.safe_first_click
    assert (config.block_stack.rows, config.block_stack.cols) == (20, 10)
    assert config.tictactoe.ai_symbol == "O"
    assert not config.tictactoe.depth_discount


def test_invalid_sections_are_rejected() -> None:
    with pytest.raises(AssertionError):
        MinefieldCfg(rows=3, cols=3, mines=10)
    with pytest.raises(AssertionError):
        TileMergeCfg(four_probability=1.5)


def test_load_merges_file_and_overrides(tmp_path: Path) -> None:
    path = tmp_path / "arcade.yaml"
    path.write_text(yaml.safe_dump({
        "seed": 3,
        "minefield": {"rows": 9, "cols": 9, "mines": 10},
        "unknown_section": {"x": 1},
    }))

    config = load_config(str(path), minefield={"safe_first_click": True}, log_level="DEBUG")
    assert config.seed == 3
    assert config.log_level == "DEBUG"
    assert (config.minefield.rows, config.minefield.mines) == (9, 10)
    assert config.minefield.safe_first_click
    assert config.tile_merge == TileMergeCfg()


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(str(tmp_path / "absent.yaml")) == Config()


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "saved.yaml"
    config = Config(seed=11)
    config.block_stack.cols = 12
    save_config(config, str(path))
    assert load_config(str(path)) == config


def test_best_scores_only_keep_improvements(caplog: pytest.LogCaptureFixture) -> None:
    scores = BestScores()
    assert scores.get("2048") == 0
    with caplog.at_level(logging.INFO, logger="utils.scores"):
        assert scores.record("2048", 512)
    assert "new best for 2048" in caplog.text
    assert not scores.record("2048", 256)
    assert not scores.record("2048", 512)
    assert scores.get("2048") == 512


def test_best_scores_persist(tmp_path: Path) -> None:
    path = tmp_path / "best.yaml"
    assert BestScores.load(path).to_dict() == {}

    scores = BestScores({"tetris": 800})
    scores.record("2048", 1024)
    scores.save(path)
    assert BestScores.load(path).to_dict() == {"tetris": 800, "2048": 1024}


def test_best_scores_reject_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "best.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        BestScores.load(path)


@pytest.mark.parametrize(
    "name, cls",
    [
        ("2048", TileMergeEngine),
        ("minesweeper", MinefieldEngine),
        ("tetris", BlockStackEngine),
        ("tictactoe", TicTacToeEngine),
    ],
)
def test_make_engine(name: str, cls: type) -> None:
    engine = make_engine(name)
    assert isinstance(engine, cls)
    assert engine.name == name
    assert name in ENGINE_NAMES
    state = engine.reset()
    assert not engine.is_terminal(state)
    assert engine.legal_actions(state)


def test_make_engine_applies_config() -> None:
    config = Config(seed=5)
    config.minefield = MinefieldCfg(rows=5, cols=6, mines=3)
    config.tictactoe.ai_symbol = "X"

    minefield = make_engine("minesweeper", config)
    assert minefield.reset().shape == (5, 6)
    assert make_engine("tictactoe", config).ai_symbol == X


def test_same_seed_same_game() -> None:
    config = Config(seed=9)
    first = make_engine("2048", config).reset()
    second = make_engine("2048", config).reset()
    assert np.array_equal(first.grid, second.grid)


def test_make_engine_rejects_unknown_name() -> None:
    with pytest.raises(ValueError):
        make_engine("pong")


def test_setup_logging_sets_level() -> None:
    root = logging.getLogger()
    level, handlers = root.level, root.handlers[:]
    try:
        setup_logging("debug", format_style="detailed")
        assert root.level == logging.DEBUG
        setup_logging("WARNING")
        assert get_logger("engines").getEffectiveLevel() == logging.WARNING
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
