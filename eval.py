#!/usr/bin/env python3
"""
Rollout script for the arcade engines.

Plays many games per engine with simple policies and reports:
- Score statistics (mean, max)
- Game length
- How games ended

Usage:
    python eval.py --game 2048 --num_games 100
    python eval.py --game all --config arcade.yaml --scores best_scores.yaml
"""

import argparse
from collections import Counter
from typing import Dict, List
import logging

import numpy as np
from tqdm import tqdm

from engines import ENGINE_NAMES, Engine, make_engine
from engines.minefield import MinefieldEngine
from engines.tictactoe import TicTacToeEngine
from utils.config import Config, load_config
from utils.logging_config import setup_logging
from utils.scores import BestScores

logger = logging.getLogger(__name__)


def choose_action(engine: Engine, state, rng: np.random.Generator, ai_vs_ai: bool = True) -> int:
    """Random legal action; the Tic-Tac-Toe opponent plays through the search."""
    if isinstance(engine, TicTacToeEngine):
        if ai_vs_ai or state.current_player == engine.ai_symbol:
            return engine.best_move(state, state.current_player)
    legal = engine.legal_actions(state)
    if isinstance(engine, MinefieldEngine):
        # Only reveal; flags never end a game
        legal = [a for a in legal if a < engine.num_cells]
    return int(legal[rng.integers(len(legal))])


def play_game(
    engine: Engine,
    rng: np.random.Generator,
    max_moves: int = 10000,
    ai_vs_ai: bool = True,
    verbose: bool = False,
) -> Dict[str, object]:
    """
    Play one game and return statistics.

    Args:
        engine: Engine to play
        rng: Generator used by the policy
        max_moves: Safety cap on game length
        ai_vs_ai: Tic-Tac-Toe only; False pits the search against random moves
        verbose: Whether to print the final state

    Returns:
        Dictionary of game statistics
    """
    state = engine.reset()
    total_score = 0
    move_count = 0

    while not engine.is_terminal(state) and move_count < max_moves:
        if not engine.legal_actions(state):
            break
        action = choose_action(engine, state, rng, ai_vs_ai)
        result = engine.step(state, action)
        total_score += result.score_delta
        move_count += 1
        state = result.new_state

    if verbose:
        print(engine.render(state))

    terminal = engine.terminal_kind(state)
    return {
        "score": total_score,
        "moves": move_count,
        "terminal": terminal.value if terminal is not None else "unfinished",
    }


def evaluate(
    name: str,
    config: Config,
    num_games: int = 10,
    max_moves: int = 10000,
    ai_vs_ai: bool = True,
    scores: BestScores = None,
) -> Dict[str, float]:
    """Play ``num_games`` games of one engine and aggregate the statistics."""
    rng = np.random.default_rng(config.seed)
    engine = make_engine(name, config, rng=rng)

    results: List[Dict[str, object]] = []
    for _ in tqdm(range(num_games), desc=name):
        results.append(play_game(engine, rng, max_moves=max_moves, ai_vs_ai=ai_vs_ai))

    game_scores = np.array([r["score"] for r in results], dtype=np.int64)
    lengths = np.array([r["moves"] for r in results], dtype=np.int64)
    outcomes = Counter(r["terminal"] for r in results)

    if scores is not None and len(game_scores):
        scores.record(name, int(game_scores.max()))

    return {
        "mean_score": float(game_scores.mean()),
        "max_score": int(game_scores.max()),
        "mean_moves": float(lengths.mean()),
        "outcomes": dict(outcomes),
    }


def main():
    parser = argparse.ArgumentParser(description="Play rollouts of the arcade engines")
    parser.add_argument(
        "--game",
        type=str,
        default="all",
        choices=ENGINE_NAMES + ["all"],
        help="Engine to play (default: all)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration YAML file",
    )
    parser.add_argument(
        "--num_games",
        type=int,
        default=10,
        help="Games per engine",
    )
    parser.add_argument(
        "--max_moves",
        type=int,
        default=10000,
        help="Move cap per game",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed",
    )
    parser.add_argument(
        "--vs_random",
        action="store_true",
        help="Tic-Tac-Toe: play the search against random moves instead of itself",
    )
    parser.add_argument(
        "--scores",
        type=str,
        default=None,
        help="YAML file of best scores to update",
    )

    args = parser.parse_args()

    overrides = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    config = load_config(args.config, **overrides)
    setup_logging(config.log_level)

    scores = BestScores.load(args.scores) if args.scores else None

    names = ENGINE_NAMES if args.game == "all" else [args.game]
    for name in names:
        stats = evaluate(
            name,
            config,
            num_games=args.num_games,
            max_moves=args.max_moves,
            ai_vs_ai=not args.vs_random,
            scores=scores,
        )
        print(f"\n{name}")
        print(f"  mean score: {stats['mean_score']:.1f}")
        print(f"  max score:  {stats['max_score']}")
        print(f"  mean moves: {stats['mean_moves']:.1f}")
        print(f"  outcomes:   {stats['outcomes']}")

    if scores is not None:
        scores.save(args.scores)
        logger.info("best scores written to %s", args.scores)


if __name__ == "__main__":
    main()
