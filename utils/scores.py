"""Best-score book, one integer per game.

Owned by the caller: engines never read or write it.
"""

from pathlib import Path
from typing import Dict, Optional, Union
import logging

import yaml

logger = logging.getLogger(__name__)


class BestScores:
    """Best score per game name, optionally persisted as a YAML mapping."""

    def __init__(self, scores: Optional[Dict[str, int]] = None):
        self._scores: Dict[str, int] = dict(scores or {})

    def get(self, game: str) -> int:
        return self._scores.get(game, 0)

    def record(self, game: str, score: int) -> bool:
        """Store ``score`` if it beats the best for ``game``; return whether it did."""
        if score > self.get(game):
            self._scores[game] = int(score)
            logger.info("new best for %s: %d", game, score)
            return True
        return False

    def to_dict(self) -> Dict[str, int]:
        return dict(self._scores)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "BestScores":
        """Read scores from ``path``; a missing file gives an empty book."""
        path = Path(path)
        if not path.exists():
            return cls()
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of game name to score")
        return cls({str(k): int(v) for k, v in data.items()})

    def save(self, path: Union[str, Path]) -> None:
        with open(path, "w") as f:
            yaml.safe_dump(self._scores, f, default_flow_style=False)
