"""Abstract base class for the board engines.

Every engine splits a command into:
1. Deterministic rule application (afterstate)
2. Stochastic chance outcome (tile spawn, next tetromino)
3. Deterministic chance application (final state)

so that the rule core stays a pure function of (state, action) and tests
can force any chance outcome:
- apply_action(s, a) → afterstate (the "rule")
- sample_chance(afterstate) → chance outcome
- apply_chance(afterstate, c) → next state
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TypeVar
import logging

import numpy as np

from .errors import InvalidCommandError

logger = logging.getLogger(__name__)

State = TypeVar("State")
Afterstate = TypeVar("Afterstate")
ChanceOutcome = int  # Chance outcomes are discrete integers


class TerminalKind(str, Enum):
    """How a game ended."""

    WON = "won"
    LOST = "lost"
    DRAW = "draw"
    STUCK = "stuck"


@dataclass
class MoveResult:
    """Uniform result of a command.

    ``changed`` is False for rejected commands; ``new_state`` is then the
    state that was passed in.
    """

    new_state: Any
    score_delta: int = 0
    changed: bool = False
    terminal: Optional[TerminalKind] = None
    info: Dict[str, Any] = field(default_factory=dict)


class Engine(ABC):
    """
    Abstract base class for board engines with afterstate separation.

    The transition model is:
        s_t --[action a]--> afterstate --[chance c]--> s_{t+1}

    Where:
        - s_t → afterstate is DETERMINISTIC (the "rule")
        - afterstate → s_{t+1} depends on stochastic chance c
        - For fully deterministic games, chance_space_size = 1
    """

    name: str = ""

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    @property
    @abstractmethod
    def action_space_size(self) -> int:
        """Number of possible actions."""
        pass

    @property
    @abstractmethod
    def chance_space_size(self) -> int:
        """Number of possible chance outcomes (1 for deterministic games)."""
        pass

    @property
    @abstractmethod
    def observation_shape(self) -> Tuple[int, ...]:
        """Shape of the board grid."""
        pass

    @abstractmethod
    def reset(self) -> State:
        """
        Start a new game.

        Returns:
            Initial state of the game.
        """
        pass

    @abstractmethod
    def clone_state(self, state: State) -> State:
        """Create a deep copy of the state."""
        pass

    @abstractmethod
    def legal_actions(self, state: State) -> List[int]:
        """
        Get list of actions that would change the given state.

        Args:
            state: Current game state.

        Returns:
            List of legal action indices.
        """
        pass

    @abstractmethod
    def apply_action(self, state: State, action: int) -> Tuple[Afterstate, int, Dict[str, Any]]:
        """
        Apply action to get afterstate (DETERMINISTIC).

        No randomness should occur here, and ``state`` must not be mutated.
        (Minesweeper's deferred mine layout is the one documented exception.)

        Args:
            state: Current game state.
            action: Action to apply (already validated).

        Returns:
            afterstate: State after deterministic action application.
            score_delta: Points earned by the action.
            info: Must contain ``changed``; may carry data for chance sampling.
        """
        pass

    def sample_chance(self, afterstate: Afterstate, info: Dict[str, Any]) -> ChanceOutcome:
        """
        Sample a chance outcome given the afterstate.

        Deterministic engines keep this default and always return 0.
        """
        return 0

    def get_chance_distribution(
        self, afterstate: Afterstate, info: Dict[str, Any]
    ) -> np.ndarray:
        """
        Get the full probability distribution over chance outcomes.

        Deterministic engines keep this default, which is ``[1.0]``.
        """
        return np.array([1.0], dtype=np.float64)

    def apply_chance(self, afterstate: Afterstate, chance: ChanceOutcome) -> State:
        """
        Apply chance outcome to get next state (DETERMINISTIC given chance).

        Identity for deterministic engines.
        """
        return afterstate

    @abstractmethod
    def terminal_kind(self, state: State) -> Optional[TerminalKind]:
        """How the game ended, or None while it is in progress."""
        pass

    def is_terminal(self, state: State) -> bool:
        """Check if the state is terminal (game over)."""
        return self.terminal_kind(state) is not None

    def validate_action(self, action: int) -> int:
        """Reject malformed action ids before they reach the rule core."""
        if isinstance(action, bool) or not isinstance(action, (int, np.integer)):
            raise InvalidCommandError(f"{self.name}: action must be an integer, got {action!r}")
        if not 0 <= action < self.action_space_size:
            raise InvalidCommandError(
                f"{self.name}: action {action} outside [0, {self.action_space_size})"
            )
        return int(action)

    def validate_chance(self, chance: ChanceOutcome) -> int:
        """Reject chance ids outside ``[0, chance_space_size)``."""
        if isinstance(chance, bool) or not isinstance(chance, (int, np.integer)):
            raise InvalidCommandError(f"{self.name}: chance must be an integer, got {chance!r}")
        if not 0 <= chance < self.chance_space_size:
            raise InvalidCommandError(
                f"{self.name}: chance {chance} outside [0, {self.chance_space_size})"
            )
        return int(chance)

    def step(self, state: State, action: int) -> MoveResult:
        """
        Full command: apply action, sample chance, apply chance.

        Rejected commands (and any command after the game ended) return the
        input state with ``changed=False`` and no chance is sampled.
        """
        action = self.validate_action(action)

        terminal = self.terminal_kind(state)
        if terminal is not None:
            return MoveResult(new_state=state, terminal=terminal)

        afterstate, score_delta, info = self.apply_action(state, action)
        if not info.get("changed", False):
            return MoveResult(new_state=state, info=info)

        chance = self.sample_chance(afterstate, info)
        next_state = self.apply_chance(afterstate, chance)
        info["chance_outcome"] = chance

        terminal = self.terminal_kind(next_state)
        if terminal is not None:
            logger.debug("%s: game ended (%s)", self.name, terminal.value)

        return MoveResult(
            new_state=next_state,
            score_delta=int(score_delta),
            changed=True,
            terminal=terminal,
            info=info,
        )

    @property
    def is_two_player(self) -> bool:
        """Whether this is a two-player alternating game."""
        return False

    def current_player(self, state: State) -> int:
        """Return current player (0 or 1). Override for two-player games."""
        return 0

    def render(self, state: State) -> str:
        """Render the state as text for debugging."""
        return repr(state)
