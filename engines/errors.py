"""Errors raised by the board engines.

Rejected commands (occupied cells, colliding rotations, moves after the game
ended) are not errors: they come back as a ``MoveResult`` with
``changed=False``. Only malformed input raises.
"""


class InvalidCommandError(ValueError):
    """Raised when a command is malformed (unknown direction, cell out of range, ...)."""
    pass
