"""
Game command errors. Each carries a message meant for the player.
"""


class GameError(Exception):
    """Base class for rejected game commands; the game state is left unchanged."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPlacement(GameError):
    """Placement out of bounds, overlapping, breaking the adjacency rules or using a bad piece."""


class NothingToUndo(GameError):
    """Undo requested with an empty move history."""


class InvalidSelection(GameError):
    """Piece selection or staging command that cannot apply."""


class GameFinished(GameError):
    """Command issued after the game ended."""


class AITurnPending(GameError):
    """Human command issued while the AI's turn is still queued."""
