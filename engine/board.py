"""
Polyomino duel board: a square occupancy grid plus per-player first-move flags.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

import numpy as np

from .placement import board_corners, get_piece_positions, is_legal_placement

MIN_BOARD_SIZE = 5
MAX_BOARD_SIZE = 1000


class Player(Enum):
    """Player enumeration. Values are the grid cell markers."""
    CYAN = 1
    RED = 2

    @property
    def opponent(self) -> "Player":
        return Player.RED if self is Player.CYAN else Player.CYAN

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Player":
        return cls[label.strip().upper()]


@dataclass(frozen=True)
class Position:
    """Represents a position on the board."""
    row: int
    col: int


class Board:
    """
    Square board of ``size`` x ``size`` cells.

    The grid holds 0 for empty cells and ``Player.value`` for owned ones.
    The board performs no legality checks when applying a placement; callers
    validate first with ``can_place_piece``.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError("Board size must be positive")
        self.size = size
        self.grid = np.zeros((size, size), dtype=np.int8)
        self.has_played: Dict[Player, bool] = {player: False for player in Player}

    def is_valid_position(self, pos: Position) -> bool:
        """Check if position is within board bounds."""
        return 0 <= pos.row < self.size and 0 <= pos.col < self.size

    def get_player_at(self, pos: Position) -> Optional[Player]:
        """Get the player at a position, or None if empty or off-board."""
        if not self.is_valid_position(pos):
            return None
        value = int(self.grid[pos.row, pos.col])
        if value == 0:
            return None
        return Player(value)

    def get_corners(self) -> List[Position]:
        return [Position(r, c) for r, c in board_corners(self.size)]

    def can_place_piece(self, shape: np.ndarray, row: int, col: int, player: Player) -> bool:
        """Legality of a placement for ``player`` under the current flags."""
        return is_legal_placement(self.grid, shape, row, col, player.value, self.has_played[player])

    def apply(self, shape: np.ndarray, row: int, col: int, player: Player) -> None:
        """Mark the shape's cells with ``player`` and record that it has played."""
        player_value = player.value
        for r, c in get_piece_positions(shape, row, col):
            self.grid[r, c] = player_value
        self.has_played[player] = True

    def revert(self, shape: np.ndarray, row: int, col: int) -> None:
        """Clear the shape's cells. ``has_played`` is left untouched."""
        for r, c in get_piece_positions(shape, row, col):
            self.grid[r, c] = 0

    @contextmanager
    def hypothetical(self, shape: np.ndarray, row: int, col: int, player: Player) -> Iterator["Board"]:
        """
        Temporarily apply a placement, reverting exactly its cells on exit.

        The player's ``has_played`` flag is restored as well.
        """
        had_played = self.has_played[player]
        self.apply(shape, row, col, player)
        try:
            yield self
        finally:
            self.revert(shape, row, col)
            self.has_played[player] = had_played

    def count_cells(self, player: Player) -> int:
        return int(np.count_nonzero(self.grid == player.value))

    def to_owner_grid(self) -> List[List[Optional[str]]]:
        """Cell owners as ``"cyan"``, ``"red"`` or None."""
        labels = {0: None, Player.CYAN.value: Player.CYAN.label, Player.RED.value: Player.RED.label}
        return [[labels[int(value)] for value in row] for row in self.grid]

    def copy(self) -> "Board":
        """Create a deep copy of the board."""
        new_board = Board(self.size)
        new_board.grid = self.grid.copy()
        new_board.has_played = dict(self.has_played)
        return new_board

    def __str__(self) -> str:
        """String representation of the board."""
        symbols = {0: ".", Player.CYAN.value: "C", Player.RED.value: "R"}
        return "\n".join("".join(symbols[int(value)] for value in row) for row in self.grid)
