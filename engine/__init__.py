"""
Polyomino duel game engine package.

This package contains the core game logic, including:
- Seeded random generation and the shape catalog
- Board management and placement legality
- Legal move generation and mobility counting
- Move quality classification
- The game controller (turns, history, undo, AI turn)
"""

from .board import Board, Player, Position
from .classifier import MoveQuality, classify_move, compute_deltas, evaluation_split
from .config import GameSettings, parse_board_size
from .errors import (
    AITurnPending, GameError, GameFinished, InvalidPlacement, InvalidSelection, NothingToUndo
)
from .game import GameController, GameState, GameStatus, MoveRecord
from .move_generator import LegalMoveGenerator, Move
from .pieces import PiecePool, ShapeCatalog, flip_shape, generate_shapes, rotate_shape
from .placement import is_legal_placement
from .rng import Mulberry32, fnv1a_32, resolve_seed

__all__ = [
    'Board', 'Player', 'Position',
    'MoveQuality', 'classify_move', 'compute_deltas', 'evaluation_split',
    'GameSettings', 'parse_board_size',
    'GameError', 'InvalidPlacement', 'NothingToUndo', 'InvalidSelection', 'GameFinished', 'AITurnPending',
    'GameController', 'GameState', 'GameStatus', 'MoveRecord',
    'Move', 'LegalMoveGenerator',
    'PiecePool', 'ShapeCatalog', 'generate_shapes', 'rotate_shape', 'flip_shape',
    'is_legal_placement',
    'Mulberry32', 'fnv1a_32', 'resolve_seed',
]
