"""
Game state schemas
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .game_config import PlayerColor
from .move import BestMove, MoveRecordView


class GameStatus(str, Enum):
    """Game status enumeration."""
    CYAN_TO_MOVE = "cyan_to_move"
    RED_TO_MOVE = "red_to_move"
    GAME_OVER = "game_over"


class PieceView(BaseModel):
    """A pool entry in its current orientation."""
    index: int
    shape: List[List[bool]]
    size: int
    available: bool


class PlayerPool(BaseModel):
    """Pieces of one player."""
    player: PlayerColor
    pieces: List[PieceView]
    remaining: int = Field(description="Number of pieces still available")


class Evaluation(BaseModel):
    """Share of all legal moves held by each side, in percent."""
    cyan_percent: float
    red_percent: float


class GameState(BaseModel):
    """Current state of the game."""
    status: GameStatus
    current_player: PlayerColor
    winner: Optional[PlayerColor] = None
    board_size: int
    seed: int
    board: List[List[Optional[PlayerColor]]]
    pools: List[PlayerPool]
    evaluation: Evaluation
    history: List[MoveRecordView]
    selected_piece_index: Optional[int] = None
    ai_player: Optional[PlayerColor] = None
    ai_turn_pending: bool = False
    best_moves: Optional[List[BestMove]] = Field(
        default=None,
        description="Best placements for the side to move (only when hints are requested)"
    )


class MoveResponse(BaseModel):
    """Response to a placement or undo request."""
    success: bool
    message: str
    game_state: Optional[GameState] = None


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    message: str
