"""
Pydantic schemas for the polyomino duel web API.
"""

from .game_config import GameConfig, PlayerColor
from .game_state import (
    ErrorResponse, Evaluation, GameState, GameStatus, MoveResponse, PieceView, PlayerPool
)
from .move import BestMove, MoveRecordView, PlacementRequest, SelectRequest

__all__ = [
    "GameConfig",
    "PlayerColor",
    "GameStatus",
    "GameState",
    "PieceView",
    "PlayerPool",
    "Evaluation",
    "MoveResponse",
    "ErrorResponse",
    "BestMove",
    "MoveRecordView",
    "PlacementRequest",
    "SelectRequest"
]
