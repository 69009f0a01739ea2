"""
Pydantic schemas for player commands.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .game_config import PlayerColor


class PlacementRequest(BaseModel):
    """Request to place a piece for the side to move."""
    row: int = Field(..., description="Board row of the piece's top-left cell")
    col: int = Field(..., description="Board column of the piece's top-left cell")
    piece_index: Optional[int] = Field(default=None, ge=0, description="Pool index; defaults to the selected piece")

    class Config:
        json_schema_extra = {
            "example": {
                "row": 0,
                "col": 0,
                "piece_index": 0
            }
        }


class SelectRequest(BaseModel):
    """Request to stage a piece for rotation, flipping and placement."""
    player: PlayerColor
    piece_index: int = Field(..., ge=0)


class BestMove(BaseModel):
    """A candidate placement."""
    piece_index: int
    row: int
    col: int


class MoveRecordView(BaseModel):
    """A completed move with its mobility numbers and quality label."""
    move_number: int
    player: PlayerColor
    piece_index: int
    row: int
    col: int
    label: str
    evaluation: float = Field(description="Position score in [-1, 1] from cyan's side after the move")
    you_legal_before: int
    opp_legal_before: int
    you_legal_after: int
    opp_legal_after: int
    ratio_before: float
    ratio_after: float
    delta_you: float
    delta_opp: float

    class Config:
        json_schema_extra = {
            "example": {
                "move_number": 2,
                "player": "red",
                "piece_index": 14,
                "row": 10,
                "col": 12,
                "label": "Ok",
                "evaluation": 0.08,
                "you_legal_before": 320,
                "opp_legal_before": 301,
                "you_legal_after": 290,
                "opp_legal_after": 340,
                "ratio_before": 0.515,
                "ratio_after": 0.46,
                "delta_you": -0.055,
                "delta_opp": 0.055
            }
        }
