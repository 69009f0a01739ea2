"""
Pydantic schemas for game configuration.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from engine.config import DEFAULT_BOARD_SIZE, GameSettings, parse_board_size


class PlayerColor(str, Enum):
    """Player colors."""
    CYAN = "cyan"
    RED = "red"


class GameConfig(BaseModel):
    """Configuration for a new game."""
    board_size: int = Field(default=DEFAULT_BOARD_SIZE, description="Board side length, clamped to [5, 1000]")
    seed: Optional[str] = Field(default=None, description="Seed text; blank draws a random seed")
    ai_player: Optional[PlayerColor] = Field(default=PlayerColor.RED, description="Color played by the AI, null for two humans")
    ai_delay_seconds: float = Field(default=0.3, ge=0.0, le=10.0)
    reuse_pieces: bool = Field(default=False, description="Keep placed pieces available")

    @field_validator("board_size", mode="before")
    @classmethod
    def clamp_board_size(cls, value: Any) -> int:
        return parse_board_size(value)

    def to_settings(self) -> GameSettings:
        return GameSettings(
            board_size=self.board_size,
            seed=self.seed,
            ai_player=self.ai_player.value if self.ai_player else None,
            ai_delay_seconds=self.ai_delay_seconds,
            reuse_pieces=self.reuse_pieces,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "board_size": 15,
                "seed": "opening-study",
                "ai_player": "red",
                "ai_delay_seconds": 0.3,
                "reuse_pieces": False
            }
        }
