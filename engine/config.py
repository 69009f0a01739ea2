"""
Game configuration.

Settings can be built directly, from a dict (unknown keys ignored) or from a
YAML/JSON file. Board sizes are clamped into the supported range rather than
rejected.
"""

import json
import logging
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .board import MAX_BOARD_SIZE, MIN_BOARD_SIZE, Player

logger = logging.getLogger(__name__)

DEFAULT_BOARD_SIZE = 15

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_board_size(raw: Union[int, float, str, None]) -> int:
    """
    Interpret user input as a board size and clamp it to [5, 1000].

    Text is read up to its first non-digit ("15x15" -> 15); anything without
    a leading integer falls back to the minimum size.
    """
    size: Optional[int]
    if isinstance(raw, bool):
        size = None
    elif isinstance(raw, int):
        size = raw
    elif isinstance(raw, float):
        size = int(raw) if raw == raw and abs(raw) != float("inf") else None
    elif isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        size = int(match.group(1)) if match else None
    else:
        size = None

    if size is None or size < MIN_BOARD_SIZE:
        clamped = MIN_BOARD_SIZE
    elif size > MAX_BOARD_SIZE:
        clamped = MAX_BOARD_SIZE
    else:
        clamped = size

    if clamped != size:
        logger.debug(f"Board size {raw!r} clamped to {clamped}")
    return clamped


@dataclass
class GameSettings:
    """
    Settings for one game.

    Attributes:
        board_size: Board side length, clamped to [5, 1000]
        seed: Seed text; blank or None draws a random seed
        ai_player: Color played by the AI ("cyan", "red"), or None for two humans
        ai_delay_seconds: Pause before the AI replies; does not change outcomes
        reuse_pieces: Keep placed pieces available instead of consuming them
    """

    board_size: int = DEFAULT_BOARD_SIZE
    seed: Optional[str] = None
    ai_player: Optional[str] = "red"
    ai_delay_seconds: float = 0.3
    reuse_pieces: bool = False

    def __post_init__(self):
        self.board_size = parse_board_size(self.board_size)
        if self.ai_player is not None:
            if isinstance(self.ai_player, Player):
                self.ai_player = self.ai_player.label
            self.ai_player = str(self.ai_player).strip().lower() or None
            if self.ai_player is not None and self.ai_player not in ("cyan", "red"):
                raise ValueError(f"Unknown ai_player: {self.ai_player!r}")
        if self.ai_delay_seconds < 0:
            self.ai_delay_seconds = 0.0

    @property
    def ai_color(self) -> Optional[Player]:
        return Player.from_label(self.ai_player) if self.ai_player else None

    @classmethod
    def from_dict(cls, config_dict: dict) -> "GameSettings":
        """Create settings from a dictionary, ignoring unknown keys."""
        valid_keys = {f.name for f in fields(cls)}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, config_path: Path) -> "GameSettings":
        """Load settings from a YAML or JSON file."""
        config_path = Path(config_path)
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix.lower() in (".yaml", ".yml"):
                config_dict = yaml.safe_load(f) or {}
            elif config_path.suffix.lower() == ".json":
                config_dict = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")
        return cls.from_dict(config_dict)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
