"""
Game controller: turn state machine, move history, undo and the AI turn.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from .board import Board, Player
from .classifier import MoveQuality, classify_move, compute_deltas, evaluation_score, evaluation_split
from .config import GameSettings
from .errors import AITurnPending, GameFinished, InvalidPlacement, InvalidSelection, NothingToUndo
from .move_generator import LegalMoveGenerator, Move
from .pieces import Piece, PiecePool, ShapeCatalog, flip_shape, rotate_shape
from .rng import Mulberry32, resolve_seed

logger = logging.getLogger(__name__)

# Builds the AI from the game's generator and the shared move generator,
# e.g. ``agents.mobility_agent.MobilityAgent``
AgentFactory = Callable[[Callable[[], float], LegalMoveGenerator], object]


class GameStatus(str, Enum):
    CYAN_TO_MOVE = "cyan_to_move"
    RED_TO_MOVE = "red_to_move"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class MoveRecord:
    """
    One completed move with the mobility numbers it was judged by.

    Legal-move counts are relative to the mover: "you" is the player who
    moved, "opp" the other one.
    """
    move_number: int
    player: Player
    piece_index: int
    row: int
    col: int
    shape: np.ndarray = field(compare=False, repr=False)
    you_legal_before: int
    opp_legal_before: int
    you_legal_after: int
    opp_legal_after: int
    ratio_before: float
    ratio_after: float
    delta_you: float
    opp_ratio_before: float
    opp_ratio_after: float
    delta_opp: float
    evaluation: float
    label: MoveQuality

    def legal_after_for(self, player: Player) -> int:
        """Legal moves ``player`` had right after this move."""
        return self.you_legal_after if player == self.player else self.opp_legal_after


@dataclass
class GameState:
    """Everything that changes during a game, owned by a single controller."""
    board: Board
    pools: Dict[Player, PiecePool]
    turn: Player = Player.CYAN
    history: List[MoveRecord] = field(default_factory=list)
    selected_index: Optional[int] = None
    winner: Optional[Player] = None
    ai_turn_pending: bool = False

    @property
    def game_over(self) -> bool:
        return self.winner is not None

    @property
    def status(self) -> GameStatus:
        if self.game_over:
            return GameStatus.GAME_OVER
        return GameStatus.CYAN_TO_MOVE if self.turn == Player.CYAN else GameStatus.RED_TO_MOVE


class GameController:
    """
    Runs one game between cyan and red.

    Cyan moves first. After every committed move the turn passes to the
    other color; a color left without legal moves loses. When the color to
    move is played by the AI the controller queues its turn
    (``ai_turn_pending``) and refuses human commands until
    ``run_ai_turn`` or ``play_pending_ai_turn`` has played it.

    ``lock`` guards the game state; the AI search mutates the board while it
    runs, so callers sharing the controller across threads hold it.
    """

    def __init__(self, settings: Optional[GameSettings] = None,
                 move_generator: Optional[LegalMoveGenerator] = None,
                 agent_factory: Optional[AgentFactory] = None):
        """
        Args:
            settings: Game settings (defaults apply when omitted)
            move_generator: Shared generator (a new one is created when omitted)
            agent_factory: Builds the AI; required when a color is played by
                the AI and for move suggestions
        """
        self.move_generator = move_generator or LegalMoveGenerator()
        self.agent_factory = agent_factory
        self.lock = threading.RLock()
        self.restart(settings)

    def restart(self, settings: Optional[GameSettings] = None) -> None:
        """Throw the current game away and deal a fresh one."""
        if settings is not None:
            self.settings = settings
        elif not hasattr(self, "settings"):
            self.settings = GameSettings()
        if self.settings.ai_color is not None and self.agent_factory is None:
            raise ValueError(f"An agent factory is required for ai_player={self.settings.ai_player!r}")

        self.seed = resolve_seed(self.settings.seed)
        self.rng = Mulberry32(self.seed)
        self.catalog = ShapeCatalog.generate(self.rng)
        self.agent = self.agent_factory(self.rng, self.move_generator) if self.agent_factory else None

        reuse = self.settings.reuse_pieces
        self.state = GameState(
            board=Board(self.settings.board_size),
            pools={player: PiecePool(player.label, self.catalog, reuse=reuse) for player in Player},
        )
        if self.ai_player == self.state.turn:
            self.state.ai_turn_pending = True

        logger.info(f"Game started: board={self.settings.board_size}x{self.settings.board_size}, "
                    f"seed={self.seed}, pieces={len(self.catalog)}, ai={self.settings.ai_player}")

    # Observations

    @property
    def board(self) -> Board:
        return self.state.board

    @property
    def turn(self) -> Player:
        return self.state.turn

    @property
    def winner(self) -> Optional[Player]:
        return self.state.winner

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def history(self) -> List[MoveRecord]:
        return list(self.state.history)

    @property
    def ai_player(self) -> Optional[Player]:
        return self.settings.ai_color

    @property
    def ai_turn_pending(self) -> bool:
        return self.state.ai_turn_pending

    def is_ai(self, player: Player) -> bool:
        return self.ai_player == player

    def get_pool(self, player: Player) -> PiecePool:
        return self.state.pools[player]

    @property
    def selected_piece(self) -> Optional[Piece]:
        if self.state.selected_index is None:
            return None
        return self.state.pools[self.state.turn].get_piece(self.state.selected_index)

    def count_legal_moves(self, player: Player) -> int:
        return self.move_generator.count_legal_moves(self.board, player, self.state.pools[player])

    def get_legal_moves(self, player: Player) -> List[Move]:
        return self.move_generator.get_legal_moves(self.board, player, self.state.pools[player])

    def evaluation(self) -> Tuple[float, float]:
        """Evaluation bar as (cyan percent, red percent)."""
        return evaluation_split(self.count_legal_moves(Player.CYAN), self.count_legal_moves(Player.RED))

    def suggest_best_moves(self, player: Optional[Player] = None) -> List[Move]:
        """Moves the AI would consider best for ``player`` (default: side to move)."""
        if self.agent is None:
            raise ValueError("No agent configured for move suggestions")
        if self.state.game_over:
            return []
        player = player or self.state.turn
        _, best_moves = self.agent.get_best_moves(self.board, player, self.state.pools[player])
        return best_moves

    # Commands

    def select_piece(self, player: Union[Player, str], index: int) -> Piece:
        """Stage a piece of the side to move for rotation, flipping and placement."""
        self._ensure_accepting_human_input()
        player = _as_player(player)
        if player != self.state.turn:
            raise InvalidSelection(f"It is {self.state.turn.label}'s turn")
        if self.is_ai(player):
            raise InvalidSelection(f"{player.label.capitalize()} is played by the AI")
        pool = self.state.pools[player]
        if not pool.is_valid_index(index):
            raise InvalidSelection(f"Unknown piece {index}")
        if not pool.is_available(index):
            raise InvalidSelection(f"Piece {index} has already been placed")

        self.state.selected_index = index
        return pool.get_piece(index)

    def rotate_selected(self) -> np.ndarray:
        """Rotate the staged piece 90 degrees clockwise."""
        return self._transform_selected(rotate_shape)

    def flip_selected(self) -> np.ndarray:
        """Mirror the staged piece left-to-right."""
        return self._transform_selected(flip_shape)

    def submit_placement(self, row: int, col: int, piece_index: Optional[int] = None) -> MoveRecord:
        """
        Place a piece for the side to move.

        Args:
            row: Board row of the piece's top-left cell
            col: Board column of the piece's top-left cell
            piece_index: Pool index; defaults to the staged piece

        Returns:
            The recorded move

        Raises:
            InvalidPlacement: the move is not legal; nothing changes
        """
        self._ensure_accepting_human_input()
        player = self.state.turn
        if self.is_ai(player):
            raise InvalidPlacement(f"It is the AI's turn ({player.label})")
        if piece_index is None:
            piece_index = self.state.selected_index
        if piece_index is None:
            raise InvalidPlacement("No piece selected")
        return self._commit_placement(player, Move(piece_index, row, col))

    def undo(self) -> MoveRecord:
        """
        Take back the most recent move and give the turn back to its mover.

        Raises:
            NothingToUndo: the history is empty; nothing changes
        """
        if self.state.game_over:
            raise GameFinished("The game is over")
        if self.state.ai_turn_pending:
            raise AITurnPending("Wait for the AI to finish its move")
        if not self.state.history:
            raise NothingToUndo("No moves to undo!")

        record = self.state.history.pop()
        self.board.revert(record.shape, record.row, record.col)
        self.state.pools[record.player].restore(record.piece_index)
        self.board.has_played[record.player] = any(r.player == record.player for r in self.state.history)
        self.state.turn = record.player
        self.state.selected_index = None

        logger.info(f"{record.player.label} undid move {record.move_number} "
                    f"(piece {record.piece_index} at {record.row},{record.col})")
        return record

    def resume_ai_turn(self) -> bool:
        """Queue the AI turn again when an undo handed the turn back to the AI."""
        if self.state.game_over:
            raise GameFinished("The game is over")
        if self.is_ai(self.state.turn):
            self.state.ai_turn_pending = True
        return self.state.ai_turn_pending

    def run_ai_turn(self) -> Optional[MoveRecord]:
        """
        Play the AI's move now.

        Returns:
            The AI's move, or None when the AI had nothing to play (the game
            is then over) or it is not the AI's turn
        """
        with self.lock:
            ai = self.ai_player
            if self.state.game_over or ai is None or self.state.turn != ai:
                self.state.ai_turn_pending = False
                return None

            self.state.ai_turn_pending = False
            start = time.perf_counter()
            move = self.agent.select_action(self.board, ai, self.state.pools[ai])
            logger.debug(f"AI selection for {ai.label}: {move} in {time.perf_counter() - start:.4f}s")

            if move is None:
                logger.info(f"{ai.label} has no legal move left")
                self._end_game(winner=ai.opponent)
                return None
            return self._commit_placement(ai, move)

    async def play_pending_ai_turn(self) -> Optional[MoveRecord]:
        """
        Wait the configured delay, then play the queued AI turn.

        The search runs in the default executor so the event loop stays
        responsive; it holds ``lock`` while it runs.
        """
        if not self.state.ai_turn_pending:
            return None
        if self.settings.ai_delay_seconds > 0:
            await asyncio.sleep(self.settings.ai_delay_seconds)
        return await asyncio.get_running_loop().run_in_executor(None, self._run_pending_ai_turn)

    def _run_pending_ai_turn(self) -> Optional[MoveRecord]:
        with self.lock:
            if not self.state.ai_turn_pending:
                return None
            return self.run_ai_turn()

    # Internals

    def _ensure_accepting_human_input(self) -> None:
        if self.state.game_over:
            raise GameFinished("The game is over")
        if self.state.ai_turn_pending:
            raise AITurnPending("Wait for the AI to finish its move")

    def _transform_selected(self, transform) -> np.ndarray:
        self._ensure_accepting_human_input()
        index = self.state.selected_index
        if index is None:
            raise InvalidSelection("No piece selected")
        pool = self.state.pools[self.state.turn]
        shape = transform(pool.shapes[index])
        pool.replace_shape(index, shape)
        return shape

    def _commit_placement(self, player: Player, move: Move) -> MoveRecord:
        pool = self.state.pools[player]
        if not pool.is_valid_index(move.piece_index):
            raise InvalidPlacement(f"Unknown piece {move.piece_index}")
        if not pool.is_available(move.piece_index):
            raise InvalidPlacement(f"Piece {move.piece_index} has already been placed")
        if not self.move_generator.is_move_legal(self.board, player, pool, move):
            logger.warning(f"Rejected placement for {player.label}: {move}")
            raise InvalidPlacement("Invalid placement!")

        opponent = player.opponent
        history = self.state.history
        if history:
            you_before = history[-1].legal_after_for(player)
            opp_before = history[-1].legal_after_for(opponent)
        else:
            you_before = self.count_legal_moves(player)
            opp_before = self.count_legal_moves(opponent)

        shape = pool.shapes[move.piece_index]
        self.board.apply(shape, move.row, move.col, player)
        pool.consume(move.piece_index)

        you_after = self.count_legal_moves(player)
        opp_after = self.count_legal_moves(opponent)
        deltas = compute_deltas(you_before, opp_before, you_after, opp_after)
        cyan_after, red_after = (you_after, opp_after) if player == Player.CYAN else (opp_after, you_after)

        record = MoveRecord(
            move_number=len(history) + 1,
            player=player,
            piece_index=move.piece_index,
            row=move.row,
            col=move.col,
            shape=shape,
            you_legal_before=you_before,
            opp_legal_before=opp_before,
            you_legal_after=you_after,
            opp_legal_after=opp_after,
            ratio_before=deltas.ratio_before,
            ratio_after=deltas.ratio_after,
            delta_you=deltas.delta_you,
            opp_ratio_before=deltas.opp_ratio_before,
            opp_ratio_after=deltas.opp_ratio_after,
            delta_opp=deltas.delta_opp,
            evaluation=evaluation_score(cyan_after, red_after),
            label=classify_move(deltas, is_first_move=not history),
        )
        history.append(record)
        self.state.selected_index = None
        self.state.turn = opponent

        logger.info(f"{player.label} placed piece {move.piece_index} at {move.row},{move.col} "
                    f"({record.label.value}, legal moves {you_after} vs {opp_after})")

        if opp_after == 0:
            logger.info(f"{opponent.label} has no legal move left")
            self._end_game(winner=player)
        elif self.is_ai(opponent):
            self.state.ai_turn_pending = True
        return record

    def _end_game(self, winner: Player) -> None:
        self.state.winner = winner
        self.state.ai_turn_pending = False
        self.state.selected_index = None
        logger.info(f"Game over: {winner.label} wins after {len(self.state.history)} moves")


def _as_player(player: Union[Player, str]) -> Player:
    if isinstance(player, Player):
        return player
    try:
        return Player.from_label(player)
    except KeyError:
        raise InvalidSelection(f"Unknown player {player!r}") from None
