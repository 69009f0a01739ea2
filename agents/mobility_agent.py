"""
Mobility agent: one-ply search maximizing the mover's own legal-move count.
"""

import logging
import time
from typing import Callable, List, Optional, Tuple

from engine.board import Board, Player
from engine.move_generator import LegalMoveGenerator, Move
from engine.pieces import PiecePool
from engine.rng import randbelow

logger = logging.getLogger(__name__)


class MobilityAgent:
    """
    Greedy mobility agent.

    Every legal placement is tried on the board, the mover's resulting number
    of legal moves is counted and the placement is taken back. The placements
    reaching the highest count are kept, ties included, and one of them is
    drawn with the injected generator. The opponent's mobility is not
    considered.
    """

    def __init__(self, rng: Callable[[], float], move_generator: Optional[LegalMoveGenerator] = None):
        """
        Initialize mobility agent.

        Args:
            rng: Callable returning floats in [0, 1), used for tie-breaks only
            move_generator: Shared generator (a new one is created when omitted)
        """
        self.rng = rng
        self.move_generator = move_generator or LegalMoveGenerator()

    def get_best_moves(self, board: Board, player: Player, pool: PiecePool) -> Tuple[int, List[Move]]:
        """
        Score every legal move by the mobility it leaves the player.

        Args:
            board: Current board state (restored before returning)
            player: Player to search for
            pool: The player's piece pool (restored before returning)

        Returns:
            Tuple of (best mobility, tied best moves in generation order);
            (-1, []) when there is no legal move
        """
        start = time.perf_counter()
        best_score = -1
        best_moves: List[Move] = []

        legal_moves = self.move_generator.get_legal_moves(board, player, pool)
        for move in legal_moves:
            score = self._evaluate_move(board, player, pool, move)
            if score > best_score:
                best_score = score
                best_moves = [move]
            elif score == best_score:
                best_moves.append(move)

        elapsed = time.perf_counter() - start
        logger.debug(f"Mobility search: player={player.name}, candidates={len(legal_moves)}, "
                     f"best={best_score}, ties={len(best_moves)} in {elapsed:.4f}s")
        return best_score, best_moves

    def select_action(self, board: Board, player: Player, pool: PiecePool) -> Optional[Move]:
        """
        Pick the move to play.

        Returns:
            One of the tied best moves, or None when the player cannot move
        """
        _, best_moves = self.get_best_moves(board, player, pool)
        if not best_moves:
            return None

        choice = randbelow(self.rng, len(best_moves))
        return best_moves[choice]

    def _evaluate_move(self, board: Board, player: Player, pool: PiecePool, move: Move) -> int:
        """Mobility left to ``player`` after hypothetically playing ``move``."""
        shape = pool.shapes[move.piece_index]
        consumed = not pool.reuse
        if consumed:
            pool.consume(move.piece_index)
        try:
            with board.hypothetical(shape, move.row, move.col, player):
                return self.move_generator.count_legal_moves(board, player, pool)
        finally:
            if consumed:
                pool.restore(move.piece_index)
