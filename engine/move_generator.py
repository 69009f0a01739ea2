"""
Legal move generator for the polyomino duel.
"""

import os
import time
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from .board import Board, Player
from .pieces import PiecePool, shape_to_offsets
from .placement import board_corners, is_legal_placement

logger = logging.getLogger(__name__)

# Debug flag for move generation timing (controlled via environment variable)
MOVEGEN_DEBUG = bool(os.getenv("POLYDUEL_MOVEGEN_DEBUG", ""))

# Feature flag forcing the reference cell-by-cell scan instead of numpy masks
USE_NAIVE_MOVEGEN = bool(os.getenv("POLYDUEL_NAIVE_MOVEGEN", ""))


@dataclass(frozen=True)
class Move:
    """A placement of pool piece ``piece_index`` with its origin at (row, col)."""
    piece_index: int
    row: int
    col: int

    def __str__(self):
        return f"Move(piece_index={self.piece_index}, origin=({self.row}, {self.col}))"


@dataclass
class _BoardMasks:
    """Padded per-player masks shared by every shape during one scan."""
    size: int
    pad: int
    first_move: bool
    blocked: np.ndarray
    corners: np.ndarray
    edge_own: np.ndarray
    diag_own: np.ndarray


class LegalMoveGenerator:
    """
    Enumerates and counts legal placements for a player's remaining pieces.

    Candidate origins are the board cells, scanned per piece in row-major
    order, so results come out ordered by (piece_index, row, col). Both the
    mask-based scan and the reference scan produce identical results.
    """

    def __init__(self):
        self.offsets_cache: Dict[Tuple[Tuple[int, int], bytes], List[Tuple[int, int]]] = {}

    def get_offsets(self, shape: np.ndarray) -> List[Tuple[int, int]]:
        """Occupied offsets of a shape, cached by content."""
        key = (shape.shape, shape.tobytes())
        offsets = self.offsets_cache.get(key)
        if offsets is None:
            offsets = shape_to_offsets(shape)
            self.offsets_cache[key] = offsets
        return offsets

    def get_legal_moves(self, board: Board, player: Player, pool: PiecePool) -> List[Move]:
        """
        Get all legal moves for a player on the current board.

        Delegates to either the mask-based or the naive generator based on the
        USE_NAIVE_MOVEGEN feature flag.

        Args:
            board: Current board state
            player: Player to generate moves for
            pool: The player's piece pool

        Returns:
            List of legal moves ordered by piece index, row, column
        """
        if USE_NAIVE_MOVEGEN:
            return self._get_legal_moves_naive(board, player, pool)
        return self._get_legal_moves_masked(board, player, pool)

    def count_legal_moves(self, board: Board, player: Player, pool: PiecePool) -> int:
        """Number of legal moves (mobility) for a player."""
        if USE_NAIVE_MOVEGEN:
            return len(self._get_legal_moves_naive(board, player, pool))

        start = time.perf_counter()
        masks = self._build_masks(board, player, pool)
        total = 0
        for piece_index in pool.available_indices():
            total += int(np.count_nonzero(self.legal_origin_mask(masks, pool.shapes[piece_index])))

        if MOVEGEN_DEBUG:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            logger.info(f"MoveGen[count]: player={player.name}, legal_moves={total}, elapsed_ms={elapsed_ms:.2f}")
        return total

    def has_legal_moves(self, board: Board, player: Player, pool: PiecePool) -> bool:
        """True as soon as any legal move exists."""
        if USE_NAIVE_MOVEGEN:
            return len(self._get_legal_moves_naive(board, player, pool)) > 0

        masks = self._build_masks(board, player, pool)
        for piece_index in pool.available_indices():
            if self.legal_origin_mask(masks, pool.shapes[piece_index]).any():
                return True
        return False

    def is_move_legal(self, board: Board, player: Player, pool: PiecePool, move: Move) -> bool:
        """Check a single move: available piece, origin on the board, legal placement."""
        if not pool.is_available(move.piece_index):
            return False
        if not (0 <= move.row < board.size and 0 <= move.col < board.size):
            return False
        return board.can_place_piece(pool.shapes[move.piece_index], move.row, move.col, player)

    def _get_legal_moves_masked(self, board: Board, player: Player, pool: PiecePool) -> List[Move]:
        start = time.perf_counter()
        masks = self._build_masks(board, player, pool)
        legal_moves = []
        for piece_index in pool.available_indices():
            mask = self.legal_origin_mask(masks, pool.shapes[piece_index])
            for row, col in np.argwhere(mask):
                legal_moves.append(Move(piece_index, int(row), int(col)))

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if MOVEGEN_DEBUG:
            logger.info(f"MoveGen[masked]: player={player.name}, legal_moves={len(legal_moves)}, elapsed_ms={elapsed_ms:.2f}")
        logger.debug(f"Legal move generation [masked]: {len(legal_moves)} moves in {elapsed_ms:.2f}ms for player={player.name}")
        return legal_moves

    def _get_legal_moves_naive(self, board: Board, player: Player, pool: PiecePool) -> List[Move]:
        """
        Reference generator: try every available piece at every board origin
        through the placement validator.
        """
        start = time.perf_counter()
        legal_moves = []
        grid = board.grid
        player_value = player.value
        has_played = board.has_played[player]

        for piece_index in pool.available_indices():
            shape = pool.shapes[piece_index]
            for row in range(board.size):
                for col in range(board.size):
                    if is_legal_placement(grid, shape, row, col, player_value, has_played):
                        legal_moves.append(Move(piece_index, row, col))

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if MOVEGEN_DEBUG:
            logger.info(f"MoveGen[naive]: player={player.name}, legal_moves={len(legal_moves)}, elapsed_ms={elapsed_ms:.2f}")
        logger.debug(f"Legal move generation [naive]: {len(legal_moves)} moves in {elapsed_ms:.2f}ms for player={player.name}")
        return legal_moves

    def _build_masks(self, board: Board, player: Player, pool: PiecePool) -> _BoardMasks:
        size = board.size
        pad = 1
        for piece_index in pool.available_indices():
            pad = max(pad, *pool.shapes[piece_index].shape)
        padded = (size + pad, size + pad)

        blocked = np.ones(padded, dtype=bool)
        blocked[:size, :size] = board.grid != 0

        corners = np.zeros(padded, dtype=bool)
        edge_own = np.zeros(padded, dtype=bool)
        diag_own = np.zeros(padded, dtype=bool)
        first_move = not board.has_played[player]

        if first_move:
            for r, c in board_corners(size):
                corners[r, c] = True
        else:
            own = board.grid == player.value
            edge = edge_own[:size, :size]
            edge[1:, :] |= own[:-1, :]
            edge[:-1, :] |= own[1:, :]
            edge[:, 1:] |= own[:, :-1]
            edge[:, :-1] |= own[:, 1:]
            diag = diag_own[:size, :size]
            diag[1:, 1:] |= own[:-1, :-1]
            diag[1:, :-1] |= own[:-1, 1:]
            diag[:-1, 1:] |= own[1:, :-1]
            diag[:-1, :-1] |= own[1:, 1:]

        return _BoardMasks(size=size, pad=pad, first_move=first_move, blocked=blocked,
                           corners=corners, edge_own=edge_own, diag_own=diag_own)

    def legal_origin_mask(self, masks: _BoardMasks, shape: np.ndarray) -> np.ndarray:
        """
        Boolean ``size`` x ``size`` mask of origins where ``shape`` is legal.

        Each occupied offset (i, j) contributes the window of the padded masks
        starting at (i, j); combining the windows checks every cell of the
        placement at every origin at once.
        """
        size = masks.size
        offsets = self.get_offsets(shape)
        if not offsets:
            return np.zeros((size, size), dtype=bool)
        if max(i for i, _ in offsets) >= size or max(j for _, j in offsets) >= size:
            return np.zeros((size, size), dtype=bool)

        hit_blocked = np.zeros((size, size), dtype=bool)
        for i, j in offsets:
            hit_blocked |= masks.blocked[i:i + size, j:j + size]
        legal = ~hit_blocked
        if not legal.any():
            return legal

        if masks.first_move:
            hit_corner = np.zeros((size, size), dtype=bool)
            for i, j in offsets:
                hit_corner |= masks.corners[i:i + size, j:j + size]
            return legal & hit_corner

        hit_edge = np.zeros((size, size), dtype=bool)
        hit_diag = np.zeros((size, size), dtype=bool)
        for i, j in offsets:
            hit_edge |= masks.edge_own[i:i + size, j:j + size]
            hit_diag |= masks.diag_own[i:i + size, j:j + size]
        return legal & ~hit_edge & hit_diag
