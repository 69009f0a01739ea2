"""
Placement legality: bounds, overlap, the first-move corner rule and the
diagonal-only adjacency rule.
"""

from typing import List, Tuple

import numpy as np

EDGE_DIRECTIONS = ((-1, 0), (1, 0), (0, -1), (0, 1))
CORNER_DIRECTIONS = ((-1, -1), (-1, 1), (1, -1), (1, 1))


def get_piece_positions(shape: np.ndarray, anchor_row: int, anchor_col: int) -> List[Tuple[int, int]]:
    """
    Board positions a shape would occupy with its top-left at the anchor.

    Args:
        shape: 2D boolean array
        anchor_row: Row of the shape's top-left cell
        anchor_col: Column of the shape's top-left cell

    Returns:
        List of (row, col) tuples, row-major
    """
    positions = []
    rows, cols = shape.shape
    for i in range(rows):
        for j in range(cols):
            if shape[i, j]:
                positions.append((anchor_row + i, anchor_col + j))
    return positions


def board_corners(size: int) -> Tuple[Tuple[int, int], ...]:
    last = size - 1
    return ((0, 0), (0, last), (last, 0), (last, last))


def is_legal_placement(grid: np.ndarray, shape: np.ndarray, row: int, col: int,
                       player_value: int, has_played_before: bool) -> bool:
    """
    Check whether ``shape`` may be placed with its origin at (row, col).

    Rules, checked in order:
    1. Every occupied cell lands inside the board
    2. Every such cell is empty
    3. First placement: some cell covers one of the four board corners
    4. Later placements: no cell shares an edge with the player's cells and
       at least one cell touches the player's cells at a corner

    Never mutates ``grid``.
    """
    size = grid.shape[0]
    positions = get_piece_positions(shape, row, col)
    if not positions:
        return False

    for r, c in positions:
        if r < 0 or r >= size or c < 0 or c >= size:
            return False
        if grid[r, c] != 0:
            return False

    if not has_played_before:
        corners = board_corners(size)
        return any(pos in corners for pos in positions)

    has_corner_connection = False
    for r, c in positions:
        for dr, dc in EDGE_DIRECTIONS:
            nr, nc = r + dr, c + dc
            if 0 <= nr < size and 0 <= nc < size and grid[nr, nc] == player_value:
                return False

        if not has_corner_connection:
            for dr, dc in CORNER_DIRECTIONS:
                nr, nc = r + dr, c + dc
                if 0 <= nr < size and 0 <= nc < size and grid[nr, nc] == player_value:
                    has_corner_connection = True
                    break

    return has_corner_connection
