"""
Piece catalog: shape generation, shape transforms and per-player piece pools.

Shapes are 2D boolean numpy arrays with the origin at the top-left cell.
Catalog shapes and every transformed shape are read-only; rotating or
flipping always produces a new array.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Number of random blobs drawn after the fixed shape families
RANDOM_BLOB_COUNT = 100

# Random blob height/width is BLOB_MIN_SIDE + floor(rng() * BLOB_SIDE_CHOICES)
BLOB_MIN_SIDE = 2
BLOB_SIDE_CHOICES = 5

# Shapes produced before the random blobs
FIXED_SHAPE_COUNT = 51


def make_shape(cells: Iterable[Iterable[bool]]) -> np.ndarray:
    """
    Build a read-only shape from nested rows of truthy values.

    Args:
        cells: Rows of cells; truthy means occupied

    Returns:
        2D read-only boolean array
    """
    shape = np.array([[bool(cell) for cell in row] for row in cells], dtype=bool)
    if shape.ndim != 2:
        raise ValueError("Shape must be 2D")
    shape.setflags(write=False)
    return shape


def _freeze(shape: np.ndarray) -> np.ndarray:
    frozen = np.ascontiguousarray(shape, dtype=bool).copy()
    frozen.setflags(write=False)
    return frozen


def rotate_shape(shape: np.ndarray) -> np.ndarray:
    """Rotate 90 degrees clockwise: ``new[c][rows - 1 - r] = old[r][c]``."""
    return _freeze(np.rot90(shape, k=-1))


def flip_shape(shape: np.ndarray) -> np.ndarray:
    """Mirror every row left-to-right."""
    return _freeze(np.fliplr(shape))


def shape_to_offsets(shape: np.ndarray) -> List[Tuple[int, int]]:
    """
    Convert a shape to the (row, col) offsets of its occupied cells.

    Offsets are in row-major order and are NOT normalized: empty leading rows
    or columns keep their offset.
    """
    rows, cols = np.nonzero(shape)
    return list(zip(rows.tolist(), cols.tolist()))


def shape_to_rows(shape: np.ndarray) -> List[List[bool]]:
    """Plain nested-list copy of a shape, for serialization."""
    return shape.astype(bool).tolist()


def _line(length: int, horizontal: bool) -> np.ndarray:
    if horizontal:
        return make_shape([[True] * length])
    return make_shape([[True] for _ in range(length)])


def _square(size: int) -> np.ndarray:
    return _freeze(np.ones((size, size), dtype=bool))


def _l_shape(height: int, width: int) -> np.ndarray:
    shape = np.zeros((height, width), dtype=bool)
    shape[:, 0] = True
    shape[height - 1, :] = True
    return _freeze(shape)


def _t_shape(width: int) -> np.ndarray:
    shape = np.zeros((width - 1, width), dtype=bool)
    shape[0, :] = True
    shape[1:, width // 2] = True
    return _freeze(shape)


def _cross(size: int) -> np.ndarray:
    mid = size // 2
    shape = np.zeros((size, size), dtype=bool)
    shape[mid, :] = True
    shape[:, mid] = True
    return _freeze(shape)


def _hollow_square(size: int) -> np.ndarray:
    shape = np.ones((size, size), dtype=bool)
    shape[1:-1, 1:-1] = False
    return _freeze(shape)


def _staircase(length: int) -> np.ndarray:
    return _freeze(np.eye(length, dtype=bool))


def _random_blob(rng: Callable[[], float]) -> Optional[np.ndarray]:
    """Draw one blob; returns None when no cell came up occupied."""
    height = BLOB_MIN_SIDE + int(rng() * BLOB_SIDE_CHOICES)
    width = BLOB_MIN_SIDE + int(rng() * BLOB_SIDE_CHOICES)
    cells = [[rng() > 0.5 for _ in range(width)] for _ in range(height)]
    if not any(any(row) for row in cells):
        return None
    return make_shape(cells)


class ShapeCatalog:
    """Generates the ordered shape catalog shared by both players."""

    @staticmethod
    def get_fixed_shapes() -> List[np.ndarray]:
        """The deterministic shape families, in catalog order."""
        shapes = [make_shape([[True]])]

        for length in range(2, 8):
            shapes.append(_line(length, horizontal=True))
            shapes.append(_line(length, horizontal=False))

        for size in range(2, 7):
            shapes.append(_square(size))

        for height in range(2, 6):
            for width in range(2, 6):
                shapes.append(_l_shape(height, width))

        for width in range(3, 8):
            shapes.append(_t_shape(width))

        for size in range(3, 8, 2):
            shapes.append(_cross(size))

        for size in range(4, 9):
            shapes.append(_hollow_square(size))

        for length in range(3, 7):
            shapes.append(_staircase(length))

        return shapes

    @staticmethod
    def generate(rng: Callable[[], float]) -> List[np.ndarray]:
        """
        Generate the full catalog: fixed families followed by random blobs.

        Args:
            rng: Callable returning floats in [0, 1); consumed only by the blobs

        Returns:
            Ordered list of read-only shapes
        """
        shapes = ShapeCatalog.get_fixed_shapes()
        discarded = 0
        for _ in range(RANDOM_BLOB_COUNT):
            blob = _random_blob(rng)
            if blob is None:
                discarded += 1
                continue
            shapes.append(blob)

        logger.debug(f"Shape catalog generated: {len(shapes)} shapes ({discarded} empty blobs discarded)")
        return shapes


def generate_shapes(rng: Callable[[], float]) -> List[np.ndarray]:
    """Convenience wrapper around ``ShapeCatalog.generate``."""
    return ShapeCatalog.generate(rng)


@dataclass
class Piece:
    """A pool entry: a shape owned by a player."""
    index: int
    owner: str
    shape: np.ndarray
    available: bool

    @property
    def size(self) -> int:
        return int(self.shape.sum())


class PiecePool:
    """
    Ordered, index-addressable pieces of one player.

    Indices never shift. A consumed piece stays in ``shapes`` and is tracked in
    ``used``; undo takes it out of ``used`` again. With ``reuse=True`` pieces
    are never consumed.
    """

    def __init__(self, owner: str, shapes: Sequence[np.ndarray], reuse: bool = False):
        self.owner = owner
        self.shapes: List[np.ndarray] = list(shapes)
        self.used: Set[int] = set()
        self.reuse = reuse

    def __len__(self) -> int:
        return len(self.shapes)

    def is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.shapes)

    def is_available(self, index: int) -> bool:
        return self.is_valid_index(index) and index not in self.used

    def available_indices(self) -> List[int]:
        """Available piece indices in ascending order."""
        return [i for i in range(len(self.shapes)) if i not in self.used]

    def consume(self, index: int) -> None:
        if not self.reuse:
            self.used.add(index)

    def restore(self, index: int) -> None:
        self.used.discard(index)

    def replace_shape(self, index: int, shape: np.ndarray) -> None:
        """Swap in a transformed variant of the piece at ``index``."""
        self.shapes[index] = shape

    def get_piece(self, index: int) -> Piece:
        return Piece(index=index, owner=self.owner, shape=self.shapes[index],
                     available=self.is_available(index))

    def pieces(self) -> List[Piece]:
        return [self.get_piece(i) for i in range(len(self.shapes))]

    def copy(self) -> "PiecePool":
        pool = PiecePool(self.owner, self.shapes, reuse=self.reuse)
        pool.used = set(self.used)
        return pool
