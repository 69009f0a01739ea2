"""
Seeded pseudo-random generation for reproducible catalogs and AI tie-breaks.

The generator is Mulberry32 and seed text is folded with 32-bit FNV-1a. Both
work on unsigned 32-bit integers and must stay bit-identical to the reference
algorithms: a seed string always yields the same shape catalog and the same
AI replies.
"""

import logging
import random
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MASK_32 = 0xFFFFFFFF

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

MULBERRY_INCREMENT = 0x6D2B79F5

# Upper bound (exclusive) for seeds drawn when no seed text is given
RANDOM_SEED_LIMIT = 1_000_000_000


def imul32(a: int, b: int) -> int:
    """32-bit wrapping multiplication, returned as an unsigned value."""
    return ((a & MASK_32) * (b & MASK_32)) & MASK_32


def fnv1a_32(text: str) -> int:
    """
    Hash text into an unsigned 32-bit seed with FNV-1a.

    Characters are consumed as UTF-16 code units so that text outside the
    Basic Multilingual Plane hashes the same way as in a browser.

    Args:
        text: Seed text

    Returns:
        Hash value in [0, 2**32)
    """
    h = FNV_OFFSET_BASIS
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h ^= code_unit
        h = imul32(h, FNV_PRIME)
    return h


class Mulberry32:
    """
    Mulberry32 generator producing floats in [0, 1).

    Instances are callable so they can be passed wherever a ``rng()``
    capability is expected.
    """

    def __init__(self, seed: int):
        self.seed = seed & MASK_32
        self._state = self.seed

    def next_uint32(self) -> int:
        """Advance the state and return the next raw 32-bit output."""
        self._state = (self._state + MULBERRY_INCREMENT) & MASK_32
        t = self._state
        t = imul32(t ^ (t >> 15), t | 1)
        t ^= (t + imul32(t ^ (t >> 7), t | 61)) & MASK_32
        return (t ^ (t >> 14)) & MASK_32

    def random(self) -> float:
        """Return the next float in [0, 1)."""
        return self.next_uint32() / 4294967296

    def __call__(self) -> float:
        return self.random()


def randbelow(rng: Callable[[], float], n: int) -> int:
    """Draw an index in [0, n) as ``floor(rng() * n)``, the AI's tie-break rule."""
    return int(rng() * n)


def resolve_seed(seed_text: Optional[str] = None) -> int:
    """
    Turn optional seed text into a numeric seed.

    Blank or missing text draws a fresh random seed; anything else is hashed
    with FNV-1a (the untrimmed text is hashed).
    """
    if seed_text is not None and seed_text.strip() != "":
        seed = fnv1a_32(seed_text)
        logger.debug(f"Seed text {seed_text!r} hashed to {seed}")
        return seed

    seed = random.randrange(RANDOM_SEED_LIMIT)
    logger.info(f"No seed provided, using random seed {seed}")
    return seed
