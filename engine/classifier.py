"""
Move quality from legal-move counts.

A move is judged by how the mover's share of all legal moves changed:
share = you / (you + opp), taken before and after the move. The opponent's
share delta is tracked alongside. A zero total counts as an even 0.5 share,
the same convention the evaluation bar uses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class MoveQuality(str, Enum):
    """Move labels, best to worst."""
    SIGMA = "Sigma"
    CHAD = "Chad"
    GOOD = "Good"
    OK = "Ok"
    STRANGE = "Strange"
    BAD = "Bad"
    CLOWN = "Clown"


# (min delta_you, max delta_opp, label); first matching band wins
QUALITY_BANDS = (
    (0.0, -0.5, MoveQuality.SIGMA),
    (0.5, 0.0, MoveQuality.CHAD),
    (0.0, 0.0, MoveQuality.GOOD),
    (-0.1, 0.1, MoveQuality.OK),
    (-0.2, 0.2, MoveQuality.STRANGE),
    (-0.3, 0.3, MoveQuality.BAD),
)


@dataclass(frozen=True)
class MobilityDeltas:
    ratio_before: float
    ratio_after: float
    delta_you: float
    opp_ratio_before: float
    opp_ratio_after: float
    delta_opp: float


def mobility_share(mine: int, theirs: int) -> float:
    """``mine / (mine + theirs)``, or 0.5 when neither side can move."""
    total = mine + theirs
    if total == 0:
        return 0.5
    return mine / total


def compute_deltas(you_before: int, opp_before: int, you_after: int, opp_after: int) -> MobilityDeltas:
    """Share ratios and their deltas for the mover and the opponent."""
    ratio_before = mobility_share(you_before, opp_before)
    ratio_after = mobility_share(you_after, opp_after)
    opp_ratio_before = mobility_share(opp_before, you_before)
    opp_ratio_after = mobility_share(opp_after, you_after)
    return MobilityDeltas(
        ratio_before=ratio_before,
        ratio_after=ratio_after,
        delta_you=ratio_after - ratio_before,
        opp_ratio_before=opp_ratio_before,
        opp_ratio_after=opp_ratio_after,
        delta_opp=opp_ratio_after - opp_ratio_before,
    )


def classify_deltas(delta_you: float, delta_opp: float) -> MoveQuality:
    for min_you, max_opp, label in QUALITY_BANDS:
        if delta_you >= min_you and delta_opp <= max_opp:
            return label
    return MoveQuality.CLOWN


def classify_move(deltas: MobilityDeltas, is_first_move: bool) -> MoveQuality:
    """Label a completed move; the game's first move is always Good."""
    if is_first_move:
        return MoveQuality.GOOD
    return classify_deltas(deltas.delta_you, deltas.delta_opp)


def evaluation_split(cyan_moves: int, red_moves: int) -> Tuple[float, float]:
    """Evaluation bar percentages (cyan, red); 50/50 when both are zero."""
    total = cyan_moves + red_moves
    if total == 0:
        return 50.0, 50.0
    return cyan_moves / total * 100.0, red_moves / total * 100.0


def evaluation_score(cyan_moves: int, red_moves: int) -> float:
    """Position score in [-1, 1] from cyan's point of view."""
    return (mobility_share(cyan_moves, red_moves) - 0.5) * 2
