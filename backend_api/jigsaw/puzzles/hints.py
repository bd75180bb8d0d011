from __future__ import annotations

import random
from typing import FrozenSet, List, Sequence

from .pieces import Piece, is_correct, is_staged, manhattan_distance

HINT_LIMIT = 2
HINTS_PER_SESSION = 3


def _near_correct(pieces: Sequence[Piece], grid_size: int, rotation_required: bool) -> List[Piece]:
    """Incorrect on-board pieces exactly one orthogonal step away from home."""
    return [
        p
        for p in pieces
        if not is_staged(p)
        and not is_correct(p, rotation_required)
        and manhattan_distance(p.position, p.home_position, grid_size) == 1
    ]


# PUBLIC_INTERFACE
def select_hints(
    pieces: Sequence[Piece],
    grid_size: int,
    limit: int = HINT_LIMIT,
    rng=random,
    rotation_required: bool = False,
) -> FrozenSet[int]:
    """Pick the pieces to highlight for one hint cycle.

    Parameters:
        pieces: current piece set.
        grid_size: active grid size, used for row/col math.
        limit: maximum number of pieces to highlight.
        rng: random source; anything exposing shuffle().
        rotation_required: whether rotation counts towards correctness.

    Returns:
        Ids of the highlighted pieces. Every other piece is un-highlighted:
        hints never accumulate across calls.
    """
    candidates = _near_correct(pieces, grid_size, rotation_required)
    if len(candidates) > limit:
        candidates = list(candidates)
        rng.shuffle(candidates)
        candidates = candidates[:limit]
    return frozenset(p.id for p in candidates)


# PUBLIC_INTERFACE
class HintBudget:
    """Per-session allowance of player-requested hints."""

    def __init__(self, total: int = HINTS_PER_SESSION):
        self.total = total
        self.used = 0

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.used)

    def reset(self) -> None:
        self.used = 0

    def consume(self) -> bool:
        """Use one hint; return False when none are left."""
        if self.remaining <= 0:
            return False
        self.used = min(self.used + 1, self.total)
        return True
