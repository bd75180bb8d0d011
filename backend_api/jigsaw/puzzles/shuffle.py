from __future__ import annotations

import random
from typing import List

from .pieces import ROTATIONS, Piece


# PUBLIC_INTERFACE
def create_pieces(grid_size: int) -> List[Piece]:
    """Create a solved piece set: every piece at its home slot, unrotated."""
    if grid_size < 1:
        raise ValueError(f"grid_size must be positive, got {grid_size!r}")
    return [Piece(id=i, home_position=i, position=i) for i in range(grid_size * grid_size)]


# PUBLIC_INTERFACE
def initialize_pieces(grid_size: int, rotation: bool = False, rng=random) -> List[Piece]:
    """Create gridSize² pieces and deal them over a uniform random permutation of cells.

    With rotation on, each piece also gets a uniform random rotation. Any
    permutation is solvable: pieces have no adjacency constraints.
    """
    pieces = create_pieces(grid_size)
    positions = [p.position for p in pieces]
    rng.shuffle(positions)
    dealt = []
    for piece, position in zip(pieces, positions):
        turn = rng.choice(ROTATIONS) if rotation else 0
        dealt.append(Piece(id=piece.id, home_position=piece.home_position, position=position, rotation=turn))
    return dealt
