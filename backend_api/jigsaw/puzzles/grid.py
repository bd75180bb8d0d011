"""
Grid integrity service.

Every caller that moves pieces or restores them in bulk routes through this
module. The grid itself is never stored: it is rebuilt from the piece list on
demand, and the piece list is the single source of truth.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .pieces import STAGING, Piece, is_correct, is_staged

logger = logging.getLogger(__name__)

Grid = List[Optional[int]]


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PieceAnnotations:
    """Render-only flags, recomputed for every frame and never persisted."""

    trapped: bool = False
    dragging: bool = False
    selected: bool = False
    show_hint: bool = False
    correct: bool = False


def _in_range(position: int, cell_count: int) -> bool:
    return 0 <= position < cell_count


# PUBLIC_INTERFACE
def build_grid(pieces: Iterable[Piece], cell_count: int) -> Grid:
    """Map each cell to the id of the first piece claiming it, or None."""
    grid: Grid = [None] * cell_count
    for piece in pieces:
        if _in_range(piece.position, cell_count) and grid[piece.position] is None:
            grid[piece.position] = piece.id
    return grid


# PUBLIC_INTERFACE
def place_piece(pieces: Sequence[Piece], piece_id: int, target_cell: int, cell_count: int) -> List[Piece]:
    """Move one piece, keeping at most one piece per cell.

    - target_cell == STAGING: the piece goes to the tray.
    - empty target: the piece moves there.
    - occupied target: the mover takes the cell and the previous occupant is
      sent to STAGING.

    Raises:
        ValueError: unknown piece id or target outside the grid.
    """
    if target_cell != STAGING and not _in_range(target_cell, cell_count):
        raise ValueError(f"Cell {target_cell} is outside a grid of {cell_count} cells.")
    if not any(p.id == piece_id for p in pieces):
        raise ValueError(f"Unknown piece id: {piece_id!r}")

    updated: List[Piece] = []
    for piece in pieces:
        if piece.id == piece_id:
            updated.append(piece.moved_to(target_cell))
        elif target_cell != STAGING and piece.position == target_cell:
            logger.debug("Evicting piece %s from cell %s to staging", piece.id, target_cell)
            updated.append(piece.moved_to(STAGING))
        else:
            updated.append(piece)
    return updated


# PUBLIC_INTERFACE
def ensure_grid_integrity(pieces: Sequence[Piece], cell_count: int) -> List[Piece]:
    """Reconciliation pass.

    Scans pieces in list order; the first piece to claim a cell keeps it and any
    later claimant, or any piece pointing outside the grid, is forced to STAGING.
    Running it twice yields the same result as running it once.
    """
    claimed: Set[int] = set()
    reconciled: List[Piece] = []
    for piece in pieces:
        if is_staged(piece):
            reconciled.append(piece)
        elif not _in_range(piece.position, cell_count):
            logger.warning("Piece %s claims out-of-range cell %s; staging it", piece.id, piece.position)
            reconciled.append(piece.moved_to(STAGING))
        elif piece.position in claimed:
            logger.warning("Piece %s conflicts on cell %s; staging it", piece.id, piece.position)
            reconciled.append(piece.moved_to(STAGING))
        else:
            claimed.add(piece.position)
            reconciled.append(piece)
    return reconciled


# PUBLIC_INTERFACE
def find_trapped(pieces: Sequence[Piece], rotation_required: bool = False) -> Set[int]:
    """Return ids of incorrect on-board pieces sharing a cell with a correct piece."""
    trapped: Set[int] = set()
    for p in pieces:
        if is_staged(p) or is_correct(p, rotation_required):
            continue
        for q in pieces:
            if q.id != p.id and q.position == p.position and is_correct(q, rotation_required):
                trapped.add(p.id)
                break
    return trapped


# PUBLIC_INTERFACE
def annotate(
    pieces: Sequence[Piece],
    selected_id: Optional[int] = None,
    hinted: Iterable[int] = (),
    rotation_required: bool = False,
) -> Dict[int, PieceAnnotations]:
    """Compute the render flags of every piece for the current frame."""
    trapped = find_trapped(pieces, rotation_required)
    hinted_ids = set(hinted)
    return {
        p.id: PieceAnnotations(
            trapped=p.id in trapped,
            dragging=p.is_dragging,
            selected=p.id == selected_id,
            show_hint=p.id in hinted_ids,
            correct=is_correct(p, rotation_required),
        )
        for p in pieces
    }


def _stacking_key(annotations: PieceAnnotations):
    # Ascending: the last piece is drawn on top.
    return (annotations.trapped, annotations.dragging, annotations.selected, annotations.correct)


# PUBLIC_INTERFACE
def sort_for_rendering(pieces: Sequence[Piece], annotations: Dict[int, PieceAnnotations]) -> List[Piece]:
    """Stable draw order: trapped above dragging above selected; incorrect drawn before correct."""
    default = PieceAnnotations()
    return sorted(pieces, key=lambda p: _stacking_key(annotations.get(p.id, default)))


# PUBLIC_INTERFACE
def validate_puzzle_state(pieces: Sequence[Piece], cell_count: int) -> bool:
    """Debug check: log every double-claimed or out-of-range cell and return False if any."""
    valid = True
    owners: Dict[int, int] = {}
    for piece in pieces:
        if is_staged(piece):
            continue
        if not _in_range(piece.position, cell_count):
            logger.warning("Piece %s claims out-of-range cell %s", piece.id, piece.position)
            valid = False
            continue
        if piece.position in owners:
            logger.warning(
                "Cell %s claimed by both piece %s and piece %s",
                piece.position,
                owners[piece.position],
                piece.id,
            )
            valid = False
            continue
        owners[piece.position] = piece.id
    return valid
