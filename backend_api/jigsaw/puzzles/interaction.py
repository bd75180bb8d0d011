"""
Interaction controller.

Translates pointer, click and directional input into piece moves. It is the
only writer of piece positions. Input arrives from a UI that may race with
itself (double drops, pieces vanishing on a new game), so nothing here raises
for bad input: no-ops return False and leave the state as it was.
"""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .events import PlaySound, fire_and_forget
from .grid import ensure_grid_integrity, place_piece
from .pieces import STAGING, Piece, find_piece, is_staged, row_col

logger = logging.getLogger(__name__)

MOVE_THROTTLE_SECONDS = 0.05

DIRECTIONS: Dict[str, Tuple[int, int]] = {
    "up": (-1, 0),
    "down": (1, 0),
    "left": (0, -1),
    "right": (0, 1),
}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# PUBLIC_INTERFACE
class InteractionController:
    """State machine over at most one armed piece.

    Parameters:
        pieces: initial piece set.
        grid_size: rows (= columns) of the board.
        play_sound: fire-and-forget sound callback ('pickup', 'place').
        on_move: called once for every counted move.
        on_change: called with the new piece list after every position or rotation change.
        is_locked: returns True while input must be ignored (completed game).
        throttle_seconds: minimum spacing of hover updates.
        clock: monotonic time source for the hover throttle.
    """

    def __init__(
        self,
        pieces: Sequence[Piece] = (),
        grid_size: int = 3,
        play_sound: Optional[PlaySound] = None,
        on_move: Optional[Callable[[], None]] = None,
        on_change: Optional[Callable[[List[Piece]], None]] = None,
        is_locked: Optional[Callable[[], bool]] = None,
        rotation_enabled: bool = False,
        throttle_seconds: float = MOVE_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.pieces: List[Piece] = list(pieces)
        self.grid_size = grid_size
        self.play_sound = play_sound
        self.on_move = on_move
        self.on_change = on_change
        self.is_locked = is_locked or (lambda: False)
        self.rotation_enabled = rotation_enabled
        self.throttle_seconds = throttle_seconds
        self._clock = clock
        self._armed_id: Optional[int] = None
        self._last_hover: Optional[float] = None
        self.hover_cell: Optional[int] = None

    @property
    def cell_count(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def armed_id(self) -> Optional[int]:
        return self._armed_id

    @property
    def dragged_piece(self) -> Optional[Piece]:
        if self._armed_id is None:
            return None
        return find_piece(self.pieces, self._armed_id)

    # PUBLIC_INTERFACE
    def reset(self, pieces: Sequence[Piece], grid_size: Optional[int] = None) -> None:
        """Replace the piece set (new game or restored save) and drop any armed piece."""
        if grid_size is not None:
            self.grid_size = grid_size
        self.pieces = [replace(p, is_dragging=False) for p in pieces]
        self._disarm()

    def _disarm(self) -> None:
        self._armed_id = None
        self._last_hover = None
        self.hover_cell = None

    def _set_dragging(self, piece_id: Optional[int]) -> None:
        self.pieces = [
            p if p.is_dragging == (p.id == piece_id) else replace(p, is_dragging=p.id == piece_id)
            for p in self.pieces
        ]

    def _commit(self, pieces: List[Piece]) -> None:
        self.pieces = ensure_grid_integrity(pieces, self.cell_count)
        self._disarm()
        if self.on_move is not None:
            self.on_move()
        fire_and_forget(self.play_sound, "place")
        if self.on_change is not None:
            self.on_change(self.pieces)

    # PUBLIC_INTERFACE
    def pick_up(self, piece_id: int) -> bool:
        """Arm a piece. Arming another piece while one is armed switches to it."""
        if self.is_locked():
            return False
        if find_piece(self.pieces, piece_id) is None:
            logger.debug("Pick-up of unknown piece %r ignored", piece_id)
            return False
        self._disarm()
        self._armed_id = piece_id
        self._set_dragging(piece_id)
        fire_and_forget(self.play_sound, "pickup")
        return True

    # PUBLIC_INTERFACE
    def hover(self, cell: int) -> bool:
        """Visual feedback while armed; throttled, never changes positions."""
        if self._armed_id is None or self.is_locked() or not _is_int(cell):
            return False
        now = self._clock()
        if self._last_hover is not None and now - self._last_hover < self.throttle_seconds:
            return False
        if cell == self.hover_cell:
            return False
        self._last_hover = now
        self.hover_cell = cell
        return True

    # PUBLIC_INTERFACE
    def drop(self, cell: int) -> bool:
        """Drop the armed piece on a cell, or on STAGING. Returns True when a move was counted."""
        if self._armed_id is None or self.is_locked() or not _is_int(cell):
            return False
        piece = self.dragged_piece
        if piece is None:
            logger.debug("Drop ignored: armed piece %r no longer exists", self._armed_id)
            return False
        if cell == STAGING:
            self._commit([p.moved_to(STAGING) if p.id == piece.id else p for p in self.pieces])
            return True
        if not 0 <= cell < self.cell_count:
            logger.debug("Drop on invalid cell %r ignored", cell)
            return False
        if cell == piece.position:
            self.cancel()
            return False
        self._commit(place_piece(self.pieces, piece.id, cell, self.cell_count))
        return True

    # PUBLIC_INTERFACE
    def click(self, piece_id: int) -> bool:
        """Click-to-swap for touch and non-drag input.

        - nothing armed: arm the clicked piece
        - clicked the armed piece: disarm it
        - clicked a staged piece: arm that one instead
        - clicked a piece on the board: drop the armed piece on its cell
        """
        if self.is_locked():
            return False
        clicked = find_piece(self.pieces, piece_id)
        if clicked is None:
            return False
        if self._armed_id is None or self.dragged_piece is None:
            return self.pick_up(piece_id)
        if piece_id == self._armed_id:
            return self.cancel()
        if is_staged(clicked):
            return self.pick_up(piece_id)
        return self.drop(clicked.position)

    # PUBLIC_INTERFACE
    def move(self, direction: str) -> bool:
        """Move the armed piece one cell; moves off the edge of the grid are ignored."""
        if self._armed_id is None or self.is_locked():
            return False
        delta = DIRECTIONS.get(direction)
        piece = self.dragged_piece
        if delta is None or piece is None or is_staged(piece):
            return False
        row, col = row_col(piece.position, self.grid_size)
        target_row = min(self.grid_size - 1, max(0, row + delta[0]))
        target_col = min(self.grid_size - 1, max(0, col + delta[1]))
        target = target_row * self.grid_size + target_col
        if target == piece.position:
            return False
        return self.drop(target)

    # PUBLIC_INTERFACE
    def cancel(self) -> bool:
        """Disarm without moving anything."""
        if self._armed_id is None:
            return False
        self._disarm()
        self._set_dragging(None)
        return True

    # PUBLIC_INTERFACE
    def rotate(self, piece_id: int, degrees: int = 90) -> bool:
        """Turn a piece by a multiple of 90 degrees; counts as a move."""
        if not self.rotation_enabled or self.is_locked() or not _is_int(degrees) or degrees % 90:
            return False
        if find_piece(self.pieces, piece_id) is None:
            return False
        self.pieces = [
            replace(p, rotation=(p.rotation + degrees) % 360) if p.id == piece_id else p for p in self.pieces
        ]
        if self.on_move is not None:
            self.on_move()
        if self.on_change is not None:
            self.on_change(self.pieces)
        return True
