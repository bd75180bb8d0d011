from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Literal, Optional, Tuple

STAGING = -1
ROTATIONS: Tuple[int, ...] = (0, 90, 180, 270)

GameMode = Literal["classic", "timed", "challenge"]
PieceShape = Literal["standard", "irregular"]
VisualTheme = Literal["light", "dark", "colorful"]

GAME_MODES: Tuple[str, ...] = ("classic", "timed", "challenge")
PIECE_SHAPES: Tuple[str, ...] = ("standard", "irregular")
VISUAL_THEMES: Tuple[str, ...] = ("light", "dark", "colorful")

MIN_TIME_LIMIT = 30
MAX_TIME_LIMIT = 600
DEFAULT_TIME_LIMIT = 300


# PUBLIC_INTERFACE
class Difficulty(str, Enum):
    """Fixed grid presets. The value is the wire name stored in saved records."""

    EASY = "3x3"
    MEDIUM = "4x4"
    HARD = "5x5"
    EXPERT = "6x6"

    @property
    def grid_size(self) -> int:
        return int(self.value.split("x", 1)[0])

    @property
    def piece_count(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def label(self) -> str:
        return f"{self.name.title()} ({self.grid_size}×{self.grid_size})"

    @classmethod
    def from_grid_size(cls, grid_size: int) -> "Difficulty":
        for difficulty in cls:
            if difficulty.grid_size == grid_size:
                return difficulty
        raise ValueError(f"No difficulty preset for grid size {grid_size!r}")


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Piece:
    """One jigsaw piece.

    Fields:
    - id: stable integer index, also the piece's home slot
    - home_position: fixed at creation, equals id
    - position: current grid cell, or STAGING (-1)
    - rotation: degrees, one of ROTATIONS
    - is_dragging: whether the piece is currently armed by the controller
    """

    id: int
    home_position: int
    position: int = STAGING
    rotation: int = 0
    is_dragging: bool = False

    def moved_to(self, position: int) -> "Piece":
        return replace(self, position=position, is_dragging=False)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PuzzleSettings:
    """Player-facing configuration. Cosmetic fields are carried but never interpreted."""

    game_mode: GameMode = "classic"
    difficulty: Difficulty = Difficulty.MEDIUM
    rotation_enabled: bool = False
    time_limit: int = DEFAULT_TIME_LIMIT
    piece_shape: PieceShape = "standard"
    visual_theme: VisualTheme = "light"

    def __post_init__(self):
        if self.game_mode not in GAME_MODES:
            raise ValueError(f"Unknown game mode: {self.game_mode!r}")
        # Challenge mode is always played with rotation.
        if self.game_mode == "challenge" and not self.rotation_enabled:
            object.__setattr__(self, "rotation_enabled", True)
        clamped = max(MIN_TIME_LIMIT, min(MAX_TIME_LIMIT, int(self.time_limit)))
        object.__setattr__(self, "time_limit", clamped)

    @property
    def rotation_required(self) -> bool:
        return self.rotation_enabled or self.game_mode == "challenge"

    @property
    def grid_size(self) -> int:
        return self.difficulty.grid_size


def is_staged(piece: Piece) -> bool:
    return piece.position == STAGING


def cell_of(piece: Piece) -> Optional[int]:
    """Return the grid cell the piece occupies, or None when staged."""
    return None if is_staged(piece) else piece.position


def is_correct(piece: Piece, rotation_required: bool = False) -> bool:
    """A piece is correct at its home slot (and unrotated, when rotation counts)."""
    if piece.position != piece.home_position:
        return False
    return piece.rotation == 0 if rotation_required else True


def row_col(index: int, grid_size: int) -> Tuple[int, int]:
    return index // grid_size, index % grid_size


def manhattan_distance(a: int, b: int, grid_size: int) -> int:
    ar, ac = row_col(a, grid_size)
    br, bc = row_col(b, grid_size)
    return abs(ar - br) + abs(ac - bc)


def board_pieces(pieces: Iterable[Piece]) -> List[Piece]:
    return [p for p in pieces if not is_staged(p)]


def staged_pieces(pieces: Iterable[Piece]) -> List[Piece]:
    return [p for p in pieces if is_staged(p)]


def find_piece(pieces: Iterable[Piece], piece_id: int) -> Optional[Piece]:
    for piece in pieces:
        if piece.id == piece_id:
            return piece
    return None
