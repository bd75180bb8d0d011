"""
Jigsaw app package initializer.

Re-exports the puzzle engine so callers can import from jigsaw directly, e.g.:

    from jigsaw import Difficulty, initialize_pieces

Django-bound modules (models, storage, saves, game) are imported explicitly by
their users so that importing this package never touches the app registry.
"""

# PUBLIC_INTERFACE
from .puzzles import (
    STAGING,
    Difficulty,
    Piece,
    PuzzleSettings,
    InteractionController,
    Session,
    SessionState,
    ensure_grid_integrity,
    initialize_pieces,
    select_hints,
    validate_puzzle_state,
)

__all__ = [
    "STAGING",
    "Difficulty",
    "Piece",
    "PuzzleSettings",
    "InteractionController",
    "Session",
    "SessionState",
    "ensure_grid_integrity",
    "initialize_pieces",
    "select_hints",
    "validate_puzzle_state",
]
