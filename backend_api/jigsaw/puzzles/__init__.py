"""
Jigsaw puzzle engine.

Exports:
- Piece, Difficulty and PuzzleSettings, the piece/grid model
- grid integrity helpers (placement, reconciliation, trapped pieces, stacking order)
- InteractionController, the only writer of piece positions
- select_hints and HintBudget
- Session and SessionState
- initialize_pieces for dealing new puzzles
- RuleRegistry and get_rule for per-mode completion rules
- AsyncioScheduler and ManualScheduler for session and hint timers

These modules are framework-agnostic: nothing here imports Django, so they can
be driven by the app layer, a management command or tests alike.
"""

from .pieces import STAGING, Difficulty, Piece, PuzzleSettings, cell_of, is_correct, is_staged
from .grid import (
    PieceAnnotations,
    annotate,
    build_grid,
    ensure_grid_integrity,
    find_trapped,
    place_piece,
    sort_for_rendering,
    validate_puzzle_state,
)
from .interaction import InteractionController
from .hints import HintBudget, select_hints
from .session import Session, SessionState
from .shuffle import create_pieces, initialize_pieces
from .rules import RuleRegistry, get_rule
from .timers import AsyncioScheduler, ManualScheduler

__all__ = [
    "STAGING",
    "Difficulty",
    "Piece",
    "PuzzleSettings",
    "cell_of",
    "is_correct",
    "is_staged",
    "PieceAnnotations",
    "annotate",
    "build_grid",
    "ensure_grid_integrity",
    "find_trapped",
    "place_piece",
    "sort_for_rendering",
    "validate_puzzle_state",
    "InteractionController",
    "HintBudget",
    "select_hints",
    "Session",
    "SessionState",
    "create_pieces",
    "initialize_pieces",
    "RuleRegistry",
    "get_rule",
    "AsyncioScheduler",
    "ManualScheduler",
]
