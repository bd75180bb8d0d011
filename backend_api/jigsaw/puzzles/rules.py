from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Protocol, Type

from .pieces import Piece, PuzzleSettings, is_correct


class CompletionRule(Protocol):
    """Protocol for deciding when a piece, and so a puzzle, is solved."""

    rotation_required: bool

    # PUBLIC_INTERFACE
    def piece_correct(self, piece: Piece) -> bool:
        """Return True when the piece counts towards completion."""

    # PUBLIC_INTERFACE
    def count_correct(self, pieces: Iterable[Piece]) -> int:
        """Return how many pieces currently count towards completion."""


@dataclass
class PositionRule:
    """Classic and timed play: a piece is correct at its home slot."""

    rotation_required: bool = False

    # PUBLIC_INTERFACE
    def piece_correct(self, piece: Piece) -> bool:
        return is_correct(piece, self.rotation_required)

    # PUBLIC_INTERFACE
    def count_correct(self, pieces: Iterable[Piece]) -> int:
        return sum(1 for p in pieces if self.piece_correct(p))


@dataclass
class RotationRule(PositionRule):
    """Challenge play: home slot and zero rotation."""

    rotation_required: bool = True


# PUBLIC_INTERFACE
class RuleRegistry:
    """Registry mapping game modes to completion rule classes."""

    _registry: Dict[str, Type] = {
        "classic": PositionRule,
        "timed": PositionRule,
        "challenge": RotationRule,
    }

    @classmethod
    def get(cls, game_mode: str):
        """Return the rule class for a game mode, or raise KeyError."""
        key = (game_mode or "").strip().lower()
        if key not in cls._registry:
            raise KeyError(f"Unknown game mode: {game_mode!r}")
        return cls._registry[key]

    @classmethod
    def register(cls, game_mode: str, rule_cls) -> None:
        """Register or override the rule class for a game mode."""
        key = (game_mode or "").strip().lower()
        if not key:
            raise ValueError("game_mode must be a non-empty string")
        cls._registry[key] = rule_cls


# PUBLIC_INTERFACE
def get_rule(settings: PuzzleSettings) -> CompletionRule:
    """Instantiate the completion rule for the given settings.

    Rotation switched on in any mode upgrades the mode's rule to also require
    zero rotation.
    """
    rule = RuleRegistry.get(settings.game_mode)()
    if settings.rotation_required and not rule.rotation_required:
        return RotationRule()
    return rule
