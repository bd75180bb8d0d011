from __future__ import annotations

import logging
from typing import Any, Dict

from rest_framework import serializers

from .puzzles.pieces import (
    DEFAULT_TIME_LIMIT,
    GAME_MODES,
    MAX_TIME_LIMIT,
    MIN_TIME_LIMIT,
    PIECE_SHAPES,
    ROTATIONS,
    VISUAL_THEMES,
    Difficulty,
)

logger = logging.getLogger(__name__)

SAVE_VERSION = 1
MAX_ID_LENGTH = 64
MAX_NAME_LENGTH = 128

# Optional keys that older or foreign records may lack or carry in an unknown form.
OPTIONAL_DEFAULTS: Dict[str, Any] = {
    "gameMode": "classic",
    "rotationEnabled": False,
    "timeLimit": DEFAULT_TIME_LIMIT,
    "pieceShape": "standard",
    "visualTheme": "light",
}


def _valid_optional(key: str, value: Any) -> bool:
    if key == "gameMode":
        return value in GAME_MODES
    if key == "pieceShape":
        return value in PIECE_SHAPES
    if key == "visualTheme":
        return value in VISUAL_THEMES
    if key == "rotationEnabled":
        return isinstance(value, bool)
    if key == "timeLimit":
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
    return True


# PUBLIC_INTERFACE
class PieceRecordSerializer(serializers.Serializer):
    """One piece inside a saved record."""

    id = serializers.IntegerField(min_value=0)
    homePosition = serializers.IntegerField(min_value=0)
    position = serializers.IntegerField(min_value=-1)
    rotation = serializers.ChoiceField(choices=list(ROTATIONS), required=False, default=0)

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if attrs["homePosition"] != attrs["id"]:
            raise serializers.ValidationError("homePosition must equal the piece id.")
        return attrs


# PUBLIC_INTERFACE
class SavedStateSerializer(serializers.Serializer):
    """Versioned snapshot of a puzzle session.

    Fields:
    - id, name, timestamp: record identity
    - difficulty: one of the Difficulty wire names (e.g. "4x4")
    - pieces: every piece of the puzzle, exactly gridSize² of them
    - moveCount, timeSpent: session counters
    - imageRef: opaque image reference
    - version: schema version, never newer than SAVE_VERSION
    - gameMode, rotationEnabled, timeLimit, pieceShape, visualTheme: optional;
      missing or unrecognised values fall back to defaults
    """

    id = serializers.CharField(max_length=MAX_ID_LENGTH)
    name = serializers.CharField(max_length=MAX_NAME_LENGTH, required=False, allow_blank=True, default="")
    timestamp = serializers.DateTimeField()
    difficulty = serializers.ChoiceField(choices=[d.value for d in Difficulty])
    pieces = PieceRecordSerializer(many=True)
    moveCount = serializers.IntegerField(min_value=0)
    timeSpent = serializers.IntegerField(min_value=0)
    imageRef = serializers.CharField(required=False, allow_blank=True, default="")
    version = serializers.IntegerField(min_value=1)
    gameMode = serializers.ChoiceField(choices=list(GAME_MODES), required=False, default="classic")
    rotationEnabled = serializers.BooleanField(required=False, default=False)
    timeLimit = serializers.IntegerField(required=False, default=DEFAULT_TIME_LIMIT)
    pieceShape = serializers.ChoiceField(choices=list(PIECE_SHAPES), required=False, default="standard")
    visualTheme = serializers.ChoiceField(choices=list(VISUAL_THEMES), required=False, default="light")

    def to_internal_value(self, data):
        if isinstance(data, dict):
            data = dict(data)
            for key, default in OPTIONAL_DEFAULTS.items():
                if key in data and (data[key] is None or not _valid_optional(key, data[key])):
                    logger.warning("Saved record has unusable %s=%r; using %r", key, data[key], default)
                    data[key] = default
        return super().to_internal_value(data)

    def validate_version(self, value: int) -> int:
        if value > SAVE_VERSION:
            raise serializers.ValidationError(
                f"Record version {value} is newer than supported version {SAVE_VERSION}."
            )
        return value

    def validate_timeLimit(self, value: int) -> int:
        return max(MIN_TIME_LIMIT, min(MAX_TIME_LIMIT, value))

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        expected = Difficulty(attrs["difficulty"]).piece_count
        ids = [p["id"] for p in attrs["pieces"]]
        if len(ids) != expected:
            raise serializers.ValidationError(
                {"pieces": f"Expected {expected} pieces for {attrs['difficulty']}, got {len(ids)}."}
            )
        if sorted(ids) != list(range(expected)):
            raise serializers.ValidationError({"pieces": "Piece ids must be unique and cover the whole grid."})
        return attrs
