"""
Save/load codec.

The only place SavedState records are built or parsed. Records are plain
JSON-compatible dicts; the persistence collaborator stores them verbatim.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from django.utils import timezone
from rest_framework import serializers

from .puzzles.grid import ensure_grid_integrity
from .puzzles.pieces import Difficulty, Piece, PuzzleSettings
from .puzzles.session import Session
from .serializers import MAX_NAME_LENGTH, SAVE_VERSION, SavedStateSerializer

logger = logging.getLogger(__name__)


class CorruptSaveError(ValueError):
    """A saved record could not be parsed or failed validation."""

    def __init__(self, message: str, detail: Any = None, record_id: Optional[str] = None):
        super().__init__(message)
        self.detail = detail
        self.record_id = record_id


# PUBLIC_INTERFACE
@dataclass
class LoadedPuzzle:
    """Everything restored from one record."""

    record_id: str
    name: str
    timestamp: datetime
    version: int
    image_ref: str
    pieces: List[Piece]
    settings: PuzzleSettings
    session: Session


def _piece_to_record(piece: Piece) -> Dict[str, int]:
    return {
        "id": piece.id,
        "homePosition": piece.home_position,
        "position": piece.position,
        "rotation": piece.rotation,
    }


# PUBLIC_INTERFACE
def encode_saved_state(
    session: Session,
    pieces: Sequence[Piece],
    settings: PuzzleSettings,
    image_ref: str = "",
    name: str = "",
    record_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Snapshot a session and its pieces as a SavedState record.

    The record is tagged with SAVE_VERSION and a fresh timestamp. Passing the
    record_id of an earlier save makes the store replace it. Names longer than
    MAX_NAME_LENGTH are shortened. The record is validated before it is
    returned, so anything encode_saved_state hands out decodes again.

    Raises:
        CorruptSaveError: the snapshot itself does not form a valid record,
            e.g. an over-long record_id or a piece set that does not fill the grid.
    """
    record = {
        "id": record_id or uuid.uuid4().hex,
        "name": (name or "")[:MAX_NAME_LENGTH],
        "timestamp": now or timezone.now(),
        "difficulty": settings.difficulty.value,
        "pieces": [_piece_to_record(p) for p in pieces],
        "moveCount": session.move_count,
        "timeSpent": session.time_spent,
        "imageRef": image_ref,
        "version": SAVE_VERSION,
        "gameMode": settings.game_mode,
        "rotationEnabled": settings.rotation_enabled,
        "timeLimit": settings.time_limit,
        "pieceShape": settings.piece_shape,
        "visualTheme": settings.visual_theme,
    }
    # Round-trip through JSON so the record holds only plain types.
    data = json.loads(json.dumps(SavedStateSerializer(record).data))
    _validated(data)
    return data


def _parse(record: Any) -> Any:
    if isinstance(record, (bytes, bytearray)):
        try:
            record = record.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptSaveError("Saved record is not valid UTF-8.", detail=str(exc)) from exc
    if isinstance(record, str):
        try:
            return json.loads(record)
        except ValueError as exc:
            raise CorruptSaveError("Saved record is not valid JSON.", detail=str(exc)) from exc
    return record


def _validated(data: Any) -> Dict[str, Any]:
    record_id = data.get("id") if isinstance(data, dict) else None
    serializer = SavedStateSerializer(data=data)
    try:
        serializer.is_valid(raise_exception=True)
    except serializers.ValidationError as exc:
        raise CorruptSaveError(
            f"Saved record {record_id!r} is invalid.", detail=exc.detail, record_id=record_id
        ) from exc
    return serializer.validated_data


# PUBLIC_INTERFACE
def decode_saved_state(record: Any) -> LoadedPuzzle:
    """Validate a record and rebuild pieces, settings and session from it.

    The grid is re-derived through the reconciliation pass rather than trusted,
    so conflicting or out-of-range positions come back staged.

    Raises:
        CorruptSaveError: the record is not parsable or fails validation.
    """
    vd = _validated(_parse(record))

    difficulty = Difficulty(vd["difficulty"])
    settings = PuzzleSettings(
        game_mode=vd["gameMode"],
        difficulty=difficulty,
        rotation_enabled=vd["rotationEnabled"],
        time_limit=vd["timeLimit"],
        piece_shape=vd["pieceShape"],
        visual_theme=vd["visualTheme"],
    )
    pieces = [
        Piece(id=p["id"], home_position=p["homePosition"], position=p["position"], rotation=p["rotation"])
        for p in vd["pieces"]
    ]
    pieces = ensure_grid_integrity(pieces, difficulty.piece_count)

    session = Session(difficulty=difficulty, game_mode=settings.game_mode, time_limit=settings.time_limit)
    session.resume(time_spent=vd["timeSpent"], move_count=vd["moveCount"])

    return LoadedPuzzle(
        record_id=vd["id"],
        name=vd["name"],
        timestamp=vd["timestamp"],
        version=vd["version"],
        image_ref=vd["imageRef"],
        pieces=pieces,
        settings=settings,
        session=session,
    )
