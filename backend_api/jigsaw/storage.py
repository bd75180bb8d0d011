from __future__ import annotations

from typing import Any, Dict, List, Protocol

from django.db import DatabaseError, transaction

from .models import SavedPuzzle


class StorageError(Exception):
    """The persistence backend failed to read or write saved puzzles."""


class SavedPuzzleStore(Protocol):
    """Persistence collaborator: the sole source of truth for saved sessions."""

    # PUBLIC_INTERFACE
    def list(self) -> List[Any]:
        """Return every stored record, newest first, without interpreting it."""

    # PUBLIC_INTERFACE
    def save(self, record: Dict[str, Any]) -> None:
        """Store a record, replacing any record with the same id."""

    # PUBLIC_INTERFACE
    def delete(self, record_id: str) -> bool:
        """Remove a record; return False when no such record exists."""


# PUBLIC_INTERFACE
class ModelSavedPuzzleStore:
    """SavedPuzzleStore backed by the SavedPuzzle model."""

    def list(self) -> List[Any]:
        try:
            return [row.payload for row in SavedPuzzle.objects.all()]
        except DatabaseError as exc:
            raise StorageError("Could not read saved puzzles.") from exc

    def save(self, record: Dict[str, Any]) -> None:
        try:
            with transaction.atomic():
                SavedPuzzle.objects.update_or_create(
                    record_id=record["id"],
                    defaults={
                        "name": record.get("name") or "",
                        "version": record["version"],
                        "payload": record,
                    },
                )
        except DatabaseError as exc:
            raise StorageError(f"Could not save puzzle {record.get('id')!r}.") from exc

    def delete(self, record_id: str) -> bool:
        try:
            deleted, _ = SavedPuzzle.objects.filter(record_id=record_id).delete()
        except DatabaseError as exc:
            raise StorageError(f"Could not delete puzzle {record_id!r}.") from exc
        return deleted > 0
