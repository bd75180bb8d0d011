from __future__ import annotations

from django.db import models


# PUBLIC_INTERFACE
class TimeStampedModel(models.Model):
    """Abstract base model providing created/updated timestamps.

    Notes:
        Keep this abstract model free of any logic that would access the Django
        app registry or execute queries at module import time.
    """
    created_at = models.DateTimeField(auto_now_add=True, help_text="Time when the record was created.")
    updated_at = models.DateTimeField(auto_now=True, help_text="Time when the record was last updated.")

    class Meta:
        abstract = True


# PUBLIC_INTERFACE
class SavedPuzzle(TimeStampedModel):
    """One saved puzzle session, stored as the codec's record.

    Fields:
    - record_id: the SavedState id; saving again with the same id replaces the record
    - name: player-facing name of the save
    - version: schema version the payload was written with
    - payload: the full SavedState record as produced by jigsaw.saves.encode_saved_state

    The payload is kept verbatim and only interpreted by the codec, so a
    corrupted payload is still listed (and reported) instead of vanishing.
    """
    record_id = models.CharField(max_length=64, unique=True, db_index=True, help_text="SavedState id.")
    name = models.CharField(max_length=128, blank=True, default="", help_text="Display name of the save.")
    version = models.PositiveSmallIntegerField(default=1, help_text="Schema version of the payload.")
    payload = models.JSONField(help_text="Serialized SavedState record.")

    class Meta:
        ordering = ["-updated_at"]
        verbose_name = "Saved Puzzle"
        verbose_name_plural = "Saved Puzzles"

    def __str__(self) -> str:  # pragma: no cover
        return f"Saved puzzle {self.record_id} - {self.name}"
