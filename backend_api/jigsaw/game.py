"""
PuzzleGame: one playable puzzle with its collaborators.

Owns the piece set (through the interaction controller), the session, the
hint and tick timers, and the image loading state. Talks to the outside only
through the callbacks it is given: play_sound(name), notify(payload) and a
SavedPuzzleStore.
"""
from __future__ import annotations

import logging
import random
from dataclasses import replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Tuple

from .conf import get_setting
from .puzzles.events import Notify, PlaySound, fire_and_forget, format_seconds, notification
from .puzzles.grid import PieceAnnotations, annotate, ensure_grid_integrity, sort_for_rendering
from .puzzles.hints import HintBudget, select_hints
from .puzzles.interaction import InteractionController
from .puzzles.pieces import Difficulty, Piece, PuzzleSettings, board_pieces, staged_pieces
from .puzzles.rules import get_rule
from .puzzles.session import Session, SessionState
from .puzzles.shuffle import initialize_pieces
from .puzzles.timers import AsyncioScheduler, Scheduler, TimerHandle
from .saves import CorruptSaveError, decode_saved_state, encode_saved_state
from .storage import ModelSavedPuzzleStore, SavedPuzzleStore, StorageError

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class ImageState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _default_settings() -> PuzzleSettings:
    return PuzzleSettings(
        difficulty=Difficulty(get_setting("DEFAULT_DIFFICULTY")),
        time_limit=get_setting("DEFAULT_TIME_LIMIT"),
    )


# PUBLIC_INTERFACE
class PuzzleGame:
    """A jigsaw puzzle session wired to its timers and collaborators.

    Parameters:
        settings: player configuration; defaults come from settings.JIGSAW.
        image_ref: opaque reference of the puzzle image.
        scheduler: source of cancellable interval timers. Defaults to the running
            asyncio loop; synchronous callers pass a ManualScheduler or a loop-bound
            AsyncioScheduler.
        store: persistence collaborator for saved sessions.
        play_sound: fire-and-forget sound callback.
        notify: fire-and-forget notification callback.
        rng: random source for shuffling and hint selection.
    """

    def __init__(
        self,
        settings: Optional[PuzzleSettings] = None,
        image_ref: str = "",
        scheduler: Optional[Scheduler] = None,
        store: Optional[SavedPuzzleStore] = None,
        play_sound: Optional[PlaySound] = None,
        notify: Optional[Notify] = None,
        rng=random,
    ):
        self.settings = settings or _default_settings()
        self.image_ref = image_ref
        self.image_state = ImageState.READY if image_ref else ImageState.IDLE
        self.scheduler = scheduler or AsyncioScheduler()
        self.store = store or ModelSavedPuzzleStore()
        self.play_sound = play_sound
        self.notify = notify
        self.rng = rng
        self.rule = get_rule(self.settings)
        self.session = self._new_session()
        self.hints = HintBudget(get_setting("HINTS_PER_SESSION"))
        self.hinted: FrozenSet[int] = frozenset()
        self._timers: List[TimerHandle] = []
        self.controller = InteractionController(
            grid_size=self.settings.grid_size,
            play_sound=play_sound,
            on_move=lambda: self.session.increment_moves(),
            on_change=self._on_pieces_changed,
            is_locked=lambda: self.session.state != SessionState.ACTIVE,
            rotation_enabled=self.settings.rotation_required,
            throttle_seconds=get_setting("MOVE_THROTTLE_SECONDS"),
        )

    def _new_session(self) -> Session:
        return Session(
            difficulty=self.settings.difficulty,
            game_mode=self.settings.game_mode,
            time_limit=self.settings.time_limit,
            notify=self.notify,
            play_sound=self.play_sound,
        )

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        fire_and_forget(self.notify, notification(title, description, variant))

    @property
    def pieces(self) -> List[Piece]:
        return self.controller.pieces

    @property
    def grid_size(self) -> int:
        return self.controller.grid_size

    @property
    def board_pieces(self) -> List[Piece]:
        return board_pieces(self.pieces)

    @property
    def staged_pieces(self) -> List[Piece]:
        return staged_pieces(self.pieces)

    @property
    def time_remaining(self) -> Optional[str]:
        remaining = self.session.time_remaining
        return None if remaining is None else format_seconds(remaining)

    # Timers

    def _new_timers(self) -> List[TimerHandle]:
        # Created before any state changes, so a scheduler failure leaves the game as it was.
        return [
            self.scheduler.every(get_setting("TICK_SECONDS"), self._on_tick),
            self.scheduler.every(get_setting("HINT_INTERVAL_SECONDS"), self._on_hint_tick),
        ]

    def _start_timers(self, timers: Optional[List[TimerHandle]] = None) -> List[TimerHandle]:
        if timers is None:
            timers = self._new_timers()
        self._cancel_timers()
        self._timers = list(timers)
        return list(self._timers)

    def _cancel_timers(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    def _on_tick(self) -> None:
        if self.session.tick():
            self._cancel_timers()

    def _on_hint_tick(self) -> None:
        if not self.session.is_active:
            return
        self.hinted = select_hints(
            self.pieces,
            self.grid_size,
            limit=get_setting("HINT_LIMIT"),
            rng=self.rng,
            rotation_required=self.rule.rotation_required,
        )

    def _on_pieces_changed(self, pieces: List[Piece]) -> None:
        correct = self.rule.count_correct(pieces)
        self.session.update_correct_pieces(correct)
        if self.session.check_completion(len(pieces), correct):
            self._cancel_timers()
            self.hinted = frozenset()

    # Lifecycle

    # PUBLIC_INTERFACE
    def start_new_puzzle(self, difficulty: Optional[Difficulty] = None) -> List[TimerHandle]:
        """Deal a fresh puzzle and start its timers.

        Any running timers are replaced. Returns the new timer handles;
        dispose() cancels them. When the scheduler cannot create timers (e.g.
        AsyncioScheduler outside an event loop) the error propagates and the
        current puzzle is left untouched.
        """
        timers = self._new_timers()
        if difficulty is not None:
            self.settings = replace(self.settings, difficulty=difficulty)
        elif self.session.difficulty != self.settings.difficulty:
            self.settings = replace(self.settings, difficulty=self.session.difficulty)
        self.rule = get_rule(self.settings)
        grid_size = self.settings.grid_size
        pieces = initialize_pieces(grid_size, rotation=self.settings.rotation_required, rng=self.rng)
        self.controller.rotation_enabled = self.settings.rotation_required
        self.controller.reset(ensure_grid_integrity(pieces, grid_size * grid_size), grid_size)
        self.session = self._new_session()
        self.session.start()
        self.session.update_correct_pieces(self.rule.count_correct(self.pieces))
        self.hints.reset()
        self.hinted = frozenset()
        return self._start_timers(timers)

    # PUBLIC_INTERFACE
    def toggle_pause(self) -> SessionState:
        """Pause or resume; pausing cancels the timers, resuming recreates them."""
        timers = self._new_timers() if self.session.is_paused else None
        state = self.session.toggle_pause()
        if state == SessionState.PAUSED:
            self._cancel_timers()
        elif timers is not None:
            self._start_timers(timers)
        return state

    # PUBLIC_INTERFACE
    def change_difficulty(self, difficulty: Difficulty, restart: bool = True) -> None:
        """Switch presets. Restarting discards the current pieces and deals a new puzzle."""
        self.session.change_difficulty(difficulty)
        if restart:
            self.start_new_puzzle(difficulty)

    # PUBLIC_INTERFACE
    def configure(self, **changes: Any) -> PuzzleSettings:
        """Update settings; mode, rotation and time limit apply from the next new puzzle."""
        self.settings = replace(self.settings, **changes)
        if "difficulty" in changes:
            self.session.change_difficulty(self.settings.difficulty)
        return self.settings

    # PUBLIC_INTERFACE
    def dispose(self) -> None:
        """Tear down timers, e.g. when the view showing the puzzle goes away."""
        self._cancel_timers()

    # Image

    # PUBLIC_INTERFACE
    async def load_image(self, image_ref: str, loader: Callable[[str], Awaitable[Any]]) -> bool:
        """Await the image, then deal a new puzzle for it.

        On failure the player is told to try another image and the current
        puzzle, image reference and timers stay exactly as they were.
        """
        previous_ref, previous_state = self.image_ref, self.image_state
        self.image_state = ImageState.LOADING
        try:
            await loader(image_ref)
        except Exception:
            logger.warning("Image %r failed to load", image_ref, exc_info=True)
            self.image_ref = previous_ref
            self.image_state = ImageState.ERROR
            self._notify("Image failed to load", "Please try another image.", "destructive")
            return False
        try:
            self.start_new_puzzle()
        except RuntimeError:
            self.image_state = previous_state
            raise
        self.image_ref = image_ref
        self.image_state = ImageState.READY
        return True

    # Hints and rendering

    # PUBLIC_INTERFACE
    def request_hint(self) -> FrozenSet[int]:
        """Player-requested hint, limited per session. Empty when refused."""
        if not self.session.is_active or not self.hints.consume():
            return frozenset()
        self._on_hint_tick()
        return self.hinted

    # PUBLIC_INTERFACE
    def render(self) -> List[Tuple[Piece, PieceAnnotations]]:
        """Pieces in draw order with their per-frame render flags."""
        annotations: Dict[int, PieceAnnotations] = annotate(
            self.pieces,
            selected_id=self.controller.armed_id,
            hinted=self.hinted,
            rotation_required=self.rule.rotation_required,
        )
        return [(p, annotations[p.id]) for p in sort_for_rendering(self.pieces, annotations)]

    # Persistence

    # PUBLIC_INTERFACE
    def save(self, name: str = "", record_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Snapshot the game into the store. Returns the record, or None when encoding or the store failed."""
        try:
            record = encode_saved_state(
                self.session, self.pieces, self.settings, image_ref=self.image_ref, name=name, record_id=record_id
            )
        except CorruptSaveError as exc:
            logger.warning("Puzzle snapshot %r is not a valid record: %s", exc.record_id, exc.detail)
            self._notify("Save failed", "This puzzle could not be saved.", "destructive")
            return None
        try:
            self.store.save(record)
        except StorageError:
            logger.exception("Saving puzzle %s failed", record["id"])
            self._notify("Save failed", "Your puzzle could not be saved. Storage might be full.", "destructive")
            return None
        return record

    # PUBLIC_INTERFACE
    def list_saves(self) -> List[Dict[str, Any]]:
        """Loadable records from the store; corrupted ones are reported and left out."""
        try:
            records = self.store.list()
        except StorageError:
            logger.exception("Listing saved puzzles failed")
            self._notify("Could not read saves", "Saved puzzles are unavailable right now.", "destructive")
            return []
        valid: List[Dict[str, Any]] = []
        corrupt = 0
        for record in records:
            try:
                decode_saved_state(record)
            except CorruptSaveError as exc:
                corrupt += 1
                logger.warning("Skipping corrupted save %r: %s", exc.record_id, exc.detail)
                continue
            valid.append(record)
        if corrupt:
            self._notify(
                "Some saves could not be read",
                f"{corrupt} corrupted saved puzzle(s) were skipped.",
                "destructive",
            )
        return valid

    # PUBLIC_INTERFACE
    def load(self, record: Any) -> bool:
        """Restore a record.

        Nothing changes when the record is corrupted, or when the scheduler
        cannot start timers (its error propagates).
        """
        try:
            loaded = decode_saved_state(record)
        except CorruptSaveError as exc:
            logger.warning("Refusing to load save %r: %s", exc.record_id, exc.detail)
            self._notify("Could not load puzzle", "This saved puzzle is damaged and cannot be restored.", "destructive")
            return False
        rule = get_rule(loaded.settings)
        correct = rule.count_correct(loaded.pieces)
        completed = correct == len(loaded.pieces)
        timers = None if completed else self._new_timers()

        self._cancel_timers()
        self.settings = loaded.settings
        self.rule = rule
        self.image_ref = loaded.image_ref
        self.image_state = ImageState.READY
        self.controller.rotation_enabled = self.settings.rotation_required
        self.controller.reset(loaded.pieces, self.settings.grid_size)
        self.session = loaded.session
        self.session.notify = self.notify
        self.session.play_sound = self.play_sound
        self.hints.reset()
        self.hinted = frozenset()
        if completed:
            self.session.mark_completed(correct)
        else:
            self.session.update_correct_pieces(correct)
            self._start_timers(timers)
        return True

    # PUBLIC_INTERFACE
    def delete_save(self, record_id: str) -> bool:
        try:
            return self.store.delete(record_id)
        except StorageError:
            logger.exception("Deleting puzzle %s failed", record_id)
            self._notify("Delete failed", "The saved puzzle could not be deleted.", "destructive")
            return False
