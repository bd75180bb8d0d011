from __future__ import annotations

from enum import Enum
from typing import Optional

from .events import Notify, PlaySound, fire_and_forget, format_seconds, notification
from .pieces import DEFAULT_TIME_LIMIT, Difficulty, GameMode


# PUBLIC_INTERFACE
class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETE = "complete"


# PUBLIC_INTERFACE
class Session:
    """Timer and progress bookkeeping for one puzzle.

    Lifecycle: NOT_STARTED -> ACTIVE <-> PAUSED -> COMPLETE. COMPLETE is terminal
    until start() begins a new game; while complete, counters no longer change.

    Fields:
    - time_spent: seconds accumulated by tick() while ACTIVE
    - move_count: counted moves
    - correct_piece_count: projection of the piece set, refreshed after each mutation
    - difficulty / game_mode / time_limit: configuration of the current game
    """

    def __init__(
        self,
        difficulty: Difficulty = Difficulty.MEDIUM,
        game_mode: GameMode = "classic",
        time_limit: int = DEFAULT_TIME_LIMIT,
        notify: Optional[Notify] = None,
        play_sound: Optional[PlaySound] = None,
    ):
        self.difficulty = difficulty
        self.game_mode = game_mode
        self.time_limit = time_limit
        self.notify = notify
        self.play_sound = play_sound
        self.state = SessionState.NOT_STARTED
        self.time_spent = 0
        self.move_count = 0
        self.correct_piece_count = 0

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def is_paused(self) -> bool:
        return self.state == SessionState.PAUSED

    @property
    def is_complete(self) -> bool:
        return self.state == SessionState.COMPLETE

    @property
    def time_limit_seconds(self) -> Optional[int]:
        return self.time_limit if self.game_mode == "timed" else None

    @property
    def time_remaining(self) -> Optional[int]:
        if self.time_limit_seconds is None:
            return None
        return max(0, self.time_limit_seconds - self.time_spent)

    @property
    def formatted_time(self) -> str:
        return format_seconds(self.time_spent)

    # PUBLIC_INTERFACE
    def start(
        self,
        difficulty: Optional[Difficulty] = None,
        game_mode: Optional[GameMode] = None,
        time_limit: Optional[int] = None,
    ) -> None:
        """Reset every counter and become ACTIVE."""
        if difficulty is not None:
            self.difficulty = difficulty
        if game_mode is not None:
            self.game_mode = game_mode
        if time_limit is not None:
            self.time_limit = time_limit
        self.time_spent = 0
        self.move_count = 0
        self.correct_piece_count = 0
        self.state = SessionState.ACTIVE

    # PUBLIC_INTERFACE
    def resume(self, time_spent: int, move_count: int) -> None:
        """Continue a restored game from its stored counters."""
        self.time_spent = max(0, int(time_spent))
        self.move_count = max(0, int(move_count))
        self.state = SessionState.ACTIVE

    # PUBLIC_INTERFACE
    def tick(self) -> bool:
        """Advance the clock one second. Returns True when time ran out on this tick."""
        if not self.is_active:
            return False
        self.time_spent += 1
        limit = self.time_limit_seconds
        if limit is not None and self.time_spent >= limit:
            self.state = SessionState.PAUSED
            fire_and_forget(
                self.notify,
                notification(
                    "Time's up!",
                    f"You placed {self.correct_piece_count} pieces in {format_seconds(limit)}.",
                    "destructive",
                ),
            )
            return True
        return False

    # PUBLIC_INTERFACE
    def toggle_pause(self) -> SessionState:
        if self.state == SessionState.ACTIVE:
            self.state = SessionState.PAUSED
        elif self.state == SessionState.PAUSED:
            self.state = SessionState.ACTIVE
        return self.state

    def increment_moves(self) -> None:
        if self.is_complete:
            return
        self.move_count += 1

    def update_correct_pieces(self, count: int) -> None:
        if self.is_complete:
            return
        self.correct_piece_count = count

    # PUBLIC_INTERFACE
    def check_completion(self, total_pieces: int, correct_count: int) -> bool:
        """Transition to COMPLETE when every piece is correct.

        Returns True only on the call that performs the transition.
        """
        if self.is_complete or total_pieces <= 0 or correct_count != total_pieces:
            return False
        self.mark_completed(correct_count)
        fire_and_forget(self.play_sound, "complete")
        fire_and_forget(
            self.notify,
            notification(
                "Puzzle Complete!",
                f"Congratulations! You solved it in {self.move_count} moves and {self.formatted_time}.",
            ),
        )
        return True

    def mark_completed(self, correct_count: int) -> None:
        """Enter COMPLETE without announcing it (restored finished games)."""
        self.correct_piece_count = correct_count
        self.state = SessionState.COMPLETE

    def change_difficulty(self, difficulty: Difficulty) -> None:
        """Record the difficulty for the next start(); the running game is untouched."""
        self.difficulty = difficulty
