"""
Cancellable interval timers.

The session tick and the hint tick are owned by whoever starts a game; each
start returns handles the owner cancels when the game ends, pauses or is
replaced. Two schedulers are provided: one on top of an asyncio event loop and
one that only advances when told to, for headless drivers and tests.
"""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Protocol

Callback = Callable[[], None]


class TimerHandle(Protocol):
    cancelled: bool

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    # PUBLIC_INTERFACE
    def every(self, seconds: float, callback: Callback) -> TimerHandle:
        """Run callback every `seconds` until the returned handle is cancelled."""


class _AsyncioInterval:
    def __init__(self, loop: asyncio.AbstractEventLoop, seconds: float, callback: Callback):
        self._loop = loop
        self._seconds = seconds
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self.cancelled = False
        self._schedule()

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._seconds, self._fire)

    def _fire(self) -> None:
        if self.cancelled:
            return
        self._callback()
        if not self.cancelled:
            self._schedule()

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


# PUBLIC_INTERFACE
class AsyncioScheduler:
    """Interval timers driven by an asyncio event loop's call_later.

    Without an explicit loop the running loop is used, so every() must then be
    called from inside a coroutine. Synchronous callers pass loop= (and run it
    themselves) or use ManualScheduler.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise RuntimeError(
                "AsyncioScheduler needs a running event loop; pass loop= or use ManualScheduler."
            ) from exc

    def every(self, seconds: float, callback: Callback) -> _AsyncioInterval:
        return _AsyncioInterval(self.loop, seconds, callback)


class _ManualInterval:
    def __init__(self, seconds: float, callback: Callback, now: float):
        self.seconds = seconds
        self.callback = callback
        self.due = now + seconds
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


# PUBLIC_INTERFACE
class ManualScheduler:
    """Scheduler whose clock only moves through advance()."""

    def __init__(self):
        self.now = 0.0
        self._timers: List[_ManualInterval] = []

    def every(self, seconds: float, callback: Callback) -> _ManualInterval:
        timer = _ManualInterval(seconds, callback, self.now)
        self._timers.append(timer)
        return timer

    @property
    def active(self) -> List[_ManualInterval]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks in time order."""
        target = self.now + seconds
        while True:
            pending = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not pending:
                break
            timer = min(pending, key=lambda t: t.due)
            self.now = timer.due
            timer.due += timer.seconds
            timer.callback()
        self.now = target
        self._timers = self.active
