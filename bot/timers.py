"""
bot/timers.py – per-connection timer scope

Every delayed or repeating behavior (auth delay, chat loop, anti-afk ticks,
circle-walk) is scheduled through the :class:`TimerScope` of the connection
it acts on.  When that connection ends the scope is closed, which cancels
everything still pending and makes late callbacks no-ops.  A timer from a
discarded connection therefore never touches the new one.

Only ``loop.call_later`` is used, so any object with that method (the real
asyncio loop, or the fake loop in the tests) can drive a scope.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

log = logging.getLogger(__name__)


class Timer:
    """Handle for one scheduled callback; repeating if *interval* is set."""

    def __init__(
        self,
        scope: "TimerScope",
        delay: float,
        fn: Callable[..., Any],
        args: tuple,
        interval: float | None = None,
    ) -> None:
        self._scope = scope
        self._fn = fn
        self._args = args
        self._interval = interval
        self.cancelled = False
        self._handle: asyncio.TimerHandle = scope.loop.call_later(delay, self._fire)

    @property
    def repeating(self) -> bool:
        return self._interval is not None

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._handle.cancel()
        self._scope._forget(self)

    def _fire(self) -> None:
        if self.cancelled or self._scope.closed:
            return
        if self._interval is not None:
            # Re-arm first so a failing tick does not stop the loop
            self._handle = self._scope.loop.call_later(self._interval, self._fire)
        else:
            self._scope._forget(self)
        try:
            self._fn(*self._args)
        except Exception:
            log.exception(f"[timer:error] {getattr(self._fn, '__name__', self._fn)} failed")


class TimerScope:
    """Owns all timers of one connection."""

    def __init__(self, loop: asyncio.AbstractEventLoop, name: str = "") -> None:
        self.loop = loop
        self.name = name
        self.closed = False
        self._timers: set[Timer] = set()

    @property
    def active(self) -> int:
        return len(self._timers)

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> Timer | None:
        """Run *fn* once after *delay* seconds."""
        if self.closed:
            log.debug(f"[timer:refused] scope {self.name!r} is closed")
            return None
        timer = Timer(self, delay, fn, args)
        self._timers.add(timer)
        return timer

    def call_every(self, interval: float, fn: Callable[..., Any], *args: Any) -> Timer | None:
        """Run *fn* every *interval* seconds, first run after one interval."""
        if interval <= 0:
            raise ValueError(f"interval must be greater than zero, got {interval}")
        if self.closed:
            log.debug(f"[timer:refused] scope {self.name!r} is closed")
            return None
        timer = Timer(self, interval, fn, args, interval=interval)
        self._timers.add(timer)
        return timer

    def cancel_all(self) -> None:
        for timer in list(self._timers):
            timer.cancel()

    def close(self) -> None:
        if self.closed:
            return
        pending = len(self._timers)
        self.cancel_all()
        self.closed = True
        if pending:
            log.debug(f"[timer:close] scope {self.name!r} cancelled {pending} timer(s)")

    def _forget(self, timer: Timer) -> None:
        self._timers.discard(timer)
