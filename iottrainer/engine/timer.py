from __future__ import annotations

"""Poll-driven one-second tick scheduler with explicit cancellation.

The host loop calls `poll()`; every interval that has elapsed since the
last fired tick invokes the callback once, in order. Nothing runs in the
background.
"""

import time
from typing import Callable, Optional


class CancelToken:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class TickScheduler:
    def __init__(
        self,
        on_tick: Callable[[], None],
        *,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        token: Optional[CancelToken] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.on_tick = on_tick
        self.interval = float(interval)
        self.clock = clock
        self.token = token if token is not None else CancelToken()
        self._next_due: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._next_due is not None and not self.token.cancelled

    def start(self) -> None:
        if self.token.cancelled:
            return
        self._next_due = self.clock() + self.interval

    def stop(self) -> None:
        self._next_due = None

    def cancel(self) -> None:
        self.token.cancel()
        self._next_due = None

    def poll(self, now: Optional[float] = None) -> int:
        """Fire all due ticks; return how many fired."""
        if not self.running:
            return 0
        now = self.clock() if now is None else now
        fired = 0
        while self._next_due is not None and self._next_due <= now:
            if self.token.cancelled:
                break
            self.on_tick()
            fired += 1
            if self._next_due is not None:
                self._next_due += self.interval
        return fired

    def run(self, duration: float, sleep: Callable[[float], None] = time.sleep) -> int:
        """Blocking loop for hosts without their own event loop."""
        if not self.running:
            self.start()
        end = self.clock() + duration
        fired = 0
        while self.running and self.clock() < end:
            fired += self.poll()
            sleep(min(self.interval / 4, max(0.0, end - self.clock())))
        return fired
