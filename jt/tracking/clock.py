# jt/tracking/clock.py

"""
Active-duration bookkeeping across pause/resume cycles.
"""

import time
from typing import Callable, Optional


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class SessionClock:
    """
    Elapsed active seconds, summed over completed intervals plus the open one.

    Parameters
    ----------
    now_ms
        Millisecond clock used when a method is called without `now`.
    """
    def __init__(self, now_ms: Callable[[], int] = wall_clock_ms) -> None:
        self._now_ms = now_ms
        self.is_running = False
        self.current_interval_start: Optional[int] = None
        self.accumulated_seconds = 0

    def start(self, now: Optional[int] = None) -> None:
        if self.is_running:
            return
        self.current_interval_start = self._now_ms() if now is None else now
        self.is_running = True

    def stop(self, now: Optional[int] = None) -> None:
        if not self.is_running:
            return
        now = self._now_ms() if now is None else now
        self.accumulated_seconds += self._interval_seconds(now)
        self.is_running = False
        self.current_interval_start = None

    def elapsed_seconds(self, now: Optional[int] = None) -> int:
        if not self.is_running:
            return self.accumulated_seconds
        now = self._now_ms() if now is None else now
        return self.accumulated_seconds + self._interval_seconds(now)

    def _interval_seconds(self, now: int) -> int:
        # a clock that stepped backwards contributes nothing
        return max(0, (now - self.current_interval_start) // 1000)
