"""
Scrobble deadline timing.

ListenBrainz guideline: a listen counts once the track played for half its
length or 240s, whichever comes first. Tracks of 40s or less must play all but
the last second. Everything is scaled by the inverse of the playback speed.
"""

import logging
import time
from typing import Callable

log = logging.getLogger("scheduler")

MAX_THRESHOLD = 240.0
SHORT_TRACK = 40.0
# mpv has been loading for an entire year if this ever fires
GUARD_SECONDS = 31_536_000


class GuardTimerExpired(RuntimeError):
    """The event loop outlived its liveness guard; the process state is bogus."""


def threshold(duration: float, speed: float = 1.0) -> float:
    if speed <= 0:
        raise ValueError(f"Playback speed must be positive, got {speed!r}")
    if duration <= SHORT_TRACK:
        base = duration - 1.0
    else:
        base = min(MAX_THRESHOLD, duration / 2.0)
    return base / speed


class DeadlineScheduler:
    """Holds at most one pending scrobble timer on a monotonic clock.

    The loop asks timeout() how long it may block and calls run_due() after
    every wake-up; a due timer fires its callback exactly once and is dropped.
    """

    def __init__(self, on_deadline: Callable[[], None],
                 clock: Callable[[], float] = time.monotonic):
        self.on_deadline = on_deadline
        self.clock = clock
        self.deadline: float | None = None
        self.guard_deadline = clock() + GUARD_SECONDS

    @property
    def armed(self) -> bool:
        return self.deadline is not None

    def arm(self, deadline: float) -> None:
        if self.deadline is not None:
            log.debug("Replacing pending deadline")
        self.deadline = deadline
        log.debug("Deadline armed in %.1fs", deadline - self.clock())

    def cancel(self) -> None:
        self.deadline = None

    def reschedule(self, deadline: float) -> None:
        self.cancel()
        self.arm(deadline)

    def timeout(self, now: float | None = None) -> float:
        """Seconds the loop may sleep before run_due() has work (never negative)."""
        now = self.clock() if now is None else now
        until = self.guard_deadline if self.deadline is None else min(self.deadline, self.guard_deadline)
        return max(0.0, until - now)

    def run_due(self, now: float | None = None) -> bool:
        now = self.clock() if now is None else now
        if now >= self.guard_deadline:
            raise GuardTimerExpired(
                "Something has gone horribly wrong, somehow mpv has been "
                "loading for an entire year"
            )
        if self.deadline is None or now < self.deadline:
            return False
        # Drop before firing so the callback may arm a fresh timer
        self.deadline = None
        self.on_deadline()
        return True
