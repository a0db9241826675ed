"""
Injectable wall clock and deferred-callback scheduler.

The inquiry engine never sleeps or starts timers. Anything that has to
happen "later" (a consultation being confirmed by the availability backend)
is registered with a ``Scheduler`` and fires when the host calls
``run_pending()``. Tests pair it with ``ManualClock`` and advance time
deterministically.

Usage:
    clock = ManualClock(datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc))
    scheduler = Scheduler(clock)
    scheduler.call_later(1.0, callback)
    clock.advance(seconds=1)
    scheduler.run_pending()  # callback fires
"""

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""

    def now(self) -> datetime: ...


class SystemClock:
    """Real wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to. Used by tests and the console demo."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        start = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: Optional[timedelta] = None, **kwargs: float) -> datetime:
        """Move time forward by ``delta`` or by timedelta keyword arguments."""
        step = delta if delta is not None else timedelta(**kwargs)
        if step < timedelta(0):
            raise ValueError("ManualClock cannot move backwards")
        self._now = self._now + step
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        if moment < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = moment


@dataclass(order=True)
class ScheduledCall:
    """A callback registered with the scheduler."""

    due_at: datetime
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """
    Single-threaded deferred-callback queue driven by the host.

    Callbacks run in due-time order (registration order for equal times)
    and only from ``run_pending``, so no locking is needed.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = clock or SystemClock()
        self._calls: list[ScheduledCall] = []
        self._seq = itertools.count()

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledCall:
        """Register ``callback`` to run once ``delay_seconds`` have elapsed."""
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
        call = ScheduledCall(
            due_at=self.clock.now() + timedelta(seconds=delay_seconds),
            seq=next(self._seq),
            callback=callback,
        )
        self._calls.append(call)
        return call

    def run_pending(self) -> int:
        """Run every due, non-cancelled callback. Returns how many ran."""
        now = self.clock.now()
        due = sorted(c for c in self._calls if c.due_at <= now)
        self._calls = [c for c in self._calls if c.due_at > now]
        ran = 0
        for call in due:
            if call.cancelled:
                continue
            call.callback()
            ran += 1
        if ran:
            logger.debug("Scheduler ran %d callback(s)", ran)
        return ran

    def pending_count(self) -> int:
        return sum(1 for c in self._calls if not c.cancelled)
