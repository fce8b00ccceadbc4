"""Clock adapters."""

from datetime import date, datetime, time, timedelta

from echodeck.domain.ports import Clock


class SystemClock(Clock):
    """
    Wall-clock time in the machine's local timezone.

    `astimezone()` only yields today's fixed UTC offset, so day boundaries
    go through naive local datetimes, which the platform resolves with the
    DST rules in force on that date.
    """

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def day_start_ms(self, day: date) -> int:
        return int(datetime.combine(day, time.min).timestamp() * 1000)

    def date_of(self, ms: int) -> date:
        return datetime.fromtimestamp(ms / 1000).date()


class ManualClock(Clock):
    """
    A clock that only moves when told to.

    Used by tests and simulations to make day boundaries deterministic.
    Give it a ZoneInfo to model a timezone with DST.
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise ValueError("ManualClock needs a timezone-aware start time")
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime) -> None:
        if when.tzinfo is None:
            raise ValueError("ManualClock needs a timezone-aware time")
        self._now = when

    def advance(self, **delta: float) -> datetime:
        """Move forward by timedelta keyword arguments, e.g. advance(minutes=10)."""
        self._now = self._now + timedelta(**delta)
        return self._now
