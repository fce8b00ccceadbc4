"""
Ports (interfaces) for persistence and time.

These define the contract that infrastructure adapters must implement.
The scheduler depends on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, tzinfo

from .models import Card, DailyStat, ReviewLogEntry, Settings


class SchedulerStore(ABC):
    """
    Port for loading and saving the scheduler's four collections.

    Implementations:
        - InMemoryStore: Ephemeral, for tests and throwaway sessions.
        - JsonFileStore: One JSON document per collection in a directory.

    Loads must never raise for missing or corrupt data; they return empty
    collections instead. Saves raise PersistenceError on failure.
    """

    @abstractmethod
    def load_cards(self) -> dict[str, Card]:
        pass

    @abstractmethod
    def save_cards(self, cards: dict[str, Card]) -> None:
        pass

    @abstractmethod
    def load_review_log(self) -> list[ReviewLogEntry]:
        pass

    @abstractmethod
    def save_review_log(self, entries: list[ReviewLogEntry]) -> None:
        pass

    @abstractmethod
    def load_daily_stats(self) -> dict[str, DailyStat]:
        pass

    @abstractmethod
    def save_daily_stats(self, stats: dict[str, DailyStat]) -> None:
        pass

    @abstractmethod
    def load_settings(self) -> Settings:
        pass

    @abstractmethod
    def save_settings(self, settings: Settings) -> None:
        pass


class Clock(ABC):
    """
    Port for reading the current time.

    Only `now` is abstract; day boundaries are derived from the timezone of
    the datetime it returns. With a zone that observes DST (a ZoneInfo), each
    date gets its own offset. A fixed-offset tzinfo applies today's offset
    to every date, so adapters without a real zone override `day_start_ms`
    and `date_of`.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""

    @property
    def tz(self) -> tzinfo | None:
        return self.now().tzinfo

    def now_ms(self) -> int:
        return int(self.now().timestamp() * 1000)

    def today(self) -> date:
        return self.now().date()

    def day_start_ms(self, day: date) -> int:
        """Epoch ms of local midnight at the start of `day`."""
        return int(datetime.combine(day, time.min, tzinfo=self.tz).timestamp() * 1000)

    def today_ms(self) -> int:
        return self.day_start_ms(self.today())

    def days_from_today_ms(self, days: int) -> int:
        return self.day_start_ms(self.today() + timedelta(days=days))

    def date_of(self, ms: int) -> date:
        """Local calendar date containing the instant `ms`."""
        return datetime.fromtimestamp(ms / 1000, tz=self.tz).date()

    def date_key(self) -> str:
        return self.today().isoformat()
