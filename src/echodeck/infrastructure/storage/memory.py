"""
In-memory store.

Keeps serialized copies so that, like a real store, later mutations of the
scheduler's objects are not visible until the next save.
"""

from echodeck.domain.models import Card, DailyStat, ReviewLogEntry, Settings
from echodeck.domain.ports import SchedulerStore


class InMemoryStore(SchedulerStore):
    def __init__(self):
        self.cards: dict[str, dict] = {}
        self.review_log: list[dict] = []
        self.daily_stats: dict[str, dict] = {}
        self.settings: dict = {}
        self.saves = 0

    def load_cards(self) -> dict[str, Card]:
        return {cid: Card.from_dict(d) for cid, d in self.cards.items()}

    def save_cards(self, cards: dict[str, Card]) -> None:
        self.cards = {cid: c.to_dict() for cid, c in cards.items()}
        self.saves += 1

    def load_review_log(self) -> list[ReviewLogEntry]:
        return [ReviewLogEntry.from_dict(d) for d in self.review_log]

    def save_review_log(self, entries: list[ReviewLogEntry]) -> None:
        self.review_log = [e.to_dict() for e in entries]

    def load_daily_stats(self) -> dict[str, DailyStat]:
        return {day: DailyStat.from_dict(d) for day, d in self.daily_stats.items()}

    def save_daily_stats(self, stats: dict[str, DailyStat]) -> None:
        self.daily_stats = {day: s.to_dict() for day, s in stats.items()}

    def load_settings(self) -> Settings:
        return Settings.from_dict(self.settings)

    def save_settings(self, settings: Settings) -> None:
        self.settings = settings.to_dict()
