"""
Metrics calculator for deriving collection statistics from cards.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass
from datetime import date, timedelta

from echodeck.domain.constants import MATURE_INTERVAL
from echodeck.domain.models import Card, CardState


@dataclass
class OverallStats:
    """Collection-wide counts plus the current queue sizes."""

    total: int
    new: int
    learning: int  # Learning + Relearning
    review: int
    mature: int
    total_reviews: int  # sum of reps
    total_lapses: int
    retention: int  # percent, 0-100
    due_today: int = 0
    new_remaining: int = 0
    reviews_remaining: int = 0


@dataclass
class ForecastDay:
    date: str
    due: int


# Upper bound (days, inclusive) for each bucket; the last bucket is open.
INTERVAL_BUCKETS: list[tuple[str, int | None]] = [
    ("1d", 1),
    ("1w", 7),
    ("1m", 30),
    ("3m", 90),
    ("6m+", None),
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, unlike round()."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


class MetricsCalculator:
    """
    Computes derived statistics from Card objects.

    Stateless and side-effect free. Day boundaries are supplied by the caller.
    """

    def overall(self, cards: list[Card]) -> OverallStats:
        total_reviews = sum(c.reps for c in cards)
        total_lapses = sum(c.lapses for c in cards)

        return OverallStats(
            total=len(cards),
            new=sum(1 for c in cards if c.state == CardState.NEW),
            learning=sum(1 for c in cards if c.is_learning),
            review=sum(1 for c in cards if c.state == CardState.REVIEW),
            mature=sum(
                1 for c in cards if c.state == CardState.REVIEW and c.interval >= MATURE_INTERVAL
            ),
            total_reviews=total_reviews,
            total_lapses=total_lapses,
            retention=self.retention(total_reviews, total_lapses),
        )

    def retention(self, total_reviews: int, total_lapses: int) -> int:
        """
        Percentage of answers that were not lapses.

        0 when nothing has been reviewed yet.
        """
        if total_reviews <= 0:
            return 0
        pct = round_half_up((1 - total_lapses / total_reviews) * 100)
        return max(0, min(100, pct))

    def forecast(
        self,
        cards: list[Card],
        today: date,
        days: int,
        date_of,
    ) -> list[ForecastDay]:
        """
        Histogram of review cards falling due on each of the next `days` days.

        Args:
            cards: Cards to consider; only Review-state cards are counted.
            today: First day of the forecast.
            days: Number of days, today included.
            date_of: Maps a due timestamp (ms) to its local calendar date.
        """
        counts: dict[date, int] = {}
        for card in cards:
            if card.state != CardState.REVIEW:
                continue
            day = date_of(card.due)
            counts[day] = counts.get(day, 0) + 1

        result = []
        for i in range(max(0, days)):
            day = today + timedelta(days=i)
            result.append(ForecastDay(date=day.isoformat(), due=counts.get(day, 0)))
        return result

    def interval_distribution(self, cards: list[Card]) -> dict[str, int]:
        dist = {name: 0 for name, _ in INTERVAL_BUCKETS}

        for card in cards:
            if card.state != CardState.REVIEW:
                continue
            for name, upper in INTERVAL_BUCKETS:
                if upper is None or card.interval <= upper:
                    dist[name] += 1
                    break

        return dist
