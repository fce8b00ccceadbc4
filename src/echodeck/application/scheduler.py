"""
Spaced-repetition scheduler.

An SM-2 style state machine over a collection of cards:

    New -> Learning -> Review <-> Relearning
    New -> Review (Easy)

Learning and Relearning walk short minute-based steps; Review cards are
scheduled in whole days and grow their interval by the card's ease factor.
The scheduler also builds the daily review queue and derives statistics.

All time comes from an injected Clock and all randomness from an injected
random.Random, so the decision logic itself never touches the outside world.
State is written back to the store after every mutating call.
"""

import copy
import logging
import random
from dataclasses import replace
from typing import Any

from echodeck.application.stats import (
    ForecastDay,
    MetricsCalculator,
    OverallStats,
    round_half_up,
)
from echodeck.domain.constants import (
    DEFAULT_EASE,
    DEFAULT_FORECAST_DAYS,
    EASY_BONUS,
    EASY_EASE_BONUS,
    EASY_INTERVAL,
    FUZZ_FRACTION,
    GRADUATING_INTERVAL,
    HARD_EASE_PENALTY,
    HARD_MULTIPLIER,
    INTERVAL_MODIFIER,
    LAPSE_EASE_PENALTY,
    LEARNING_STEPS,
    MINIMUM_EASE,
    MS_PER_MINUTE,
    NEW_CARD_SPACING,
    RELEARN_INTERVAL_FACTOR,
    RELEARNING_STEPS,
    REVIEW_LOG_CAP,
)
from echodeck.domain.errors import InvalidQuality
from echodeck.domain.models import (
    Card,
    CardState,
    DailyStat,
    DueCard,
    Quality,
    ReviewLogEntry,
    Settings,
)
from echodeck.domain.ports import Clock, SchedulerStore

logger = logging.getLogger(__name__)


def validate_quality(quality: Any) -> Quality:
    """Return `quality` as a Quality, raising InvalidQuality if it is not 1-4."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    try:
        return Quality(quality)
    except ValueError:
        raise InvalidQuality(quality) from None


def format_minutes(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}m"
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes / 60:.1f}h"


class Scheduler:
    """
    Owns card state, queue construction, answer processing and statistics
    for one collection.

    Not thread-safe: callers serialize access, one instance per user session.
    """

    def __init__(
        self,
        store: SchedulerStore,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        calculator: MetricsCalculator | None = None,
    ):
        """
        Args:
            store: The persistence port; loaded immediately.
            clock: Time source; defaults to the system clock.
            rng: Random source for interval fuzz; defaults to a fresh Random.
            calculator: Optional custom statistics calculator.
        """
        if clock is None:
            from echodeck.infrastructure.clock import SystemClock

            clock = SystemClock()

        self._store = store
        self._clock = clock
        self._rng = rng or random.Random()
        self._calc = calculator or MetricsCalculator()

        self.cards: dict[str, Card] = store.load_cards()
        self.review_log: list[ReviewLogEntry] = store.load_review_log()[-REVIEW_LOG_CAP:]
        self.daily_stats: dict[str, DailyStat] = store.load_daily_stats()
        self.settings: Settings = store.load_settings()

        logger.debug(
            f"Loaded {len(self.cards)} cards, {len(self.review_log)} log entries, "
            f"{len(self.daily_stats)} days of stats"
        )

    @property
    def clock(self) -> Clock:
        return self._clock

    # ==================================================================
    # Card management
    # ==================================================================

    def get_card(self, card_id: str) -> Card | None:
        return self.cards.get(card_id)

    def get_or_create_card(self, card_id: str, payload: Any = None) -> Card:
        """
        Return the card for `card_id`, creating a New card if it is unknown.

        An existing card is returned as-is; its payload and state are not
        touched.
        """
        card = self.cards.get(card_id)
        if card is not None:
            return card

        card = Card(
            id=card_id,
            payload=payload,
            state=CardState.NEW,
            due=self._clock.today_ms(),
            interval=0,
            ease=DEFAULT_EASE,
            created=self._clock.now_ms(),
        )
        self.cards[card_id] = card
        logger.debug(f"Created card {card_id!r}")
        self._store.save_cards(self.cards)
        return card

    # ==================================================================
    # Queue management
    # ==================================================================

    def get_due_cards(self) -> list[DueCard]:
        """
        Learning/Relearning cards due by now, then Review cards due by today.

        Review cards compare by calendar date, so a due day stays the same
        day across UTC offset changes. They are ordered most-overdue first.
        New cards are never due.
        """
        now = self._clock.now_ms()
        today = self._clock.today()
        due: list[DueCard] = []

        for card in self.cards.values():
            if card.is_learning:
                if card.due <= now:
                    due.append(DueCard(card=card, priority=0))
            elif card.state == CardState.REVIEW:
                overdue = (today - self._clock.date_of(card.due)).days
                if overdue >= 0:
                    due.append(DueCard(card=card, priority=1, overdue=overdue))

        due.sort(key=lambda d: (d.priority, -d.overdue))
        return due

    def get_new_cards(self, limit: int | None = None) -> list[Card]:
        """New cards, oldest created first, optionally truncated to `limit`."""
        new_cards = sorted(
            (c for c in self.cards.values() if c.state == CardState.NEW),
            key=lambda c: c.created,
        )
        if limit is not None:
            return new_cards[: max(0, limit)]
        return new_cards

    def get_new_cards_remaining(self) -> int:
        return max(0, self.settings.new_cards_per_day - self.get_today_stats().new_cards)

    def get_reviews_remaining(self) -> int:
        return max(0, self.settings.max_reviews_per_day - self.get_today_stats().reviews)

    def get_review_queue(self) -> list[Card]:
        """
        Build today's study queue.

        Due cards in priority order, with one new card spliced in after every
        tenth due card; leftover new cards go at the end. The queue is a
        snapshot: cards failed during the session must be re-appended by the
        caller (see ReviewSession).
        """
        due_cards = self.get_due_cards()
        new_cards = self.get_new_cards(self.get_new_cards_remaining())

        queue: list[Card] = []
        new_index = 0

        for i, due in enumerate(due_cards):
            queue.append(due.card)
            if i > 0 and i % NEW_CARD_SPACING == 0 and new_index < len(new_cards):
                queue.append(new_cards[new_index])
                new_index += 1

        queue.extend(new_cards[new_index:])
        return queue

    # ==================================================================
    # Answer processing
    # ==================================================================

    def answer_card(self, card_id: str, quality: int, time_taken_ms: int = 0) -> Card | None:
        """
        Apply an answer to a card and persist the result.

        Args:
            card_id: The card being answered.
            quality: 1=Again, 2=Hard, 3=Good, 4=Easy.
            time_taken_ms: Time spent on the card, added to today's study time.

        Returns:
            The updated card, or None if `card_id` is unknown.

        Raises:
            InvalidQuality: `quality` is not 1-4. Nothing is changed.
            PersistenceError: The store failed to save. In-memory state is
                already updated.
        """
        q = validate_quality(quality)
        card = self.cards.get(card_id)
        if card is None:
            return None

        now = self._clock.now_ms()

        self.review_log.append(
            ReviewLogEntry(
                card_id=card_id,
                quality=int(q),
                prior_state=int(card.state),
                prior_ease=card.ease,
                prior_interval=card.interval,
                timestamp=now,
            )
        )
        if len(self.review_log) > REVIEW_LOG_CAP:
            del self.review_log[: len(self.review_log) - REVIEW_LOG_CAP]

        for counter in self._apply(card, q, now, fuzz=True):
            self._bump(counter)
        if time_taken_ms > 0:
            self._bump("study_time_ms", time_taken_ms)

        card.last_review = now
        card.reps += 1

        self._save()
        return card

    def _apply(self, card: Card, quality: Quality, now: int, fuzz: bool) -> list[str]:
        """Run the state machine on `card`; return the daily counters to bump."""
        if card.state == CardState.NEW:
            self._answer_new(card, quality, now)
            return ["new_cards"]

        if card.state == CardState.LEARNING:
            self._answer_learning(card, quality, now, LEARNING_STEPS)
            return []

        if card.state == CardState.RELEARNING:
            self._answer_learning(card, quality, now, RELEARNING_STEPS)
            return []

        self._answer_review(card, quality, now, fuzz)
        if quality == Quality.AGAIN:
            return ["lapses", "reviews"]
        return ["reviews"]

    def _answer_new(self, card: Card, quality: Quality, now: int) -> None:
        if quality == Quality.EASY:
            card.state = CardState.REVIEW
            card.interval = EASY_INTERVAL
            card.due = self._clock.days_from_today_ms(card.interval)
            card.ease = DEFAULT_EASE + EASY_EASE_BONUS
        elif quality == Quality.AGAIN:
            card.state = CardState.LEARNING
            card.step = 0
            card.due = now + LEARNING_STEPS[0] * MS_PER_MINUTE
        else:
            # Good skips the first step, Hard repeats it
            card.state = CardState.LEARNING
            card.step = 1 if quality == Quality.GOOD else 0
            minutes = LEARNING_STEPS[min(card.step, len(LEARNING_STEPS) - 1)]
            card.due = now + minutes * MS_PER_MINUTE

    def _answer_learning(
        self, card: Card, quality: Quality, now: int, steps: tuple[int, ...]
    ) -> None:
        if quality == Quality.AGAIN:
            card.step = 0
            card.due = now + steps[0] * MS_PER_MINUTE
        elif quality == Quality.EASY:
            self._graduate(card, easy=True)
        else:
            card.step += 1
            if card.step >= len(steps):
                self._graduate(card, easy=False)
            else:
                card.due = now + steps[card.step] * MS_PER_MINUTE

    def _graduate(self, card: Card, easy: bool) -> None:
        was_relearning = card.state == CardState.RELEARNING
        card.state = CardState.REVIEW
        card.step = 0

        if was_relearning:
            card.interval = max(1, round_half_up(card.interval * RELEARN_INTERVAL_FACTOR))
        else:
            card.interval = EASY_INTERVAL if easy else GRADUATING_INTERVAL

        card.due = self._clock.days_from_today_ms(card.interval)

    def _answer_review(self, card: Card, quality: Quality, now: int, fuzz: bool) -> None:
        if quality == Quality.AGAIN:
            card.ease = max(MINIMUM_EASE, card.ease - LAPSE_EASE_PENALTY)
            card.lapses += 1
            card.state = CardState.RELEARNING
            card.step = 0
            card.due = now + RELEARNING_STEPS[0] * MS_PER_MINUTE
            logger.debug(f"Card {card.id!r} lapsed ({card.lapses} total)")
            return

        if quality == Quality.HARD:
            multiplier = HARD_MULTIPLIER
            card.ease = max(MINIMUM_EASE, card.ease - HARD_EASE_PENALTY)
        elif quality == Quality.GOOD:
            multiplier = card.ease
        else:
            multiplier = card.ease * EASY_BONUS
            card.ease += EASY_EASE_BONUS

        new_interval = round_half_up(card.interval * multiplier * INTERVAL_MODIFIER)
        # Success must always push the card further out
        new_interval = max(card.interval + 1, new_interval)

        if fuzz:
            spread = round_half_up(new_interval * FUZZ_FRACTION)
            new_interval += self._rng.randint(-spread, spread)

        card.interval = max(1, new_interval)
        card.due = self._clock.days_from_today_ms(card.interval)

    # ==================================================================
    # Previews
    # ==================================================================

    def get_next_intervals(self, card_id: str) -> dict[Quality, str] | None:
        """
        Preview where each answer would send the card, without changing it.

        Replays the answer logic on a copy of the card with fuzz disabled.
        Returns e.g. {AGAIN: "1m", HARD: "1m", GOOD: "10m", EASY: "4d"}, or
        None for an unknown card.
        """
        card = self.cards.get(card_id)
        if card is None:
            return None

        now = self._clock.now_ms()
        previews: dict[Quality, str] = {}
        for quality in Quality:
            trial = copy.copy(card)
            self._apply(trial, quality, now, fuzz=False)
            if trial.is_learning:
                previews[quality] = format_minutes((trial.due - now) // MS_PER_MINUTE)
            else:
                previews[quality] = f"{trial.interval}d"
        return previews

    # ==================================================================
    # Statistics
    # ==================================================================

    def get_today_stats(self) -> DailyStat:
        """A copy of today's counters; zeros if nothing was studied yet."""
        stat = self.daily_stats.get(self._clock.date_key())
        return replace(stat) if stat is not None else DailyStat()

    def get_overall_stats(self) -> OverallStats:
        stats = self._calc.overall(list(self.cards.values()))
        stats.due_today = len(self.get_due_cards())
        stats.new_remaining = self.get_new_cards_remaining()
        stats.reviews_remaining = self.get_reviews_remaining()
        return stats

    def get_forecast(self, days: int = DEFAULT_FORECAST_DAYS) -> list[ForecastDay]:
        return self._calc.forecast(
            list(self.cards.values()),
            today=self._clock.today(),
            days=days,
            date_of=self._clock.date_of,
        )

    def get_interval_distribution(self) -> dict[str, int]:
        return self._calc.interval_distribution(list(self.cards.values()))

    def get_review_log(self, card_id: str | None = None) -> list[ReviewLogEntry]:
        if card_id is None:
            return list(self.review_log)
        return [e for e in self.review_log if e.card_id == card_id]

    # ==================================================================
    # Settings
    # ==================================================================

    def get_settings(self) -> Settings:
        return self.settings

    def update_settings(self, **changes: Any) -> Settings:
        """
        Change settings and persist them.

        Only affects queues built afterwards. Unknown names raise TypeError.
        """
        merged = {**self.settings.to_dict(), **changes}
        if set(merged) != set(self.settings.to_dict()):
            unknown = ", ".join(sorted(set(merged) - set(self.settings.to_dict())))
            raise TypeError(f"Unknown settings: {unknown}")
        self.settings = Settings.from_dict(merged)
        self._store.save_settings(self.settings)
        return self.settings

    # ==================================================================
    # Persistence
    # ==================================================================

    def _bump(self, key: str, amount: int = 1) -> None:
        day = self._clock.date_key()
        stat = self.daily_stats.setdefault(day, DailyStat())
        setattr(stat, key, getattr(stat, key) + amount)

    def _save(self) -> None:
        self._store.save_cards(self.cards)
        self._store.save_review_log(self.review_log)
        self._store.save_daily_stats(self.daily_stats)
