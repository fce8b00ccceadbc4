"""
Review session driver.

Walks a review queue front to back for one study sitting. The scheduler only
supplies the initial batch; a card answered Again is put back at the tail of
this session's queue so it comes around again once its short step expires.
"""

import logging

from echodeck.application.scheduler import Scheduler, validate_quality
from echodeck.domain.models import Card, Quality, QueueCounts, SessionTally

logger = logging.getLogger(__name__)


class ReviewSession:
    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self.queue: list[Card] = scheduler.get_review_queue()
        self.position = 0
        self.tally = SessionTally()

    @property
    def finished(self) -> bool:
        return self.position >= len(self.queue)

    @property
    def current(self) -> Card | None:
        if self.finished:
            return None
        return self.queue[self.position]

    @property
    def progress(self) -> float:
        """Fraction of the (growing) queue already answered."""
        if not self.queue:
            return 1.0
        return self.position / len(self.queue)

    def counts(self) -> QueueCounts:
        """New / learning / review cards still ahead in the queue."""
        return QueueCounts.of(self.queue[self.position :])

    def next_intervals(self) -> dict[Quality, str] | None:
        card = self.current
        if card is None:
            return None
        return self.scheduler.get_next_intervals(card.id)

    def answer(self, quality: int, time_taken_ms: int = 0) -> Card:
        """
        Answer the current card and move on.

        Raises:
            IndexError: The session is already finished.
            InvalidQuality: `quality` is not 1-4; the session does not advance.
        """
        q = validate_quality(quality)
        card = self.current
        if card is None:
            raise IndexError("Review session is finished")

        updated = self.scheduler.answer_card(card.id, q, time_taken_ms)
        if updated is None:
            # Card vanished from the collection mid-session; skip it.
            logger.warning(f"Card {card.id!r} no longer exists, skipping")
            self.position += 1
            return card

        self.tally.record(q, time_taken_ms)
        if q == Quality.AGAIN:
            self.queue.append(updated)

        self.position += 1
        return updated

    def summary(self) -> dict:
        overall = self.scheduler.get_overall_stats()
        return {
            "reviewed": self.tally.reviewed,
            "again": self.tally.again,
            "hard": self.tally.hard,
            "good": self.tally.good,
            "easy": self.tally.easy,
            "study_time_ms": self.tally.study_time_ms,
            "retention": overall.retention,
            "mature": overall.mature,
            "total": overall.total,
        }
