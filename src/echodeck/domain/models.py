"""
Domain models for the scheduler.

These are pure data structures with no I/O or external dependencies.
Timestamps are epoch milliseconds throughout.
"""

from dataclasses import asdict, dataclass, fields
from enum import IntEnum
from typing import Any

from .constants import DEFAULT_EASE


class CardState(IntEnum):
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Quality(IntEnum):
    """Answer buttons, worst to best."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


@dataclass
class Card:
    """
    Scheduling state for one learnable word or phrase.

    Attributes:
        id: Caller-supplied key, stable across sessions.
        payload: Opaque content (word text, translation, category...).
        state: Current position in the state machine.
        due: Instant for Learning/Relearning, local midnight for New/Review.
        interval: Days; 0 until the card first graduates.
        ease: Interval growth multiplier, never below MINIMUM_EASE.
        reps: Total answers given.
        lapses: Review-state Again answers.
        step: Index into the active step sequence.
        last_review: Time of the latest answer, None if never answered.
        created: Creation time; orders new cards.
    """

    id: str
    payload: Any = None
    state: CardState = CardState.NEW
    due: int = 0
    interval: int = 0
    ease: float = DEFAULT_EASE
    reps: int = 0
    lapses: int = 0
    step: int = 0
    last_review: int | None = None
    created: int = 0

    @property
    def is_learning(self) -> bool:
        return self.state in (CardState.LEARNING, CardState.RELEARNING)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["state"] = int(self.state)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Card":
        return cls(
            id=str(data["id"]),
            payload=data.get("payload"),
            state=CardState(int(data.get("state", CardState.NEW))),
            due=int(data.get("due", 0)),
            interval=int(data.get("interval", 0)),
            ease=float(data.get("ease", DEFAULT_EASE)),
            reps=int(data.get("reps", 0)),
            lapses=int(data.get("lapses", 0)),
            step=int(data.get("step", 0)),
            last_review=data.get("last_review"),
            created=int(data.get("created", 0)),
        )


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Audit record of one answer, captured before the card was mutated.

    Diagnostic only; the card itself is the authoritative state.
    """

    card_id: str
    quality: int
    prior_state: int
    prior_ease: float
    prior_interval: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewLogEntry":
        return cls(
            card_id=str(data["card_id"]),
            quality=int(data["quality"]),
            prior_state=int(data["prior_state"]),
            prior_ease=float(data["prior_ease"]),
            prior_interval=int(data["prior_interval"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass
class DailyStat:
    """Per-day counters, keyed by local date in the store."""

    new_cards: int = 0
    reviews: int = 0
    lapses: int = 0
    study_time_ms: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyStat":
        return cls(**{f.name: int(data.get(f.name, 0)) for f in fields(cls)})


@dataclass
class Settings:
    """User-adjustable limits. Missing fields fall back to the defaults."""

    new_cards_per_day: int = 20
    max_reviews_per_day: int = 200
    show_answer_timer: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Settings":
        data = data or {}
        defaults = cls()
        return cls(
            new_cards_per_day=int(data.get("new_cards_per_day", defaults.new_cards_per_day)),
            max_reviews_per_day=int(data.get("max_reviews_per_day", defaults.max_reviews_per_day)),
            show_answer_timer=bool(data.get("show_answer_timer", defaults.show_answer_timer)),
        )


@dataclass
class DueCard:
    """A due card tagged for queue ordering (0 = learning, 1 = review)."""

    card: Card
    priority: int
    overdue: int = 0


@dataclass
class QueueCounts:
    new: int = 0
    learning: int = 0
    review: int = 0

    @classmethod
    def of(cls, cards: list[Card]) -> "QueueCounts":
        counts = cls()
        for card in cards:
            if card.state == CardState.NEW:
                counts.new += 1
            elif card.is_learning:
                counts.learning += 1
            else:
                counts.review += 1
        return counts


@dataclass
class SessionTally:
    reviewed: int = 0
    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0
    study_time_ms: int = 0

    def record(self, quality: "Quality", time_taken_ms: int = 0) -> None:
        self.reviewed += 1
        self.study_time_ms += time_taken_ms
        name = quality.name.lower()
        setattr(self, name, getattr(self, name) + 1)
