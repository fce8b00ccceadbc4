# Domain Package
from .errors import InvalidQuality, PersistenceError, SchedulerError
from .models import (
    Card,
    CardState,
    DailyStat,
    DueCard,
    Quality,
    QueueCounts,
    ReviewLogEntry,
    SessionTally,
    Settings,
)
from .ports import Clock, SchedulerStore

__all__ = [
    "Card",
    "CardState",
    "Clock",
    "DailyStat",
    "DueCard",
    "InvalidQuality",
    "PersistenceError",
    "Quality",
    "QueueCounts",
    "ReviewLogEntry",
    "SchedulerError",
    "SchedulerStore",
    "SessionTally",
    "Settings",
]
