"""
JSON file store: Infrastructure adapter for a local data directory.

Implements SchedulerStore with one JSON document per collection:

    cards.json          {card_id: card}
    review_log.json     [entry, ...] oldest first
    daily_stats.json    {"YYYY-MM-DD": counters}
    settings.json       {field: value}
"""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from echodeck.domain.errors import PersistenceError
from echodeck.domain.models import Card, DailyStat, ReviewLogEntry, Settings
from echodeck.domain.ports import SchedulerStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

CARDS_FILE = "cards.json"
REVIEW_LOG_FILE = "review_log.json"
DAILY_STATS_FILE = "daily_stats.json"
SETTINGS_FILE = "settings.json"


class JsonFileStore(SchedulerStore):
    """
    Persists scheduler state as JSON files under `data_dir`.

    Missing files mean first run. Unreadable files and malformed records are
    logged and skipped, never fatal. Writes go through a temp file and
    os.replace so a crash mid-write leaves the previous version intact.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir).expanduser()

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def load_cards(self) -> dict[str, Card]:
        raw = self._read(CARDS_FILE, dict)
        cards: dict[str, Card] = {}
        for cid, data in raw.items():
            card = _parse(Card.from_dict, data, f"card {cid!r}")
            if card is not None:
                cards[cid] = card
        return cards

    def save_cards(self, cards: dict[str, Card]) -> None:
        self._write(CARDS_FILE, {cid: c.to_dict() for cid, c in cards.items()})

    # ------------------------------------------------------------------
    # Review log
    # ------------------------------------------------------------------

    def load_review_log(self) -> list[ReviewLogEntry]:
        raw = self._read(REVIEW_LOG_FILE, list)
        entries = (_parse(ReviewLogEntry.from_dict, d, "review log entry") for d in raw)
        return [e for e in entries if e is not None]

    def save_review_log(self, entries: list[ReviewLogEntry]) -> None:
        self._write(REVIEW_LOG_FILE, [e.to_dict() for e in entries])

    # ------------------------------------------------------------------
    # Daily stats
    # ------------------------------------------------------------------

    def load_daily_stats(self) -> dict[str, DailyStat]:
        raw = self._read(DAILY_STATS_FILE, dict)
        stats: dict[str, DailyStat] = {}
        for day, data in raw.items():
            stat = _parse(DailyStat.from_dict, data, f"daily stats for {day}")
            if stat is not None:
                stats[day] = stat
        return stats

    def save_daily_stats(self, stats: dict[str, DailyStat]) -> None:
        self._write(DAILY_STATS_FILE, {day: s.to_dict() for day, s in stats.items()})

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def load_settings(self) -> Settings:
        raw = self._read(SETTINGS_FILE, dict)
        settings = _parse(Settings.from_dict, raw, "settings")
        return settings if settings is not None else Settings()

    def save_settings(self, settings: Settings) -> None:
        self._write(SETTINGS_FILE, settings.to_dict())

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _read(self, name: str, expected: type) -> Any:
        path = self.data_dir / name
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return expected()
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {path}, starting empty: {e}")
            return expected()

        if not isinstance(data, expected):
            logger.warning(
                f"Unexpected {type(data).__name__} in {path}, "
                f"expected {expected.__name__}; starting empty"
            )
            return expected()
        return data

    def _write(self, name: str, data: Any) -> None:
        path = self.data_dir / name
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e


def _parse(factory: Callable[[Any], T], data: Any, what: str) -> T | None:
    try:
        return factory(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Skipping malformed {what}: {e}")
        return None
