import random
from datetime import datetime, timezone

import pytest

from echodeck.application.scheduler import Scheduler
from echodeck.infrastructure.clock import ManualClock
from echodeck.infrastructure.storage import InMemoryStore

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class StubRandom(random.Random):
    """randint() returns `offset` clamped into [a, b] and records the bounds."""

    def __init__(self, offset: int = 0):
        super().__init__(0)
        self.offset = offset
        self.calls: list[tuple[int, int]] = []

    def randint(self, a, b):
        self.calls.append((a, b))
        return max(a, min(b, self.offset))


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def rng():
    return StubRandom()


@pytest.fixture
def scheduler(store, clock, rng):
    return Scheduler(store, clock=clock, rng=rng)


@pytest.fixture
def make_scheduler(store, clock):
    """Build a scheduler whose fuzz always lands on `offset` (clamped)."""

    def _make(offset: int = 0) -> Scheduler:
        return Scheduler(store, clock=clock, rng=StubRandom(offset))

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and data
    monkeypatch.setenv("HOME", str(home))
    for var in ("ECHODECK_DATA_DIR", "ECHODECK_BACKEND", "ECHODECK_HOST", "ECHODECK_PORT"):
        monkeypatch.delenv(var, raising=False)
    return home
