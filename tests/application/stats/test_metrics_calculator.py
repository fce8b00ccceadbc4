from datetime import date, timedelta

import pytest

from echodeck.application.stats.metrics_calculator import MetricsCalculator, round_half_up
from echodeck.domain.models import Card, CardState, Quality


@pytest.fixture
def calculator():
    return MetricsCalculator()


def review_card(cid, interval, due=0, reps=1, lapses=0):
    return Card(
        id=cid, state=CardState.REVIEW, interval=interval, due=due, reps=reps, lapses=lapses
    )


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2
    assert round_half_up(-1.5) == -2


def test_overall_counts_by_state(calculator):
    cards = [
        Card(id="n1"),
        Card(id="n2"),
        Card(id="l1", state=CardState.LEARNING, reps=1),
        Card(id="rl", state=CardState.RELEARNING, interval=5, reps=4, lapses=1),
        review_card("young", interval=20, reps=3),
        review_card("mature", interval=21, reps=6),
    ]

    stats = calculator.overall(cards)

    assert stats.total == 6
    assert stats.new == 2
    assert stats.learning == 2
    assert stats.review == 2
    assert stats.mature == 1
    assert stats.total_reviews == 14
    assert stats.total_lapses == 1
    # (1 - 1/14) * 100 = 92.86
    assert stats.retention == 93


def test_retention_zero_without_reviews(calculator):
    assert calculator.retention(0, 0) == 0
    assert calculator.overall([Card(id="n")]).retention == 0


def test_retention_bounds(calculator):
    assert calculator.retention(10, 0) == 100
    assert calculator.retention(4, 4) == 0
    # Corrupt data cannot push it out of range
    assert calculator.retention(2, 5) == 0


def test_interval_distribution(calculator):
    intervals = [1, 5, 7, 30, 31, 90, 200]
    cards = [review_card(f"c{i}", interval) for i, interval in enumerate(intervals)]
    cards.append(Card(id="learning", state=CardState.RELEARNING, interval=400))

    assert calculator.interval_distribution(cards) == {
        "1d": 1,
        "1w": 2,
        "1m": 1,
        "3m": 2,
        "6m+": 1,
    }


def test_forecast_histogram(calculator):
    today = date(2026, 3, 10)
    # due timestamps stand in for days offset from today
    cards = [
        review_card("a", 3, due=0),
        review_card("b", 3, due=1),
        review_card("c", 3, due=1),
        review_card("d", 3, due=3),
        review_card("far", 3, due=40),
        Card(id="learning", state=CardState.LEARNING, due=0),
        Card(id="new", due=0),
    ]

    forecast = calculator.forecast(
        cards, today=today, days=5, date_of=lambda ms: today + timedelta(days=ms)
    )

    assert [f.due for f in forecast] == [1, 2, 0, 1, 0]
    assert forecast[0].date == "2026-03-10"
    assert forecast[4].date == "2026-03-14"


def test_forecast_empty_window(calculator):
    assert calculator.forecast([], today=date(2026, 1, 1), days=0, date_of=lambda ms: None) == []


# --- Through the scheduler ---


def test_scheduler_overall_stats(scheduler, clock):
    scheduler.get_or_create_card("a")
    scheduler.get_or_create_card("b")
    scheduler.answer_card("a", Quality.AGAIN)
    clock.advance(minutes=1)

    stats = scheduler.get_overall_stats()

    assert stats.total == 2
    assert stats.new == 1
    assert stats.learning == 1
    assert stats.due_today == 1
    assert stats.new_remaining == 19
    assert stats.reviews_remaining == 200
    assert 0 <= stats.retention <= 100


def test_scheduler_forecast_uses_calendar_days(scheduler, clock):
    for cid in ("a", "b"):
        scheduler.get_or_create_card(cid)
        scheduler.answer_card(cid, Quality.EASY)  # due in 4 days
    scheduler.get_or_create_card("c")
    scheduler.answer_card("c", Quality.GOOD)
    scheduler.answer_card("c", Quality.GOOD)  # due tomorrow

    forecast = scheduler.get_forecast(7)

    assert len(forecast) == 7
    assert forecast[0].date == clock.today().isoformat()
    assert [f.due for f in forecast] == [0, 1, 0, 0, 2, 0, 0]


def test_scheduler_today_stats_default(scheduler):
    today = scheduler.get_today_stats()
    assert (today.new_cards, today.reviews, today.lapses, today.study_time_ms) == (0, 0, 0, 0)


def test_scheduler_today_stats_is_a_copy(scheduler):
    scheduler.get_or_create_card("a")
    scheduler.answer_card("a", Quality.GOOD)

    today = scheduler.get_today_stats()
    today.new_cards = 99

    assert scheduler.get_today_stats().new_cards == 1
    assert scheduler.get_new_cards_remaining() == 19
