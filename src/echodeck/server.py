import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from echodeck.application.scheduler import Scheduler
from echodeck.consts import VERSION
from echodeck.domain.errors import InvalidQuality, PersistenceError
from echodeck.domain.models import Card

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("echodeck.server")

_scheduler: Scheduler | None = None


async def get_scheduler() -> Scheduler:
    """
    Lazily build the process scheduler from the resolved config.

    The scheduler is not thread-safe. This dependency and every handler that
    uses it are `async def`, so they run one at a time on the event loop and
    never in the threadpool.
    """
    global _scheduler
    if _scheduler is None:
        from echodeck.application.config import resolve_config
        from echodeck.application.factory import build_scheduler

        _scheduler = build_scheduler(resolve_config())
    return _scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"echodeck server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("echodeck server shutting down...")


app = FastAPI(
    title="echodeck",
    description="Spaced-repetition scheduler for subtitle phrase cards.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardResponse(BaseModel):
    id: str
    payload: Any = None
    state: str
    due: int
    interval: int
    ease: float
    reps: int
    lapses: int
    step: int
    last_review: int | None = None
    created: int

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        data = card.to_dict()
        data["state"] = card.state.name.lower()
        return cls(**data)


class CreateCardRequest(BaseModel):
    id: str
    payload: Any = None


class AnswerRequest(BaseModel):
    # Range is checked by the scheduler so the error kind stays consistent
    quality: int
    time_taken_ms: int = Field(default=0, ge=0)


class SettingsRequest(BaseModel):
    new_cards_per_day: int | None = Field(default=None, ge=0)
    max_reviews_per_day: int | None = Field(default=None, ge=0)
    show_answer_timer: bool | None = None


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


def _persisted(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except PersistenceError as e:
        logger.error(f"Save failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/cards", response_model=CardResponse)
async def create_card(req: CreateCardRequest, scheduler: Scheduler = Depends(get_scheduler)):
    """Get or create a card. An existing card is returned unchanged."""
    card = _persisted(scheduler.get_or_create_card, req.id, req.payload)
    return CardResponse.from_card(card)


@app.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(card_id: str, scheduler: Scheduler = Depends(get_scheduler)):
    card = scheduler.get_card(card_id)
    if card is None:
        raise HTTPException(status_code=404, detail=f"Unknown card: {card_id}")
    return CardResponse.from_card(card)


@app.post("/cards/{card_id}/answer", response_model=CardResponse)
async def answer_card(
    card_id: str, req: AnswerRequest, scheduler: Scheduler = Depends(get_scheduler)
):
    try:
        card = _persisted(scheduler.answer_card, card_id, req.quality, req.time_taken_ms)
    except InvalidQuality as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if card is None:
        raise HTTPException(status_code=404, detail=f"Unknown card: {card_id}")
    return CardResponse.from_card(card)


@app.get("/cards/{card_id}/intervals")
async def get_next_intervals(card_id: str, scheduler: Scheduler = Depends(get_scheduler)):
    """Preview the next interval for each answer button."""
    intervals = scheduler.get_next_intervals(card_id)
    if intervals is None:
        raise HTTPException(status_code=404, detail=f"Unknown card: {card_id}")
    return {str(int(q)): label for q, label in intervals.items()}


@app.get("/queue", response_model=list[CardResponse])
async def get_queue(scheduler: Scheduler = Depends(get_scheduler)):
    return [CardResponse.from_card(c) for c in scheduler.get_review_queue()]


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@app.get("/stats")
async def get_overall_stats(scheduler: Scheduler = Depends(get_scheduler)):
    return asdict(scheduler.get_overall_stats())


@app.get("/stats/today")
async def get_today_stats(scheduler: Scheduler = Depends(get_scheduler)):
    return scheduler.get_today_stats().to_dict()


@app.get("/stats/forecast")
async def get_forecast(
    days: int = Query(default=30, ge=1, le=365),
    scheduler: Scheduler = Depends(get_scheduler),
):
    return [asdict(day) for day in scheduler.get_forecast(days)]


@app.get("/stats/intervals")
async def get_interval_distribution(scheduler: Scheduler = Depends(get_scheduler)):
    return scheduler.get_interval_distribution()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@app.get("/settings")
async def get_settings(scheduler: Scheduler = Depends(get_scheduler)):
    return scheduler.get_settings().to_dict()


@app.put("/settings")
async def update_settings(
    req: SettingsRequest, scheduler: Scheduler = Depends(get_scheduler)
):
    changes = req.model_dump(exclude_none=True)
    logger.info(f"Settings update via API: {changes}")
    return _persisted(scheduler.update_settings, **changes).to_dict()
