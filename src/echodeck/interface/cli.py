"""echodeck CLI: card, queue, stats and server commands."""

import json
import logging
import sys
import time
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from pydantic import ValidationError

from echodeck.application.config import AppConfig, resolve_config
from echodeck.application.factory import build_scheduler
from echodeck.application.scheduler import Scheduler
from echodeck.domain.errors import SchedulerError
from echodeck.domain.models import Card, Quality

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="echodeck: spaced-repetition review for subtitle phrases.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage echodeck configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

QUALITY_NAMES = {q.name.lower(): q for q in Quality}


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding the collection.")
    ] = None,
    backend: Annotated[str | None, typer.Option(help="Store backend: json, memory.")] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for echodeck."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"data_dir": data_dir, "backend": backend}
    if verbose >= 2:
        logging.getLogger("echodeck").setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger("echodeck").setLevel(logging.INFO)


def _config(ctx: typer.Context, **extra: Any) -> AppConfig:
    overrides = {**(ctx.obj or {}).get("overrides", {}), **extra}
    try:
        return resolve_config(overrides)
    except ValidationError as e:
        _fail(f"Invalid configuration: {e}")


def _scheduler(ctx: typer.Context) -> Scheduler:
    return build_scheduler(_config(ctx))


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg="red", err=True)
    raise typer.Exit(1)


def _parse_quality(value: str) -> int:
    """Accept 1-4 or again/hard/good/easy."""
    value = value.strip().lower()
    if value in QUALITY_NAMES:
        return int(QUALITY_NAMES[value])
    try:
        return int(value)
    except ValueError:
        return -1


def _describe(card: Card) -> str:
    return (
        f"{card.id} [{card.state.name.lower()}] interval={card.interval}d "
        f"ease={card.ease:.2f} reps={card.reps} lapses={card.lapses}"
    )


def _format_intervals(intervals: dict[Quality, str]) -> str:
    return "  ".join(f"{int(q)}:{q.name.lower()} {label}" for q, label in intervals.items())


# ---------------------------------------------------------------------------
# Card commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID, e.g. the phrase itself.")],
    payload: Annotated[
        str | None, typer.Option(help="JSON payload stored with the card.")
    ] = None,
):
    """Add a card (no-op if it already exists)."""
    data: Any = None
    if payload is not None:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            _fail(f"Payload is not valid JSON: {e}")

    scheduler = _scheduler(ctx)
    existed = scheduler.get_card(card_id) is not None
    try:
        card = scheduler.get_or_create_card(card_id, data)
    except SchedulerError as e:
        _fail(str(e))

    if existed:
        typer.secho(f"Already exists: {_describe(card)}", fg="yellow")
    else:
        typer.secho(f"Added: {_describe(card)}", fg="green")


@app.command()
def answer(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    quality: Annotated[str, typer.Argument(help="1-4 or again/hard/good/easy.")],
):
    """Answer a card once, outside of a review session."""
    scheduler = _scheduler(ctx)
    try:
        card = scheduler.answer_card(card_id, _parse_quality(quality))
    except SchedulerError as e:
        _fail(str(e))

    if card is None:
        _fail(f"Unknown card: {card_id}")
    typer.echo(_describe(card))


@app.command()
def preview(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
):
    """Show where each answer would send a card."""
    intervals = _scheduler(ctx).get_next_intervals(card_id)
    if intervals is None:
        _fail(f"Unknown card: {card_id}")
    typer.echo(_format_intervals(intervals))


# ---------------------------------------------------------------------------
# Queue commands
# ---------------------------------------------------------------------------


@app.command()
def queue(ctx: typer.Context):
    """List today's review queue in study order."""
    cards = _scheduler(ctx).get_review_queue()
    if not cards:
        typer.secho("Nothing to review today.", fg="green")
        return
    for i, card in enumerate(cards, 1):
        typer.echo(f"{i:>3}. {_describe(card)}")


@app.command()
def review(ctx: typer.Context):
    """Study today's queue interactively. Enter q to stop."""
    from echodeck.application.session import ReviewSession

    session = ReviewSession(_scheduler(ctx))
    if session.finished:
        typer.secho("Nothing to review today.", fg="green")
        return

    while not session.finished:
        card = session.current
        counts = session.counts()
        typer.echo(
            f"\n[new {counts.new} | learning {counts.learning} | review {counts.review}]"
        )
        typer.secho(card.id, bold=True)
        started = time.monotonic()
        typer.prompt("Press Enter to show the answer", default="", show_default=False)
        if card.payload is not None:
            typer.echo(json.dumps(card.payload, ensure_ascii=False, indent=2))
        typer.echo(_format_intervals(session.next_intervals()))

        raw = typer.prompt("Answer")
        if raw.strip().lower() == "q":
            break
        try:
            session.answer(_parse_quality(raw), int((time.monotonic() - started) * 1000))
        except SchedulerError as e:
            typer.secho(str(e), fg="red")

    summary = session.summary()
    typer.secho(
        f"\nReviewed {summary['reviewed']} "
        f"(again {summary['again']}, hard {summary['hard']}, "
        f"good {summary['good']}, easy {summary['easy']}). "
        f"Retention {summary['retention']}%.",
        fg="green",
    )


# ---------------------------------------------------------------------------
# Stats commands
# ---------------------------------------------------------------------------


@app.command()
def stats(ctx: typer.Context):
    """Show collection and today's statistics as JSON."""
    scheduler = _scheduler(ctx)
    out = {
        "overall": asdict(scheduler.get_overall_stats()),
        "today": scheduler.get_today_stats().to_dict(),
    }
    typer.echo(json.dumps(out, indent=2))


@app.command()
def forecast(
    ctx: typer.Context,
    days: Annotated[int, typer.Option(min=1, help="Days to forecast, today included.")] = 7,
):
    """Show how many review cards fall due on each coming day."""
    for day in _scheduler(ctx).get_forecast(days):
        typer.echo(f"{day.date}  {day.due:>4}  {'#' * day.due}")


@app.command()
def intervals(ctx: typer.Context):
    """Show the distribution of review intervals."""
    for bucket, count in _scheduler(ctx).get_interval_distribution().items():
        typer.echo(f"{bucket:>4}  {count}")


@app.command()
def settings(
    ctx: typer.Context,
    new_per_day: Annotated[int | None, typer.Option(min=0, help="New cards per day.")] = None,
    max_reviews: Annotated[int | None, typer.Option(min=0, help="Max reviews per day.")] = None,
    timer: Annotated[
        bool | None, typer.Option("--timer/--no-timer", help="Show the answer timer.")
    ] = None,
):
    """Show or change study settings."""
    scheduler = _scheduler(ctx)
    changes = {
        "new_cards_per_day": new_per_day,
        "max_reviews_per_day": max_reviews,
        "show_answer_timer": timer,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if changes:
        try:
            scheduler.update_settings(**changes)
        except SchedulerError as e:
            _fail(str(e))
    typer.echo(json.dumps(scheduler.get_settings().to_dict(), indent=2))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def server(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Port.")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
):
    """Run the HTTP API."""
    import os

    import uvicorn

    config = _config(ctx, host=host, port=port)
    overrides = {k: v for k, v in (ctx.obj or {}).get("overrides", {}).items() if v is not None}
    # The app builds its own scheduler from config; hand our overrides over via env
    for key, value in overrides.items():
        os.environ[f"ECHODECK_{key.upper()}"] = str(value)

    uvicorn.run("echodeck.server:app", host=config.host, port=config.port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
