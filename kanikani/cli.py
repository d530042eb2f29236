from __future__ import annotations

import datetime
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import click
from sqlalchemy.exc import SQLAlchemyError

from . import config, db
from .api import WaniKaniClient
from .display import DISPLAY_METHODS, run_with_display
from .errors import AuthenticationError, KanikaniError
from .romaji import romaji_to_hiragana
from .sessions import LessonSession, ReviewSession, SessionSummary

logger = logging.getLogger(__name__)

WELCOME = "ようこそ！ Welcome to kanikani - the CLI tool for doing your WaniKani reviews!"

display_option = click.option(
    "--display",
    "display_method",
    type=click.Choice(DISPLAY_METHODS),
    default=None,
    help="term: plain console, tui: full-screen curses interface",
)
limit_option = click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum number of items")


def make_client(api_token: str) -> WaniKaniClient:
    return WaniKaniClient(api_token)


class HistorySink:
    """Submit results to WaniKani, then keep a local copy for `kanikani progress`."""

    def __init__(self, client: WaniKaniClient, user: str) -> None:
        self.client = client
        self.user = user

    def submit_review(self, assignment_id: int, incorrect_meaning_answers: int, incorrect_reading_answers: int) -> None:
        self.client.submit_review(assignment_id, incorrect_meaning_answers, incorrect_reading_answers)
        # WaniKani already has the result; a failed local write only loses history
        try:
            db.record_review(self.user, assignment_id, incorrect_meaning_answers, incorrect_reading_answers)
        except SQLAlchemyError as e:
            logger.warning("Could not record review for assignment %s locally: %s", assignment_id, e)


def _ensure_db() -> None:
    if not db.is_db_initialized():
        db.init_db()


@contextmanager
def _api_errors() -> Iterator[None]:
    try:
        yield
    except AuthenticationError as e:
        raise click.ClickException(f"{e}. Run 'kanikani login <token>' with a valid token.") from e
    except KanikaniError as e:
        raise click.ClickException(str(e)) from e


@contextmanager
def _client() -> Iterator[WaniKaniClient]:
    _ensure_db()
    settings = db.get_settings(config.current_user())
    token = config.resolve_api_token(settings.api_token if settings else None)
    if not token:
        raise click.ClickException(
            f"No API token configured. Run 'kanikani login <token>' or set {config.TOKEN_ENV_VAR}."
        )
    client = make_client(token)
    try:
        yield client
    finally:
        client.close()


def _display_method(option: Optional[str]) -> str:
    settings = db.get_settings(config.current_user())
    return config.resolve_display_method(option, settings.display_method if settings else None)


def _echo_summary(summary: SessionSummary) -> None:
    if summary.total == 0:
        return
    if summary.kind == "review":
        click.echo(
            f"Reviewed {summary.completed}/{summary.total} items: "
            f"{summary.passed} passed, {summary.failed} with mistakes "
            f"({summary.incorrect_meaning} meaning, {summary.incorrect_reading} reading misses)"
        )
    else:
        click.echo(f"Viewed {summary.completed}/{summary.total} lessons")
    if summary.aborted:
        click.secho(f"Session stopped early: {summary.error}", fg="red", err=True)


def _run_reviews(client: WaniKaniClient, display: Any, limit: Optional[int]) -> SessionSummary:
    assignments = client.fetch_review_assignments()
    if limit:
        assignments = assignments[:limit]
    sink = HistorySink(client, config.current_user())
    return ReviewSession(client, assignments, display, sink=sink).run()


def _run_lessons(client: WaniKaniClient, display: Any, limit: Optional[int]) -> SessionSummary:
    subject_ids = [a.subject_id for a in client.fetch_lesson_assignments()]
    if limit:
        subject_ids = subject_ids[:limit]
    summary = LessonSession(client, subject_ids, display).run()
    try:
        db.record_lessons_viewed(config.current_user(), summary.completed)
    except SQLAlchemyError as e:
        logger.warning("Could not record lesson progress locally: %s", e)
    return summary


def _summary_text(client: WaniKaniClient) -> str:
    summary = client.fetch_summary()
    lines = [
        f"Lessons available: {len(summary.available_lessons())}",
        f"Reviews available: {len(summary.available_reviews())}",
    ]
    if summary.next_reviews_at:
        local = summary.next_reviews_at.astimezone()
        lines.append(f"Next reviews at: {local:%Y-%m-%d %H:%M}")
    return "\n".join(lines)


@click.group()
@click.version_option(package_name="kanikani")
def cli() -> None:
    """Do your WaniKani lessons and reviews from the terminal."""
    config.configure_logging()


@cli.command("init")
def init_db() -> None:
    """Initialize the local database."""
    db.init_db()
    click.echo(f"Database initialized at {config.DB_PATH}.")


@cli.command("login")
@click.argument("token")
@display_option
def login(token: str, display_method: Optional[str]) -> None:
    """Check an API token and store it for later sessions."""
    _ensure_db()
    with _api_errors():
        client = make_client(token)
        try:
            client.authenticate()
        finally:
            client.close()
    db.save_settings(config.current_user(), api_token=token, display_method=display_method)
    click.echo("Logged in. Token saved.")


@cli.command("whoami")
def whoami() -> None:
    """Show the WaniKani account behind the stored token."""
    with _api_errors(), _client() as client:
        user = client.fetch_user()
    click.echo(f"User: {user.username}")
    click.echo(f"  Level: {user.level}")
    click.echo(f"  Subscription: {'active' if user.subscription_active else 'inactive'} (max level {user.max_level_granted})")
    if user.profile_url:
        click.echo(f"  Profile: {user.profile_url}")


@cli.command("summary")
def summary() -> None:
    """Show available lessons and reviews."""
    with _api_errors(), _client() as client:
        click.echo(_summary_text(client))


@cli.command("reviews")
@display_option
@limit_option
def reviews(display_method: Optional[str], limit: Optional[int]) -> None:
    """Run a review session over everything due now."""
    with _api_errors(), _client() as client:
        method = _display_method(display_method)
        result = run_with_display(method, lambda display: _run_reviews(client, display, limit))
    _echo_summary(result)


@cli.command("lessons")
@display_option
@limit_option
def lessons(display_method: Optional[str], limit: Optional[int]) -> None:
    """Walk through the lessons that are unlocked."""
    with _api_errors(), _client() as client:
        method = _display_method(display_method)
        result = run_with_display(method, lambda display: _run_lessons(client, display, limit))
    _echo_summary(result)


@cli.command("progress")
@click.option("--days", type=click.IntRange(min=1), default=7, help="Days of history to show")
def progress(days: int) -> None:
    """Show locally recorded review history."""
    _ensure_db()
    user = config.current_user()
    totals = db.get_progress(user)
    if not totals:
        click.echo(f"No reviews recorded for '{user}' yet.")
        return

    click.echo(f"Progress for {user}:")
    click.echo(f"  Total reviews: {totals['total_reviews']}")
    click.echo(f"  Correct on first try: {totals['correct_answers']}")
    click.echo(f"  Accuracy: {totals['accuracy']:.1f}%")
    if isinstance(totals["last_updated"], datetime.datetime):
        click.echo(f"  Last review: {totals['last_updated']:%Y-%m-%d %H:%M}")
    for day in db.get_daily_progress(user, days=days):
        click.echo(f"  {day['date']}: {day['reviews_completed']} reviews, {day['lessons_viewed']} lessons")


@cli.command("romaji")
@click.argument("text")
def romaji(text: str) -> None:
    """Convert romaji to hiragana the way reading answers are checked."""
    click.echo(romaji_to_hiragana(text))


@cli.command("start")
@display_option
def start(display_method: Optional[str]) -> None:
    """Show the main menu."""
    options = ["Start reviews", "Start lessons", "Show summary", "Quit"]

    def menu_loop(display: Any) -> None:
        display.show(WELCOME)
        while True:
            choice = display.menu("Main Menu", options)
            if choice == 0:
                _run_reviews(client, display, None)
            elif choice == 1:
                _run_lessons(client, display, None)
            elif choice == 2:
                display.show(_summary_text(client))
            else:
                break

    with _api_errors(), _client() as client:
        run_with_display(_display_method(display_method), menu_loop)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
