from __future__ import annotations

import datetime
import os
from typing import Any, Dict, List, Optional

from sqlalchemy import Date, DateTime, Integer, String, create_engine, func, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .config import DB_PATH


class Base(DeclarativeBase):
    pass


engine = create_engine(f"sqlite:///{DB_PATH}")
# Prevent attribute expiration on commit so returned objects remain accessible
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class UserSettings(Base):
    __tablename__ = "user_settings"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    api_token: Mapped[Optional[str]] = mapped_column(String)
    display_method: Mapped[str] = mapped_column(String, default="term")


class ReviewRecord(Base):
    """A review result that was accepted by WaniKani."""
    __tablename__ = "review_records"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user: Mapped[str] = mapped_column(String, nullable=False)
    assignment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    incorrect_meaning_answers: Mapped[int] = mapped_column(Integer, default=0)
    incorrect_reading_answers: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=lambda: datetime.datetime.now(datetime.UTC))


class DailyProgress(Base):
    __tablename__ = "daily_progress"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, default=lambda: datetime.date.today())
    reviews_completed: Mapped[int] = mapped_column(Integer, default=0)
    lessons_viewed: Mapped[int] = mapped_column(Integer, default=0)


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    table_names = set(inspect(engine).get_table_names())
    return {"user_settings", "review_records", "daily_progress"}.issubset(table_names)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    if engine.url.database and engine.url.database != ":memory:":
        directory = os.path.dirname(os.path.abspath(engine.url.database))
        os.makedirs(directory, exist_ok=True)
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


def get_settings(user: str) -> Optional[UserSettings]:
    session = get_session()
    try:
        return session.query(UserSettings).filter_by(user=user).first()
    finally:
        session.close()


def save_settings(user: str, api_token: Optional[str] = None, display_method: Optional[str] = None) -> UserSettings:
    """Create or update the settings row for ``user``; None leaves a field untouched."""
    session = get_session()
    try:
        settings = session.query(UserSettings).filter_by(user=user).first()
        if settings is None:
            settings = UserSettings(user=user, display_method="term")
            session.add(settings)
        if api_token is not None:
            settings.api_token = api_token
        if display_method is not None:
            settings.display_method = display_method
        session.commit()
        return settings
    finally:
        session.close()


def _today_row(session: Session, user: str) -> DailyProgress:
    today = datetime.date.today()
    row = session.query(DailyProgress).filter_by(user=user, date=today).first()
    if row is None:
        row = DailyProgress(user=user, date=today, reviews_completed=0, lessons_viewed=0)
        session.add(row)
    return row


def record_review(user: str, assignment_id: int, incorrect_meaning_answers: int, incorrect_reading_answers: int) -> None:
    session = get_session()
    try:
        session.add(ReviewRecord(
            user=user,
            assignment_id=assignment_id,
            incorrect_meaning_answers=incorrect_meaning_answers,
            incorrect_reading_answers=incorrect_reading_answers,
        ))
        _today_row(session, user).reviews_completed += 1
        session.commit()
    finally:
        session.close()


def record_lessons_viewed(user: str, count: int = 1) -> None:
    if count <= 0:
        return
    session = get_session()
    try:
        _today_row(session, user).lessons_viewed += count
        session.commit()
    finally:
        session.close()


def get_daily_progress(user: str, days: int = 30) -> List[Dict[str, Any]]:
    """Per-day counters for the last ``days`` days, oldest first."""
    since = datetime.date.today() - datetime.timedelta(days=days - 1)
    session = get_session()
    try:
        rows = (
            session.query(DailyProgress)
            .filter(DailyProgress.user == user, DailyProgress.date >= since)
            .order_by(DailyProgress.date)
            .all()
        )
        return [
            {
                "date": row.date.isoformat(),
                "reviews_completed": row.reviews_completed,
                "lessons_viewed": row.lessons_viewed,
            }
            for row in rows
        ]
    finally:
        session.close()


def get_progress(user: str) -> Optional[Dict[str, Any]]:
    """Totals over every recorded review; a review counts as correct when it had no misses."""
    session = get_session()
    try:
        total = session.query(func.count(ReviewRecord.id)).filter(ReviewRecord.user == user).scalar() or 0
        if total == 0:
            return None
        correct = (
            session.query(func.count(ReviewRecord.id))
            .filter(
                ReviewRecord.user == user,
                ReviewRecord.incorrect_meaning_answers == 0,
                ReviewRecord.incorrect_reading_answers == 0,
            )
            .scalar()
            or 0
        )
        last = session.query(func.max(ReviewRecord.created_at)).filter(ReviewRecord.user == user).scalar()
        return {
            "total_reviews": total,
            "correct_answers": correct,
            "accuracy": correct / total * 100,
            "last_updated": last,
        }
    finally:
        session.close()
