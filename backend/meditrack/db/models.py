"""
SQLAlchemy Database Models for the Mastery Engine

Tables:
- techniques: Minimal technique rows (owner + display name) used for
  ownership checks and cascading deletes
- practice_sessions: Logged sessions with the effective minutes they earned
- mastery_records: Current mastery state per (user, technique)
- mastery_history: Append-only snapshots of mastery records for charting
- practice_streaks: Global consecutive-day streak per user

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: meditrack/models/mastery.py

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from meditrack.db.base import Base


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# ===========================================
# Technique Library
# ===========================================


class Technique(Base):
    """
    A meditation technique in a user's library.

    The library UI owns names, instructions and metadata; the engine only
    needs to know who owns the technique.

    Attributes:
        id: Primary key.
        user_id: Opaque id of the owning user.
        name: Display name.
        tradition: Optional tradition label (e.g. "Zen", "Vipassana").
        created_at: Creation timestamp.
    """

    __tablename__ = "techniques"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(200))
    tradition: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


# ===========================================
# Practice Sessions
# ===========================================


class PracticeSession(Base):
    """
    A completed practice session.

    Attributes:
        id: Primary key.
        user_id: Opaque id of the user who practiced.
        technique_id: Technique practiced. Deleted with the technique.
        duration_minutes: Raw duration in minutes (> 0).
        effective_minutes: Minutes folded into the mastery record after the
            duration and streak multipliers.
        streak_applied: Streak used for the streak multiplier. Kept so an
            edited duration is recomputed with the same multiplier.
        manual_entry: True for manually logged (possibly backdated) sessions,
            False for timer sessions.
        occurred_at: When the session took place.
        created_at: When the session was logged.
    """

    __tablename__ = "practice_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    technique_id: Mapped[int] = mapped_column(
        ForeignKey("techniques.id", ondelete="CASCADE"), index=True
    )

    duration_minutes: Mapped[float] = mapped_column(Float)
    effective_minutes: Mapped[float] = mapped_column(Float)
    streak_applied: Mapped[int] = mapped_column(Integer, default=0)
    manual_entry: Mapped[bool] = mapped_column(Boolean, default=False)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


# ===========================================
# Mastery
# ===========================================


class MasteryRecord(Base):
    """
    Current mastery state for one technique of one user.

    mastery_score is always written together with cumulative_effective_minutes
    and derived from it; it is never set on its own.

    Attributes:
        id: Primary key.
        user_id: Owning user.
        technique_id: Technique tracked by this record.
        cumulative_effective_minutes: Non-negative driver of the score.
        mastery_score: Logistic readout of the cumulative minutes (0-100).
        streak: The user's global streak at the time of the last write.
        last_practiced_at: Latest session time for this technique.
        last_decay_applied_at: UTC midnight of the last day decay ran.
        updated_at: Last write time; history points never predate it.
    """

    __tablename__ = "mastery_records"
    __table_args__ = (
        UniqueConstraint("user_id", "technique_id", name="uq_mastery_user_technique"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    technique_id: Mapped[int] = mapped_column(
        ForeignKey("techniques.id", ondelete="CASCADE")
    )

    cumulative_effective_minutes: Mapped[float] = mapped_column(Float, default=0.0)
    mastery_score: Mapped[float] = mapped_column(Float, default=0.0)
    streak: Mapped[int] = mapped_column(Integer, default=0)

    last_practiced_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    last_decay_applied_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class MasteryHistory(Base):
    """
    Append-only snapshot of a mastery record, written in the same
    transaction as the change it mirrors.

    Attributes:
        id: Primary key.
        user_id: Owning user.
        technique_id: Technique the snapshot belongs to.
        recorded_at: Snapshot time (non-decreasing per technique).
        mastery_score: Score at write time.
        cumulative_effective_minutes: Cumulative minutes at write time.
    """

    __tablename__ = "mastery_history"
    __table_args__ = (
        Index("ix_mastery_history_technique_recorded", "technique_id", "recorded_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    technique_id: Mapped[int] = mapped_column(
        ForeignKey("techniques.id", ondelete="CASCADE")
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    mastery_score: Mapped[float] = mapped_column(Float)
    cumulative_effective_minutes: Mapped[float] = mapped_column(Float)


class PracticeStreak(Base):
    """
    Consecutive practice days for a user, across all techniques.

    Attributes:
        user_id: Primary key, opaque user id.
        streak: Number of consecutive calendar days (UTC) with a session.
        last_practiced_on: Most recent calendar day with a session.
        updated_at: Last write time.
    """

    __tablename__ = "practice_streaks"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    streak: Mapped[int] = mapped_column(Integer, default=0)
    last_practiced_on: Mapped[Optional[date]] = mapped_column(Date)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
