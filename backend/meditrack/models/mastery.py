"""
Mastery Engine API Models (Pydantic)

Request/response schemas for:
- Session logging (timer and manual entries), edits and deletes
- Mastery records and history series for charting
- Daily decay summaries
- Profile statistics and multiplier previews
- Minimal technique rows

ARCHITECTURE NOTE:
    This file contains PYDANTIC models for API validation.
    There is a corresponding SQLAlchemy file: meditrack/db/models.py

    Data flows: API Request → Pydantic → Service → SQLAlchemy → Database

Duration validation (> 0, finite) deliberately lives in the service layer so
that every entry point raises the same InvalidDurationError.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import AwareDatetime, BaseModel, Field

from meditrack.enums.mastery import DecayOutcome
from meditrack.models.base import StrictRequest, StrictResponse


# ===========================================
# Technique Models
# ===========================================


class TechniqueCreate(StrictRequest):
    """Request to register a technique in a user's library."""

    name: str = Field(..., min_length=1, max_length=200)
    tradition: Optional[str] = Field(None, max_length=100)


class TechniqueResponse(StrictResponse):
    """A technique row."""

    id: int
    user_id: str
    name: str
    tradition: Optional[str] = None
    created_at: datetime


# ===========================================
# Session Models
# ===========================================


class RecordSessionRequest(StrictRequest):
    """
    A completed timer session.

    occurred_at defaults to the time the request is processed; timestamps in
    the future are rejected.
    """

    technique_id: int
    duration_minutes: float = Field(..., description="Minutes practiced (> 0)")
    occurred_at: Optional[AwareDatetime] = None


class ManualSessionRequest(StrictRequest):
    """A manually logged session for a past (or the current) day."""

    technique_id: int
    duration_minutes: float = Field(..., description="Minutes practiced (> 0)")
    session_date: date


class SessionUpdateRequest(StrictRequest):
    """Corrected duration for an existing session."""

    duration_minutes: float = Field(..., description="Minutes practiced (> 0)")


class RecordSessionResponse(StrictResponse):
    """
    Outcome of folding a session into its mastery record.

    The first three fields are the RecordSession contract; the rest explain
    how the effective minutes were derived.
    """

    mastery_score: float
    cumulative_effective_minutes: float
    streak: int
    session_id: int
    technique_id: int
    effective_minutes: float
    duration_multiplier: float
    streak_multiplier: float
    streak_applied: int


class SessionResponse(StrictResponse):
    """A stored practice session."""

    id: int
    technique_id: int
    duration_minutes: float
    effective_minutes: float
    streak_applied: int
    manual_entry: bool
    occurred_at: datetime


# ===========================================
# Mastery Models
# ===========================================


class MasteryRecordResponse(StrictResponse):
    """Current mastery state for one technique."""

    technique_id: int
    cumulative_effective_minutes: float
    mastery_score: float
    streak: int
    last_practiced_at: Optional[datetime] = None
    last_decay_applied_at: Optional[datetime] = None


class MasteryRecordList(BaseModel):
    """All mastery records of a user."""

    user_id: str
    records: list[MasteryRecordResponse]


class MasteryHistoryPoint(StrictResponse):
    """One snapshot of a mastery record."""

    recorded_at: datetime
    mastery_score: float
    cumulative_effective_minutes: float


class MasteryHistoryResponse(BaseModel):
    """History series for charting, oldest first."""

    technique_id: int
    points: list[MasteryHistoryPoint]


class MultiplierPreview(BaseModel):
    """Multipliers a session of the given length would earn."""

    duration_minutes: float
    streak: int
    duration_multiplier: float
    streak_multiplier: float
    effective_minutes: float


# ===========================================
# Decay Models
# ===========================================


class DecayRecordResult(BaseModel):
    """Decay outcome for one technique."""

    technique_id: int
    outcome: DecayOutcome
    cumulative_before: Optional[float] = None
    cumulative_after: Optional[float] = None


class DecayRunSummary(BaseModel):
    """
    Result of ApplyDailyDecay for one user and day.

    already_applied is True when every record had already been processed for
    the day, i.e. the call was a no-op.
    """

    user_id: str
    day: date
    techniques_total: int = 0
    decayed: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    already_applied: bool = False
    results: list[DecayRecordResult] = Field(default_factory=list)


# ===========================================
# Profile Models
# ===========================================


class RecentTechnique(BaseModel):
    """A recently practiced technique."""

    technique_id: int
    name: str
    mastery_score: float
    last_practiced_at: Optional[datetime] = None


class ProfileStats(BaseModel):
    """Headline practice statistics for a user profile."""

    user_id: str
    current_streak: int
    total_minutes: float
    total_sessions: int
    recent_techniques: list[RecentTechnique] = Field(default_factory=list)
