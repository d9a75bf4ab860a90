"""
Session CSV Export

Builds a CSV of a user's practice sessions for download. Multipliers are
back-calculated from the stored duration and streak with the same formulas
used at ingestion, so effective_minutes = duration × both multipliers holds
row by row.
"""

from typing import Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meditrack.db.models import PracticeSession, Technique
from meditrack.enums.mastery import SessionSource
from meditrack.services.mastery.formulas import (
    CurveParams,
    duration_multiplier,
    streak_multiplier,
)
from meditrack.services.mastery.timeutil import as_utc

EXPORT_COLUMNS = [
    "session_id",
    "date",
    "occurred_at",
    "technique_id",
    "technique",
    "duration_minutes",
    "duration_multiplier",
    "streak",
    "streak_multiplier",
    "effective_minutes",
    "source",
]


async def fetch_sessions_dataframe(
    db: AsyncSession, user_id: str, params: Optional[CurveParams] = None
) -> pd.DataFrame:
    """
    Fetch a user's sessions, oldest first, as a DataFrame.

    Returns:
        DataFrame with EXPORT_COLUMNS (empty when the user has no sessions).
    """
    p = params or CurveParams.from_settings()
    result = await db.execute(
        select(PracticeSession, Technique.name)
        .join(Technique, Technique.id == PracticeSession.technique_id)
        .where(PracticeSession.user_id == user_id)
        .order_by(PracticeSession.occurred_at, PracticeSession.id)
    )
    rows = result.all()

    if not rows:
        return pd.DataFrame(columns=EXPORT_COLUMNS)

    records = []
    for session, name in rows:
        occurred_at = as_utc(session.occurred_at)
        records.append(
            {
                "session_id": session.id,
                "date": occurred_at.date().isoformat(),
                "occurred_at": occurred_at.isoformat(),
                "technique_id": session.technique_id,
                "technique": name,
                "duration_minutes": session.duration_minutes,
                "duration_multiplier": duration_multiplier(session.duration_minutes, p),
                "streak": session.streak_applied,
                "streak_multiplier": streak_multiplier(session.streak_applied, p),
                "effective_minutes": session.effective_minutes,
                "source": (
                    SessionSource.MANUAL if session.manual_entry else SessionSource.TIMER
                ).value,
            }
        )

    df = pd.DataFrame(records, columns=EXPORT_COLUMNS)
    return df.round(
        {"duration_multiplier": 4, "streak_multiplier": 4, "effective_minutes": 2}
    )


async def export_sessions_csv(
    db: AsyncSession, user_id: str, params: Optional[CurveParams] = None
) -> str:
    """Serialize a user's sessions to CSV text with a header row."""
    df = await fetch_sessions_dataframe(db, user_id, params)
    return df.to_csv(index=False)
