"""
Mastery record helpers shared by session ingestion and the decay job.

Every change to a record's cumulative minutes goes through set_cumulative so
the score is recomputed in the same write, and is followed by a history
point built from the record itself. Callers hold the row lock
(lock_record) and commit both together.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meditrack.db.models import MasteryHistory, MasteryRecord
from meditrack.services.mastery.formulas import CurveParams, mastery_from_minutes
from meditrack.services.mastery.timeutil import later_of


async def lock_record(
    db: AsyncSession, user_id: str, technique_id: int
) -> Optional[MasteryRecord]:
    """Fetch a user's record for a technique with a row lock (FOR UPDATE)."""
    result = await db.execute(
        select(MasteryRecord)
        .where(
            MasteryRecord.user_id == user_id,
            MasteryRecord.technique_id == technique_id,
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


def new_record(
    user_id: str, technique_id: int, params: Optional[CurveParams] = None
) -> MasteryRecord:
    """An empty record, with column defaults filled in on the Python side."""
    return MasteryRecord(
        user_id=user_id,
        technique_id=technique_id,
        cumulative_effective_minutes=0.0,
        mastery_score=mastery_from_minutes(0.0, params),
        streak=0,
    )


def set_cumulative(
    record: MasteryRecord,
    cumulative: float,
    now: datetime,
    params: Optional[CurveParams] = None,
) -> datetime:
    """
    Write cumulative minutes (floored at 0) and the matching score.

    Returns:
        The write timestamp, never earlier than the record's previous write,
        so history points stay ordered.
    """
    cumulative = max(0.0, cumulative)
    stamp = later_of(now, record.updated_at)
    record.cumulative_effective_minutes = cumulative
    record.mastery_score = mastery_from_minutes(cumulative, params)
    record.updated_at = stamp
    return stamp


def history_point(record: MasteryRecord) -> MasteryHistory:
    """Snapshot of the record as it stands now."""
    return MasteryHistory(
        user_id=record.user_id,
        technique_id=record.technique_id,
        recorded_at=record.updated_at,
        mastery_score=record.mastery_score,
        cumulative_effective_minutes=record.cumulative_effective_minutes,
    )
