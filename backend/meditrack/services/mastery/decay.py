"""
Daily Mastery Decay

Mastery fades when a technique is not practiced. Once per day per user, every
mastery record loses

    (cumulative × 1% + 5 minutes) × activity_coupling(days since any practice)

effective minutes, never going below zero.

Activity coupling:
    Practicing *any* technique slows decay everywhere. The coupling is 0 on a
    day the user practiced something, so nothing decays that day, and climbs
    towards 1.0 the longer the user has been away from the cushion altogether:

        coupling(g) = 1 - e^(-g / 3)

    A technique practiced on the decay day itself never decays.

Missed runs:
    If the job did not run for a few days, the daily rule is applied once per
    missed day, oldest first, with the idle counts each of those days had
    (capped at DECAY_MAX_CATCHUP_DAYS). The first run for a record applies a
    single day.

Idempotence:
    Each record stores last_decay_applied_at (UTC midnight of the decay day).
    A record already decayed for the day is skipped, so running the job twice
    on the same day leaves identical state.

Usage:
    from meditrack.services.mastery.decay import DecayService

    service = DecayService(db)
    summary = await service.apply_daily_decay("user-1", today=date(2026, 3, 1))
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meditrack.config import settings
from meditrack.db.models import MasteryRecord, PracticeStreak
from meditrack.enums.mastery import DecayOutcome
from meditrack.models.mastery import DecayRecordResult, DecayRunSummary
from meditrack.services.mastery.formulas import CurveParams
from meditrack.services.mastery.records import history_point, set_cumulative
from meditrack.services.mastery.timeutil import (
    start_of_day,
    utc_day,
    utc_now,
    utc_today,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecayParams:
    """Constants of the decay rule. Defaults come from settings."""

    daily_fraction: float = 0.01
    daily_minutes: float = 5.0
    activity_damping: float = 1.0
    recency_scale_days: float = 3.0
    max_catchup_days: int = 30

    @classmethod
    def from_settings(cls) -> "DecayParams":
        return cls(
            daily_fraction=settings.DECAY_DAILY_FRACTION,
            daily_minutes=settings.DECAY_DAILY_MINUTES,
            activity_damping=settings.DECAY_ACTIVITY_DAMPING,
            recency_scale_days=settings.DECAY_RECENCY_SCALE_DAYS,
            max_catchup_days=settings.DECAY_MAX_CATCHUP_DAYS,
        )


# ===========================================
# Pure decay rule
# ===========================================


def activity_coupling(global_idle_days: float, params: Optional[DecayParams] = None) -> float:
    """
    Fraction of the full daily decay that applies.

    Args:
        global_idle_days: Days since the user practiced any technique.
        params: Decay constants (settings when omitted).

    Returns:
        1 - damping at 0 idle days, strictly increasing towards 1.0.
    """
    p = params or DecayParams.from_settings()
    idle = max(0.0, global_idle_days)
    return 1.0 - p.activity_damping * math.exp(-idle / p.recency_scale_days)


def daily_decay_amount(
    cumulative: float,
    technique_idle_days: int,
    global_idle_days: int,
    params: Optional[DecayParams] = None,
) -> float:
    """
    Effective minutes one day of decay removes from a record.

    Returns 0 when the technique was practiced on that day.
    """
    if technique_idle_days <= 0:
        return 0.0
    p = params or DecayParams.from_settings()
    base = cumulative * p.daily_fraction + p.daily_minutes
    return base * activity_coupling(global_idle_days, p)


def decay_cumulative(
    cumulative: float,
    technique_idle_days: int,
    global_idle_days: int,
    days: int = 1,
    params: Optional[DecayParams] = None,
) -> float:
    """
    Apply the daily rule for `days` consecutive days ending today.

    Args:
        cumulative: Cumulative effective minutes before decay.
        technique_idle_days: Days since this technique was practiced, as of today.
        global_idle_days: Days since any technique was practiced, as of today.
        days: Number of days to decay (catch-up after missed runs).
        params: Decay constants (settings when omitted).

    Returns:
        Cumulative minutes after decay, never negative.
    """
    p = params or DecayParams.from_settings()
    days = max(0, min(days, p.max_catchup_days))

    for step in range(days):
        # Oldest day first; idle counts were smaller back then
        offset = days - 1 - step
        amount = daily_decay_amount(
            cumulative,
            technique_idle_days - offset,
            max(global_idle_days - offset, 0),
            p,
        )
        cumulative = max(0.0, cumulative - amount)

    return cumulative


# ===========================================
# Decay service
# ===========================================


class DecayService:
    """
    Applies the daily decay to a user's mastery records.

    Each record is processed in its own transaction; a failure on one
    technique is logged and counted without affecting the others.
    """

    def __init__(
        self,
        db: AsyncSession,
        params: Optional[DecayParams] = None,
        curve: Optional[CurveParams] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.params = params or DecayParams.from_settings()
        self.curve = curve or CurveParams.from_settings()
        self._clock = clock

    async def apply_daily_decay(
        self, user_id: str, today: Optional[date] = None
    ) -> DecayRunSummary:
        """
        Decay every mastery record of a user for the given day.

        Args:
            user_id: User whose records decay.
            today: Decay day (UTC date today when omitted).

        Returns:
            DecayRunSummary with per-outcome counts and per-technique results.
        """
        today = today or utc_today()
        summary = DecayRunSummary(user_id=user_id, day=today)

        result = await self.db.execute(
            select(MasteryRecord.id, MasteryRecord.technique_id)
            .where(MasteryRecord.user_id == user_id)
            .order_by(MasteryRecord.technique_id)
        )
        targets = result.all()
        global_idle = await self._global_idle_days(user_id, today)
        # Release the read snapshot before per-record transactions
        await self.db.commit()

        for record_id, technique_id in targets:
            try:
                outcome = await self._decay_record(record_id, today, global_idle)
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    f"Decay failed for user={user_id} technique={technique_id}: {e}",
                    exc_info=True,
                )
                outcome = DecayRecordResult(
                    technique_id=technique_id, outcome=DecayOutcome.FAILED
                )

            summary.results.append(outcome)

        summary.techniques_total = len(summary.results)
        summary.decayed = self._count(summary, DecayOutcome.DECAYED)
        summary.unchanged = self._count(summary, DecayOutcome.UNCHANGED)
        summary.skipped = self._count(summary, DecayOutcome.ALREADY_APPLIED)
        summary.failed = self._count(summary, DecayOutcome.FAILED)
        summary.already_applied = (
            summary.techniques_total > 0 and summary.skipped == summary.techniques_total
        )

        logger.info(
            f"Decay for user={user_id} day={today}: {summary.decayed} decayed, "
            f"{summary.unchanged} unchanged, {summary.skipped} already applied, "
            f"{summary.failed} failed"
        )
        return summary

    async def _decay_record(
        self, record_id: int, today: date, global_idle: Optional[int]
    ) -> DecayRecordResult:
        result = await self.db.execute(
            select(MasteryRecord).where(MasteryRecord.id == record_id).with_for_update()
        )
        record = result.scalar_one()

        applied_day = utc_day(record.last_decay_applied_at)
        if applied_day is not None and applied_day >= today:
            return DecayRecordResult(
                technique_id=record.technique_id, outcome=DecayOutcome.ALREADY_APPLIED
            )

        days = (today - applied_day).days if applied_day is not None else 1
        days = min(days, self.params.max_catchup_days)

        practiced_day = utc_day(record.last_practiced_at)
        technique_idle = (today - practiced_day).days if practiced_day else days
        # Practicing this technique counts as practicing something
        global_idle = technique_idle if global_idle is None else min(global_idle, technique_idle)

        before = record.cumulative_effective_minutes
        after = decay_cumulative(before, technique_idle, global_idle, days, self.params)

        record.last_decay_applied_at = start_of_day(today)
        if after != before:
            set_cumulative(record, after, self._clock(), self.curve)
            self.db.add(history_point(record))
            outcome = DecayOutcome.DECAYED
        else:
            outcome = DecayOutcome.UNCHANGED
        await self.db.flush()

        return DecayRecordResult(
            technique_id=record.technique_id,
            outcome=outcome,
            cumulative_before=before,
            cumulative_after=record.cumulative_effective_minutes,
        )

    async def _global_idle_days(self, user_id: str, today: date) -> Optional[int]:
        """Days since the user practiced any technique, or None if never."""
        streak = await self.db.get(PracticeStreak, user_id)
        last_day = streak.last_practiced_on if streak else None

        if last_day is None:
            result = await self.db.execute(
                select(func.max(MasteryRecord.last_practiced_at)).where(
                    MasteryRecord.user_id == user_id
                )
            )
            last_day = utc_day(result.scalar_one_or_none())

        if last_day is None:
            return None
        return max((today - last_day).days, 0)

    @staticmethod
    def _count(summary: DecayRunSummary, outcome: DecayOutcome) -> int:
        return sum(1 for r in summary.results if r.outcome == outcome)


async def apply_decay_for_all_users(
    session_maker: async_sessionmaker, today: Optional[date] = None
) -> list[DecayRunSummary]:
    """
    Run the daily decay for every user with a mastery record.

    Each user gets a fresh database session; one user's failure does not
    stop the others.
    """
    today = today or utc_today()

    async with session_maker() as db:
        result = await db.execute(select(MasteryRecord.user_id).distinct())
        user_ids = list(result.scalars())

    summaries = []
    for user_id in user_ids:
        try:
            async with session_maker() as db:
                summaries.append(await DecayService(db).apply_daily_decay(user_id, today))
        except Exception as e:
            logger.error(f"Decay run failed for user={user_id}: {e}", exc_info=True)

    logger.info(f"Daily decay for {today}: processed {len(summaries)}/{len(user_ids)} users")
    return summaries
