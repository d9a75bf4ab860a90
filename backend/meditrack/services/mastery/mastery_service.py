"""
Mastery Store Service

Folds practice sessions into per-technique mastery records and serves the
read side (records, history series, profile statistics).

Session ingestion (RecordSession):
    1. Validate the duration (InvalidDurationError)
    2. Check the technique belongs to the user (NotFoundError)
    3. Lock the user's streak row, then the (user, technique) record
    4. Effective minutes = duration × duration multiplier × streak multiplier,
       using the streak in force before this session
    5. Update the record (score recomputed), the streak, insert the session
       row and append a history point
    6. Commit once; any failure rolls the whole unit back

Session edits and deletes apply the difference in effective minutes to the
record instead of rebuilding it from all sessions, so decay already applied
is preserved.

Usage:
    from meditrack.services.mastery import MasteryService

    service = MasteryService(db)
    result = await service.record_session("user-1", technique_id=3, duration_minutes=45)
    history = await service.get_history("user-1", technique_id=3)
"""

import logging
import math
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from meditrack.config import settings
from meditrack.db.models import (
    MasteryHistory,
    MasteryRecord,
    PracticeSession,
    PracticeStreak,
    Technique,
)
from meditrack.middleware.error_handling import (
    InvalidDurationError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from meditrack.models.mastery import (
    MasteryHistoryPoint,
    MasteryHistoryResponse,
    MasteryRecordList,
    MasteryRecordResponse,
    ProfileStats,
    RecentTechnique,
    RecordSessionResponse,
    SessionResponse,
)
from meditrack.services.mastery.formulas import (
    CurveParams,
    duration_multiplier,
    effective_minutes,
    streak_multiplier,
)
from meditrack.services.mastery.records import (
    history_point,
    lock_record,
    new_record,
    set_cumulative,
)
from meditrack.services.mastery.streaks import (
    StreakState,
    advance_streak,
    current_streak,
    streak_in_force,
)
from meditrack.services.mastery.timeutil import (
    as_utc,
    later_of,
    start_of_day,
    utc_day,
    utc_now,
    utc_today,
)

logger = logging.getLogger(__name__)

# Driver failures a retry can fix: lost connections, lock timeouts, and
# unique-key races when two first sessions create the same record.
_TRANSIENT_ERRORS = (OperationalError, InterfaceError, IntegrityError)

# Client clocks running slightly ahead of the server are tolerated
_CLOCK_SKEW = timedelta(minutes=5)


def validate_duration(duration_minutes: float) -> None:
    """
    Reject durations the calculator must never see.

    Raises:
        InvalidDurationError: If the duration is not a finite number > 0.
    """
    if (
        isinstance(duration_minutes, bool)
        or not isinstance(duration_minutes, (int, float))
        or not math.isfinite(duration_minutes)
        or duration_minutes <= 0
    ):
        raise InvalidDurationError(
            f"Session duration must be a finite number of minutes > 0, got {duration_minutes!r}",
            details={"duration_minutes": str(duration_minutes)},
        )


class MasteryService:
    """
    Session ingestion and mastery read queries.

    All writes for one (user, technique) pair are serialized by row locks and
    committed together with their history point.
    """

    def __init__(
        self,
        db: AsyncSession,
        params: Optional[CurveParams] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize mastery service.

        Args:
            db: Async database session.
            params: Curve constants (settings when omitted).
            clock: Source of "now" for write timestamps.
        """
        self.db = db
        self.params = params or CurveParams.from_settings()
        self._clock = clock

    # ===========================================
    # Session ingestion
    # ===========================================

    async def record_session(
        self,
        user_id: str,
        technique_id: int,
        duration_minutes: float,
        occurred_at: Optional[datetime] = None,
        manual_entry: bool = False,
    ) -> RecordSessionResponse:
        """
        Fold a completed session into the technique's mastery record.

        Args:
            user_id: User who practiced.
            technique_id: Technique practiced; must belong to the user.
            duration_minutes: Minutes practiced (> 0, finite).
            occurred_at: When the session happened (now when omitted).
            manual_entry: True for manually logged sessions.

        Returns:
            RecordSessionResponse with the new score, cumulative minutes,
            streak, and the multipliers that were applied.

        Raises:
            InvalidDurationError: Duration <= 0 or not finite.
            ValidationError: occurred_at lies in the future.
            NotFoundError: Technique does not belong to the user.
            TransientStoreError: The store failed; nothing was written.
        """
        validate_duration(duration_minutes)
        occurred_at = as_utc(occurred_at) or self._clock()
        if occurred_at > self._clock() + _CLOCK_SKEW:
            raise ValidationError(
                "Cannot record sessions in the future",
                details={"occurred_at": occurred_at.isoformat()},
            )

        async with self._unit_of_work("Record session"):
            await self._get_owned_technique(user_id, technique_id)
            now = self._clock()
            day = utc_day(occurred_at)

            streak_row = await self._lock_streak(user_id)
            state = StreakState(streak_row.streak, streak_row.last_practiced_on)
            applied_streak = streak_in_force(state, day)
            advanced = advance_streak(state, day)
            streak_row.streak = advanced.streak
            streak_row.last_practiced_on = advanced.last_practiced_on
            streak_row.updated_at = now

            delta = effective_minutes(duration_minutes, applied_streak, self.params)

            record = await lock_record(self.db, user_id, technique_id)
            if record is None:
                record = new_record(user_id, technique_id, self.params)
                self.db.add(record)
            record.streak = advanced.streak
            record.last_practiced_at = later_of(record.last_practiced_at, occurred_at)
            set_cumulative(
                record,
                record.cumulative_effective_minutes + delta,
                now,
                self.params,
            )

            session = PracticeSession(
                user_id=user_id,
                technique_id=technique_id,
                duration_minutes=float(duration_minutes),
                effective_minutes=delta,
                streak_applied=applied_streak,
                manual_entry=manual_entry,
                occurred_at=occurred_at,
                created_at=now,
            )
            self.db.add(session)
            await self.db.flush()

            await self._append_history(record)

            response = RecordSessionResponse(
                mastery_score=record.mastery_score,
                cumulative_effective_minutes=record.cumulative_effective_minutes,
                streak=advanced.streak,
                session_id=session.id,
                technique_id=technique_id,
                effective_minutes=delta,
                duration_multiplier=duration_multiplier(duration_minutes, self.params),
                streak_multiplier=streak_multiplier(applied_streak, self.params),
                streak_applied=applied_streak,
            )

        logger.info(
            f"Recorded {duration_minutes:g} min for user={user_id} technique={technique_id}: "
            f"+{delta:.2f} effective, mastery={response.mastery_score:.4f}, streak={response.streak}"
        )
        return response

    async def add_manual_session(
        self,
        user_id: str,
        technique_id: int,
        duration_minutes: float,
        session_date: date,
        today: Optional[date] = None,
    ) -> RecordSessionResponse:
        """
        Log a session by hand for a past (or the current) day.

        The session is timestamped at UTC midnight of session_date.

        Raises:
            ValidationError: If session_date is in the future.
        """
        today = today or utc_today()
        if session_date > today:
            raise ValidationError(
                "Cannot log sessions in the future",
                details={"session_date": session_date.isoformat()},
            )
        return await self.record_session(
            user_id,
            technique_id,
            duration_minutes,
            occurred_at=start_of_day(session_date),
            manual_entry=True,
        )

    async def update_session(
        self, user_id: str, session_id: int, duration_minutes: float
    ) -> SessionResponse:
        """
        Correct a session's duration and recompute its technique's mastery.

        The new effective minutes use the streak the session originally
        earned; the difference is applied to the record (floored at 0).
        """
        validate_duration(duration_minutes)

        async with self._unit_of_work("Update session"):
            session = await self._get_owned_session(user_id, session_id)
            record = await self._require_record(user_id, session.technique_id)

            recomputed = effective_minutes(
                duration_minutes, session.streak_applied, self.params
            )
            difference = recomputed - session.effective_minutes
            session.duration_minutes = float(duration_minutes)
            session.effective_minutes = recomputed

            set_cumulative(
                record,
                record.cumulative_effective_minutes + difference,
                self._clock(),
                self.params,
            )
            await self.db.flush()
            await self._append_history(record)
            response = SessionResponse.model_validate(session)

        logger.info(
            f"Updated session {session_id} for user={user_id}: {difference:+.2f} effective minutes"
        )
        return response

    async def delete_session(self, user_id: str, session_id: int) -> None:
        """
        Delete a session and remove its effective minutes from the record.

        The global streak is left as it is.
        """
        async with self._unit_of_work("Delete session"):
            session = await self._get_owned_session(user_id, session_id)
            record = await self._require_record(user_id, session.technique_id)
            removed = session.effective_minutes

            await self.db.delete(session)
            set_cumulative(
                record,
                record.cumulative_effective_minutes - removed,
                self._clock(),
                self.params,
            )
            await self.db.flush()
            await self._append_history(record)

        logger.info(
            f"Deleted session {session_id} for user={user_id}: -{removed:.2f} effective minutes"
        )

    # ===========================================
    # Read queries
    # ===========================================

    async def get_record(
        self, user_id: str, technique_id: int, today: Optional[date] = None
    ) -> MasteryRecordResponse:
        """
        Current mastery for one technique.

        A technique that was never practiced reports the empty record. The
        streak is the user's live global streak.
        """
        await self._get_owned_technique(user_id, technique_id)
        result = await self.db.execute(
            select(MasteryRecord).where(
                MasteryRecord.user_id == user_id,
                MasteryRecord.technique_id == technique_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = new_record(user_id, technique_id, self.params)
        streak = current_streak(await self._streak_state(user_id), today or utc_today())
        return MasteryRecordResponse.model_validate(record).model_copy(
            update={"streak": streak}
        )

    async def list_records(
        self, user_id: str, today: Optional[date] = None
    ) -> MasteryRecordList:
        """All mastery records of a user, highest mastery first."""
        streak = current_streak(await self._streak_state(user_id), today or utc_today())
        result = await self.db.execute(
            select(MasteryRecord)
            .where(MasteryRecord.user_id == user_id)
            .order_by(MasteryRecord.mastery_score.desc(), MasteryRecord.technique_id)
        )
        records = [
            MasteryRecordResponse.model_validate(r).model_copy(update={"streak": streak})
            for r in result.scalars()
        ]
        return MasteryRecordList(user_id=user_id, records=records)

    async def get_history(self, user_id: str, technique_id: int) -> MasteryHistoryResponse:
        """History points of a technique, oldest first, for charting."""
        await self._get_owned_technique(user_id, technique_id)
        result = await self.db.execute(
            select(MasteryHistory)
            .where(
                MasteryHistory.user_id == user_id,
                MasteryHistory.technique_id == technique_id,
            )
            .order_by(MasteryHistory.recorded_at, MasteryHistory.id)
        )
        points = [MasteryHistoryPoint.model_validate(p) for p in result.scalars()]
        return MasteryHistoryResponse(technique_id=technique_id, points=points)

    async def list_sessions(
        self, user_id: str, technique_id: Optional[int] = None
    ) -> list[SessionResponse]:
        """A user's sessions, most recent first."""
        query = select(PracticeSession).where(PracticeSession.user_id == user_id)
        if technique_id is not None:
            query = query.where(PracticeSession.technique_id == technique_id)
        result = await self.db.execute(
            query.order_by(PracticeSession.occurred_at.desc(), PracticeSession.id.desc())
        )
        return [SessionResponse.model_validate(s) for s in result.scalars()]

    async def get_profile_stats(
        self, user_id: str, today: Optional[date] = None
    ) -> ProfileStats:
        """
        Headline statistics for a user profile.

        Returns:
            ProfileStats with the live streak, raw minutes and session count,
            and the most recently practiced techniques.
        """
        today = today or utc_today()
        state = await self._streak_state(user_id)

        totals = await self.db.execute(
            select(
                func.coalesce(func.sum(PracticeSession.duration_minutes), 0.0),
                func.count(PracticeSession.id),
            ).where(PracticeSession.user_id == user_id)
        )
        total_minutes, total_sessions = totals.one()

        recent_result = await self.db.execute(
            select(MasteryRecord, Technique.name)
            .join(Technique, Technique.id == MasteryRecord.technique_id)
            .where(
                MasteryRecord.user_id == user_id,
                MasteryRecord.last_practiced_at.isnot(None),
            )
            .order_by(MasteryRecord.last_practiced_at.desc())
            .limit(settings.PROFILE_RECENT_TECHNIQUES)
        )
        recent = [
            RecentTechnique(
                technique_id=record.technique_id,
                name=name,
                mastery_score=record.mastery_score,
                last_practiced_at=as_utc(record.last_practiced_at),
            )
            for record, name in recent_result.all()
        ]

        return ProfileStats(
            user_id=user_id,
            current_streak=current_streak(state, today),
            total_minutes=float(total_minutes or 0.0),
            total_sessions=int(total_sessions or 0),
            recent_techniques=recent,
        )

    # ===========================================
    # Internals
    # ===========================================

    @asynccontextmanager
    async def _unit_of_work(self, operation: str):
        """Commit on success; roll everything back on any failure."""
        try:
            yield
            await self.db.commit()
        except _TRANSIENT_ERRORS as e:
            await self.db.rollback()
            logger.warning(f"{operation} rolled back: {type(e).__name__}: {e}")
            raise TransientStoreError(
                f"{operation} failed, please retry",
                details={"operation": operation},
            ) from e
        except Exception:
            await self.db.rollback()
            raise

    async def _append_history(self, record: MasteryRecord) -> None:
        self.db.add(history_point(record))
        await self.db.flush()

    async def _get_owned_technique(self, user_id: str, technique_id: int) -> Technique:
        result = await self.db.execute(
            select(Technique).where(
                Technique.id == technique_id,
                Technique.user_id == user_id,
            )
        )
        technique = result.scalar_one_or_none()
        if technique is None:
            raise NotFoundError(
                f"Technique {technique_id} not found",
                details={"technique_id": technique_id},
            )
        return technique

    async def _get_owned_session(self, user_id: str, session_id: int) -> PracticeSession:
        result = await self.db.execute(
            select(PracticeSession)
            .where(
                PracticeSession.id == session_id,
                PracticeSession.user_id == user_id,
            )
            .with_for_update()
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError(
                f"Session {session_id} not found",
                details={"session_id": session_id},
            )
        return session

    async def _require_record(self, user_id: str, technique_id: int) -> MasteryRecord:
        record = await lock_record(self.db, user_id, technique_id)
        if record is None:
            raise NotFoundError(
                f"No mastery record for technique {technique_id}",
                details={"technique_id": technique_id},
            )
        return record

    async def _streak_state(self, user_id: str) -> StreakState:
        row = await self.db.get(PracticeStreak, user_id)
        if row is None:
            return StreakState()
        return StreakState(row.streak, row.last_practiced_on)

    async def _lock_streak(self, user_id: str) -> PracticeStreak:
        result = await self.db.execute(
            select(PracticeStreak)
            .where(PracticeStreak.user_id == user_id)
            .with_for_update()
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = PracticeStreak(user_id=user_id, streak=0, last_practiced_on=None)
            self.db.add(row)
        return row
