"""
Mastery API Router

Endpoints for mastery records, history series, profile statistics and the
daily decay.

Endpoints:
- GET /api/users/{user_id}/mastery - All mastery records
- GET /api/users/{user_id}/mastery/{technique_id} - One technique's record
- GET /api/users/{user_id}/mastery/{technique_id}/history - History series
- GET /api/users/{user_id}/profile - Streak, totals and recent techniques
- POST /api/users/{user_id}/decay - Apply the daily decay (idempotent per day)
- GET /api/mastery/preview - Multipliers a session would earn
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from meditrack.db.base import get_db
from meditrack.middleware.error_handling import handle_endpoint_errors
from meditrack.models.base import ErrorDetail
from meditrack.models.mastery import (
    DecayRunSummary,
    MasteryHistoryResponse,
    MasteryRecordList,
    MasteryRecordResponse,
    MultiplierPreview,
    ProfileStats,
)
from meditrack.services.mastery import (
    DecayService,
    MasteryService,
    duration_multiplier,
    effective_minutes,
    streak_multiplier,
    validate_duration,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api",
    tags=["mastery"],
    responses={404: {"model": ErrorDetail, "description": "Technique not found"}},
)


# ===========================================
# Dependency Injection
# ===========================================


async def get_mastery_service(
    db: AsyncSession = Depends(get_db),
) -> MasteryService:
    """Get mastery service."""
    return MasteryService(db)


async def get_decay_service(
    db: AsyncSession = Depends(get_db),
) -> DecayService:
    """Get decay service."""
    return DecayService(db)


# ===========================================
# Mastery Endpoints
# ===========================================


@router.get("/users/{user_id}/mastery", response_model=MasteryRecordList)
@handle_endpoint_errors("List mastery records")
async def list_mastery_records(
    user_id: str,
    service: MasteryService = Depends(get_mastery_service),
) -> MasteryRecordList:
    """Get every mastery record of a user, highest mastery first."""
    return await service.list_records(user_id)


@router.get(
    "/users/{user_id}/mastery/{technique_id}", response_model=MasteryRecordResponse
)
@handle_endpoint_errors("Get mastery record")
async def get_mastery_record(
    user_id: str,
    technique_id: int,
    service: MasteryService = Depends(get_mastery_service),
) -> MasteryRecordResponse:
    """
    Get mastery for one technique.

    A technique that was never practiced reports score and minutes of the
    empty record.
    """
    return await service.get_record(user_id, technique_id)


@router.get(
    "/users/{user_id}/mastery/{technique_id}/history",
    response_model=MasteryHistoryResponse,
)
@handle_endpoint_errors("Get mastery history")
async def get_mastery_history(
    user_id: str,
    technique_id: int,
    service: MasteryService = Depends(get_mastery_service),
) -> MasteryHistoryResponse:
    """Get the mastery history of a technique, oldest point first."""
    return await service.get_history(user_id, technique_id)


@router.get("/users/{user_id}/profile", response_model=ProfileStats)
@handle_endpoint_errors("Get profile stats")
async def get_profile_stats(
    user_id: str,
    service: MasteryService = Depends(get_mastery_service),
) -> ProfileStats:
    """
    Get headline statistics for a profile.

    Returns:
    - Current streak (0 once a full day was missed)
    - Total minutes and sessions
    - Most recently practiced techniques
    """
    return await service.get_profile_stats(user_id)


# ===========================================
# Decay Endpoints
# ===========================================


@router.post("/users/{user_id}/decay", response_model=DecayRunSummary)
@handle_endpoint_errors("Apply daily decay")
async def apply_daily_decay(
    user_id: str,
    day: Optional[date] = Query(None, description="Decay day (UTC), defaults to today"),
    service: DecayService = Depends(get_decay_service),
) -> DecayRunSummary:
    """
    Apply one day of decay to every mastery record of the user.

    Calling this twice for the same day is a no-op the second time
    (already_applied=true).
    """
    return await service.apply_daily_decay(user_id, today=day)


# ===========================================
# Preview Endpoints
# ===========================================


@router.get("/mastery/preview", response_model=MultiplierPreview)
@handle_endpoint_errors("Preview multipliers")
async def preview_multipliers(
    duration_minutes: float = Query(..., description="Session length in minutes"),
    streak: int = Query(0, ge=0, description="Streak in force"),
) -> MultiplierPreview:
    """Show the multipliers and effective minutes a session would earn."""
    validate_duration(duration_minutes)
    return MultiplierPreview(
        duration_minutes=duration_minutes,
        streak=streak,
        duration_multiplier=duration_multiplier(duration_minutes),
        streak_multiplier=streak_multiplier(streak),
        effective_minutes=effective_minutes(duration_minutes, streak),
    )
