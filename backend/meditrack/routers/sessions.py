"""
Practice Sessions API Router

Endpoints for logging, correcting and exporting meditation sessions.

Endpoints:
- POST /api/users/{user_id}/sessions - Record a completed timer session
- POST /api/users/{user_id}/sessions/manual - Log a session for a past day
- GET /api/users/{user_id}/sessions - List sessions
- GET /api/users/{user_id}/sessions/export - Download sessions as CSV
- PATCH /api/users/{user_id}/sessions/{session_id} - Correct a session's duration
- DELETE /api/users/{user_id}/sessions/{session_id} - Delete a session
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from meditrack.db.base import get_db
from meditrack.middleware.error_handling import handle_endpoint_errors
from meditrack.models.base import ErrorDetail, SuccessResponse
from meditrack.models.mastery import (
    ManualSessionRequest,
    RecordSessionRequest,
    RecordSessionResponse,
    SessionResponse,
    SessionUpdateRequest,
)
from meditrack.services.mastery import MasteryService, export_sessions_csv

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/users/{user_id}/sessions",
    tags=["sessions"],
    responses={
        404: {"model": ErrorDetail, "description": "Technique or session not found"},
        422: {"model": ErrorDetail, "description": "Invalid duration or date"},
        503: {"model": ErrorDetail, "description": "Store unavailable, retry"},
    },
)


# ===========================================
# Dependency Injection
# ===========================================


async def get_mastery_service(
    db: AsyncSession = Depends(get_db),
) -> MasteryService:
    """Get mastery service."""
    return MasteryService(db)


# ===========================================
# Session Endpoints
# ===========================================


@router.post("", response_model=RecordSessionResponse, status_code=201)
@handle_endpoint_errors("Record session")
async def record_session(
    user_id: str,
    request: RecordSessionRequest,
    service: MasteryService = Depends(get_mastery_service),
) -> RecordSessionResponse:
    """
    Record a completed session and update the technique's mastery.

    Returns the new mastery score, cumulative effective minutes and global
    streak, plus the multipliers that were applied.
    """
    return await service.record_session(
        user_id,
        request.technique_id,
        request.duration_minutes,
        occurred_at=request.occurred_at,
    )


@router.post("/manual", response_model=RecordSessionResponse, status_code=201)
@handle_endpoint_errors("Add manual session")
async def add_manual_session(
    user_id: str,
    request: ManualSessionRequest,
    service: MasteryService = Depends(get_mastery_service),
) -> RecordSessionResponse:
    """
    Log a session by hand for a past (or the current) day.

    Future dates are rejected with 422.
    """
    return await service.add_manual_session(
        user_id,
        request.technique_id,
        request.duration_minutes,
        request.session_date,
    )


@router.get("", response_model=list[SessionResponse])
@handle_endpoint_errors("List sessions")
async def list_sessions(
    user_id: str,
    technique_id: Optional[int] = Query(None, description="Only this technique"),
    service: MasteryService = Depends(get_mastery_service),
) -> list[SessionResponse]:
    """List a user's sessions, most recent first."""
    return await service.list_sessions(user_id, technique_id=technique_id)


@router.get("/export")
@handle_endpoint_errors("Export sessions")
async def export_sessions(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download all sessions as CSV with the multipliers each one earned."""
    content = await export_sessions_csv(db, user_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="sessions-{user_id}.csv"'
        },
    )


@router.patch("/{session_id}", response_model=SessionResponse)
@handle_endpoint_errors("Update session")
async def update_session(
    user_id: str,
    session_id: int,
    request: SessionUpdateRequest,
    service: MasteryService = Depends(get_mastery_service),
) -> SessionResponse:
    """Correct a session's duration; mastery is recomputed by the difference."""
    return await service.update_session(user_id, session_id, request.duration_minutes)


@router.delete("/{session_id}", response_model=SuccessResponse)
@handle_endpoint_errors("Delete session")
async def delete_session(
    user_id: str,
    session_id: int,
    service: MasteryService = Depends(get_mastery_service),
) -> SuccessResponse:
    """Delete a session and remove its effective minutes from mastery."""
    await service.delete_session(user_id, session_id)
    return SuccessResponse(message=f"Session {session_id} deleted")
