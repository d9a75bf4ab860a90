"""
Techniques API Router

Minimal technique rows so sessions and mastery records have an owner to
check against. Names and metadata beyond that live in the library app.

Endpoints:
- POST /api/users/{user_id}/techniques - Register a technique
- GET /api/users/{user_id}/techniques - List techniques
- GET /api/users/{user_id}/techniques/{technique_id} - Get one technique
- DELETE /api/users/{user_id}/techniques/{technique_id} - Delete a technique
  together with its sessions, mastery record and history
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meditrack.db.base import get_db
from meditrack.db.models import Technique
from meditrack.middleware.error_handling import NotFoundError, handle_endpoint_errors
from meditrack.models.base import SuccessResponse
from meditrack.models.mastery import TechniqueCreate, TechniqueResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users/{user_id}/techniques", tags=["techniques"])


async def _get_owned_technique(
    db: AsyncSession, user_id: str, technique_id: int
) -> Technique:
    result = await db.execute(
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


@router.post("", response_model=TechniqueResponse, status_code=201)
@handle_endpoint_errors("Create technique")
async def create_technique(
    user_id: str,
    request: TechniqueCreate,
    db: AsyncSession = Depends(get_db),
) -> TechniqueResponse:
    """Register a technique in the user's library."""
    technique = Technique(
        user_id=user_id,
        name=request.name,
        tradition=request.tradition,
    )
    db.add(technique)
    await db.flush()
    await db.refresh(technique)

    logger.info(f"Created technique {technique.id} ({technique.name}) for user={user_id}")
    return TechniqueResponse.model_validate(technique)


@router.get("", response_model=list[TechniqueResponse])
@handle_endpoint_errors("List techniques")
async def list_techniques(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[TechniqueResponse]:
    """List the user's techniques in creation order."""
    result = await db.execute(
        select(Technique).where(Technique.user_id == user_id).order_by(Technique.id)
    )
    return [TechniqueResponse.model_validate(t) for t in result.scalars()]


@router.get("/{technique_id}", response_model=TechniqueResponse)
@handle_endpoint_errors("Get technique")
async def get_technique(
    user_id: str,
    technique_id: int,
    db: AsyncSession = Depends(get_db),
) -> TechniqueResponse:
    """Get one technique."""
    technique = await _get_owned_technique(db, user_id, technique_id)
    return TechniqueResponse.model_validate(technique)


@router.delete("/{technique_id}", response_model=SuccessResponse)
@handle_endpoint_errors("Delete technique")
async def delete_technique(
    user_id: str,
    technique_id: int,
    db: AsyncSession = Depends(get_db),
) -> SuccessResponse:
    """
    Delete a technique.

    Its sessions, mastery record and history rows go with it (ON DELETE
    CASCADE). The global streak is left untouched.
    """
    technique = await _get_owned_technique(db, user_id, technique_id)
    await db.delete(technique)
    await db.flush()

    logger.info(f"Deleted technique {technique_id} for user={user_id}")
    return SuccessResponse(message=f"Technique {technique_id} deleted")
