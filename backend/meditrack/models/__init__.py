"""Pydantic models for the application."""

from meditrack.models.base import (
    ErrorDetail,
    StrictRequest,
    StrictResponse,
    SuccessResponse,
)
from meditrack.models.mastery import (
    DecayRunSummary,
    MasteryHistoryResponse,
    MasteryRecordResponse,
    ProfileStats,
    RecordSessionResponse,
)

__all__ = [
    "ErrorDetail",
    "StrictRequest",
    "StrictResponse",
    "SuccessResponse",
    "DecayRunSummary",
    "MasteryHistoryResponse",
    "MasteryRecordResponse",
    "ProfileStats",
    "RecordSessionResponse",
]
