"""
Strict Base Model for API Request/Response Validation

Base classes with strict validation settings for the API contract between
the backend and the practice app.

By enforcing strict validation:
    - Unknown fields are rejected with 422 (extra="forbid")
    - Type mismatches fail fast with clear error messages

Usage:
    # For request bodies (strictest validation)
    class SessionCreate(StrictRequest):
        technique_id: int
        duration_minutes: float

    # For response bodies (allows extra fields from DB)
    class RecordResponse(StrictResponse):
        technique_id: int
        mastery_score: float

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    DB Model → StrictResponse (extra="ignore") → API Response
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    client typos and mismatches at request time rather than runtime.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
        - from_attributes=True: Allows ORM model conversion
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
        from_attributes=True,  # Enable ORM conversion
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    More lenient than StrictRequest: extra attributes on the source object
    (e.g. additional DB columns) are ignored.
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields in responses
        validate_default=True,  # Validate defaults
        from_attributes=True,  # Enable ORM conversion
    )


# =============================================================================
# Common Response Patterns
# =============================================================================


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    """

    error: str  # Error code (e.g., "invalid_duration")
    message: str  # Human-readable message
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None  # Additional context
    timestamp: datetime


class SuccessResponse(StrictResponse):
    """
    Simple success response for operations without complex output.

    Example usage:
        @router.delete("/sessions/{id}", response_model=SuccessResponse)
        async def delete_session(id: int):
            ...
            return SuccessResponse(message="Session deleted")
    """

    success: bool = True
    message: str
