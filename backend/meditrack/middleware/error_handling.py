"""
Error Handling

Provides consistent, informative error responses across the API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for the mastery engine's error taxonomy

Error taxonomy:
    InvalidDurationError   422  duration <= 0 or not finite, rejected before
                                any calculation
    NotFoundError          404  technique/session not owned by the user
    ValidationError        422  other rejected input (e.g. future dates)
    TransientStoreError    503  persistence unavailable or write conflict;
                                the caller retries with backoff

Usage:
    from meditrack.middleware.error_handling import setup_error_handling, NotFoundError

    setup_error_handling(app, debug=settings.DEBUG)

    raise NotFoundError("Technique 3 not found", details={"technique_id": 3})

Exception handling hierarchy:
    - HTTPException: Left to FastAPI's built-in handler
    - ServiceError: Registered exception handler → structured JSON response
    - Exception: ErrorHandlingMiddleware catch-all → sanitized 500 response
"""

import functools
import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Database connection failed", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class InvalidDurationError(ServiceError):
    """
    Session duration rejected.

    Raised when a duration is <= 0 minutes, NaN or infinite.
    """

    status_code = 422
    error_code = "invalid_duration"


class ValidationError(ServiceError):
    """
    Data validation error.

    Raised when input data fails validation.
    """

    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a technique or session does not exist or does not belong
    to the requesting user. Not retried.
    """

    status_code = 404
    error_code = "not_found"


class TransientStoreError(ServiceError):
    """
    Persistence layer unavailable.

    Raised when the database cannot be reached or a concurrent write
    conflicts. The whole unit of work was rolled back; the caller retries.
    """

    status_code = 503
    error_code = "transient_store_failure"


# =============================================================================
# Response Builders
# =============================================================================


def create_error_response(
    error_code: str,
    message: str,
    status_code: int = 500,
    details: Optional[dict] = None,
    error_id: Optional[str] = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error_code: Error code for categorization
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional details
        error_id: Correlation id; generated when omitted

    Returns:
        JSONResponse with standardized error format
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "message": message,
            "error_id": error_id or str(uuid4())[:8],
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def _service_error_handler(debug: bool):
    async def handler(request: Request, exc: ServiceError) -> JSONResponse:
        error_id = str(uuid4())[:8]
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            f"[{error_id}] {exc.error_code}: {exc.message}",
            extra={
                "error_id": error_id,
                "error_code": exc.error_code,
                "path": request.url.path,
                "method": request.method,
                "details": exc.details,
            },
        )
        # Client errors carry details the caller needs; server errors only in debug
        details = exc.details if (debug or exc.status_code < 500) else None
        return create_error_response(
            exc.error_code,
            exc.message,
            status_code=exc.status_code,
            details=details,
            error_id=error_id,
        )

    return handler


# =============================================================================
# Error Handling Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            return await call_next(request)

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except Exception as e:
            # Log full traceback for unexpected errors
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            details = None
            if self.debug:
                details = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return create_error_response(
                "internal_server_error",
                "An unexpected error occurred",
                status_code=500,
                details=details,
                error_id=error_id,
            )


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """
    app.add_exception_handler(ServiceError, _service_error_handler(debug))
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling enabled (debug={debug})")


# =============================================================================
# Endpoint Decorator
# =============================================================================


def handle_endpoint_errors(operation: str):
    """
    Wrap a route so unexpected failures become a logged 500.

    ServiceError and HTTPException pass through untouched so their own
    status codes reach the client.

    Usage:
        @router.get("/records")
        @handle_endpoint_errors("List mastery records")
        async def list_records(...):
            ...
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (HTTPException, ServiceError):
                raise
            except Exception as e:
                logger.error(f"{operation} failed: {type(e).__name__}: {e}")
                raise HTTPException(status_code=500, detail=f"{operation} failed")

        return wrapper

    return decorator
