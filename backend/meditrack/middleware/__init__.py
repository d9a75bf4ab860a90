"""
Middleware Package

Provides FastAPI error handling for the mastery engine API.

Usage:
    from meditrack.middleware import setup_error_handling, NotFoundError

    setup_error_handling(app, debug=settings.DEBUG)
"""

from meditrack.middleware.error_handling import (
    ErrorHandlingMiddleware,
    InvalidDurationError,
    NotFoundError,
    ServiceError,
    TransientStoreError,
    ValidationError,
    handle_endpoint_errors,
    setup_error_handling,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "InvalidDurationError",
    "NotFoundError",
    "ServiceError",
    "TransientStoreError",
    "ValidationError",
    "handle_endpoint_errors",
    "setup_error_handling",
]
