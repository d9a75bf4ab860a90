"""API Routers package."""

from meditrack.routers import health as health_router
from meditrack.routers import mastery as mastery_router
from meditrack.routers import sessions as sessions_router
from meditrack.routers import techniques as techniques_router

__all__ = ["health_router", "mastery_router", "sessions_router", "techniques_router"]
