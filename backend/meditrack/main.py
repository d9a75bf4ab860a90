"""
Meditrack API Application

FastAPI application for the meditation mastery engine.

Startup (lifespan):
    1. Create missing tables (init_db)
    2. Start the daily decay scheduler (when SCHEDULER_ENABLED)

Shutdown:
    1. Stop the scheduler
    2. Dispose the database engine

Run:
    uvicorn meditrack.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meditrack.config import settings
from meditrack.db.base import engine, init_db
from meditrack.middleware.error_handling import setup_error_handling
from meditrack.routers import (
    health_router,
    mastery_router,
    sessions_router,
    techniques_router,
)
from meditrack.services.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    logger.info(f"{settings.APP_NAME} started")

    yield

    if settings.SCHEDULER_ENABLED:
        stop_scheduler()
    await engine.dispose()
    logger.info(f"{settings.APP_NAME} stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware and routers."""
    app = FastAPI(title=f"{settings.APP_NAME} API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handling(app, debug=settings.DEBUG)

    app.include_router(health_router.router)
    app.include_router(techniques_router.router)
    app.include_router(sessions_router.router)
    app.include_router(mastery_router.router)

    return app


app = create_app()
