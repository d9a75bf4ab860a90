"""
Integration Test Fixtures

Provides fixtures for integration tests that run against a real database.
Each test gets its own SQLite file (aiosqlite) with the full schema, so tests
never share state and never touch a configured PostgreSQL database.

The API client overrides get_db so requests use the test database. The
FastAPI lifespan is not run (no scheduler, no init_db on the app engine).
"""

from datetime import date, datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from meditrack.db.base import build_engine, get_db, init_db
from meditrack.db.models import MasteryRecord, PracticeStreak, Technique

pytestmark = pytest.mark.integration


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'meditrack_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """A session on the test database."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


# =============================================================================
# Data Helpers
# =============================================================================


@pytest.fixture
def make_technique(session_maker):
    """Factory that inserts a technique and returns its id."""

    async def _make(user_id: str = "user-1", name: str = "Breath counting") -> int:
        async with session_maker() as session:
            technique = Technique(user_id=user_id, name=name)
            session.add(technique)
            await session.commit()
            return technique.id

    return _make


@pytest.fixture
def seed_mastery(session_maker):
    """
    Factory that seeds a mastery record and the user's streak directly.

    Used for scenarios that start from an existing practice history.
    """

    async def _seed(
        user_id: str,
        technique_id: int,
        cumulative: float,
        mastery_score: float,
        streak: int = 0,
        last_practiced_on: date | None = None,
    ) -> None:
        last_practiced_at = (
            datetime(
                last_practiced_on.year,
                last_practiced_on.month,
                last_practiced_on.day,
                8,
                0,
                tzinfo=timezone.utc,
            )
            if last_practiced_on
            else None
        )
        async with session_maker() as session:
            session.add(
                MasteryRecord(
                    user_id=user_id,
                    technique_id=technique_id,
                    cumulative_effective_minutes=cumulative,
                    mastery_score=mastery_score,
                    streak=streak,
                    last_practiced_at=last_practiced_at,
                    updated_at=last_practiced_at,
                )
            )
            session.add(
                PracticeStreak(
                    user_id=user_id,
                    streak=streak,
                    last_practiced_on=last_practiced_on,
                    updated_at=last_practiced_at,
                )
            )
            await session.commit()

    return _seed


# =============================================================================
# API Client
# =============================================================================


@pytest_asyncio.fixture
async def api_client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    HTTP client for the app, bound to the test database.

    Overrides get_db with the same commit/rollback semantics as production.
    """
    from meditrack.main import create_app

    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
