"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit and integration tests.
"""

import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Settings and the module-level engine are built at import time, so the test
# database and scheduler switch must be in place before meditrack is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    This ensures tests run with predictable configuration, overriding
    any values from .env files to ensure test isolation.
    """
    # Store original environment
    original_env = os.environ.copy()

    test_env = {
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "SCHEDULER_ENABLED": "false",
        "DEBUG": "false",
    }
    os.environ.update(test_env)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Engine Constants
# ============================================================================


@pytest.fixture
def curve_params():
    """Curve constants with the production defaults."""
    from meditrack.services.mastery.formulas import CurveParams

    return CurveParams()


@pytest.fixture
def decay_params():
    """Decay constants with the production defaults."""
    from meditrack.services.mastery.decay import DecayParams

    return DecayParams()


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def today() -> date:
    """A fixed calendar day so date arithmetic in tests is deterministic."""
    return date(2026, 3, 10)


@pytest.fixture
def fixed_now(today: date) -> datetime:
    """Noon UTC on the fixed day."""
    return datetime(today.year, today.month, today.day, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_db_session() -> MagicMock:
    """
    Create a mock database session for unit testing.
    """
    mock = MagicMock()
    mock.execute = AsyncMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.flush = AsyncMock()
    mock.close = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    mock.add = MagicMock()
    return mock
