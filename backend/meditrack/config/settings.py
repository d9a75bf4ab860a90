"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Engine constants (duration curve, streak base, logistic curve, decay rule)
live here too so that deployments can tune them without code changes. The
defaults reproduce the production mastery curve.

Usage:
    from meditrack.config import settings

    # Access settings
    db_url = settings.SQLALCHEMY_URL
    centre = settings.MASTERY_CURVE_CENTER_MINUTES
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Meditrack"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "meditrack"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "meditrack"

    # Full SQLAlchemy URL override (e.g. sqlite+aiosqlite:///./meditrack.db)
    DATABASE_URL: str = ""

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def POSTGRES_URL_SYNC(self) -> str:
        """Sync PostgreSQL connection URL for Alembic migrations."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def SQLALCHEMY_URL(self) -> str:
        """URL the async engine connects to."""
        return self.DATABASE_URL or self.POSTGRES_URL

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    DECAY_JOB_HOUR: int = 2  # UTC
    DECAY_JOB_MINUTE: int = 0

    # Duration multiplier: flat up to the baseline, then linear through the peak
    DURATION_BASELINE_MINUTES: float = 30.0
    DURATION_PEAK_MINUTES: float = 59.0
    DURATION_PEAK_MULTIPLIER: float = 1.8

    # Streak multiplier base (multiplier = base ** streak)
    STREAK_MULTIPLIER_BASE: float = 1.05

    # Logistic mastery curve
    MASTERY_CURVE_CENTER_MINUTES: float = 50000.0
    MASTERY_CURVE_STEEPNESS: float = 9000.0

    # Daily decay
    DECAY_DAILY_FRACTION: float = 0.01  # share of cumulative minutes per idle day
    DECAY_DAILY_MINUTES: float = 5.0  # flat effective minutes per idle day
    DECAY_ACTIVITY_DAMPING: float = 1.0  # share of decay removed on a day of practice
    DECAY_RECENCY_SCALE_DAYS: float = 3.0  # how fast the damping wears off
    DECAY_MAX_CATCHUP_DAYS: int = 30

    # Profile
    PROFILE_RECENT_TECHNIQUES: int = 3

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
