"""
Scheduled Job Configuration

Configures the periodic decay job using APScheduler:
- Daily mastery decay for every user at DECAY_JOB_HOUR:DECAY_JOB_MINUTE UTC

Execution Context:
    The scheduler runs IN-PROCESS with FastAPI. It is started/stopped via
    FastAPI's lifespan context manager in meditrack/main.py when
    SCHEDULER_ENABLED is set.

    Flow:
        uvicorn starts FastAPI -> lifespan() calls start_scheduler()
        -> APScheduler runs in the event loop -> trigger_daily_decay()

Limitations:
    - Single instance only: with multiple backend replicas each replica runs
      its own scheduler. Decay is idempotent per day, so duplicate triggers
      are wasted work rather than double decay.

Usage:
    # Automatic (via FastAPI lifespan in main.py):
    start_scheduler()  # On app startup
    stop_scheduler()   # On app shutdown

    # Manual trigger for testing:
    from meditrack.services.scheduler import trigger_job_now
    trigger_job_now("daily_decay")
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from meditrack.config import settings

logger = logging.getLogger(__name__)

DAILY_DECAY_JOB_ID = "daily_decay"

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=timezone.utc)


async def trigger_daily_decay() -> None:
    """Apply today's decay to every user's mastery records."""
    # Deferred imports: avoid binding the engine at scheduler import time
    from meditrack.db.base import async_session_maker
    from meditrack.services.mastery.decay import apply_decay_for_all_users

    summaries = await apply_decay_for_all_users(async_session_maker)
    failed = sum(s.failed for s in summaries)
    logger.info(
        f"Daily decay job finished: {len(summaries)} users, {failed} failed records"
    )


def setup_scheduled_jobs() -> None:
    """Configure all scheduled jobs."""

    # Mastery decay - daily at the configured hour (UTC)
    scheduler.add_job(
        trigger_daily_decay,
        CronTrigger(hour=settings.DECAY_JOB_HOUR, minute=settings.DECAY_JOB_MINUTE),
        id=DAILY_DECAY_JOB_ID,
        name="Daily Mastery Decay",
        replace_existing=True,
        misfire_grace_time=3600,  # Allow 1 hour grace period
        coalesce=True,
    )

    logger.info("Scheduled jobs configured:")
    logger.info(
        f"  - Daily decay: daily at {settings.DECAY_JOB_HOUR:02d}:"
        f"{settings.DECAY_JOB_MINUTE:02d} UTC"
    )


def start_scheduler() -> None:
    """Start the scheduler and configure jobs."""
    if scheduler.running:
        logger.warning("Scheduler already running")
        return

    setup_scheduled_jobs()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler gracefully."""
    if not scheduler.running:
        logger.warning("Scheduler not running")
        return

    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")


def get_scheduled_jobs() -> list[dict]:
    """Get list of scheduled jobs with their next run times."""
    jobs = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            }
        )
    return jobs


def trigger_job_now(job_id: str) -> bool:
    """
    Manually trigger a scheduled job immediately.

    Args:
        job_id: ID of the job to trigger

    Returns:
        True if triggered successfully
    """
    job = scheduler.get_job(job_id)
    if job:
        job.modify(next_run_time=datetime.now(timezone.utc))
        logger.info(f"Manually triggered job: {job_id}")
        return True

    logger.warning(f"Job not found: {job_id}")
    return False
