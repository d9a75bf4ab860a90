#!/usr/bin/env python3
"""
Daily Decay Script

Apply the daily mastery decay outside the in-process scheduler, e.g. from
cron or to catch up after downtime.

Setup:
    1. Ensure the database is reachable (POSTGRES_* or DATABASE_URL)
    2. Copy .env.example to .env in the project root if needed

Usage:
    # Decay every user for today (UTC)
    python scripts/run_decay.py

    # Decay a single user
    python scripts/run_decay.py --user alice

    # Decay for a specific day
    python scripts/run_decay.py --day 2026-03-01

    # Print the summaries as JSON
    python scripts/run_decay.py --json

Running twice for the same day is safe: records already decayed for that day
are reported as already applied.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# Add backend to path for imports (must be before meditrack.* imports)
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from dotenv import load_dotenv

# Load environment variables from project root .env
project_root = Path(__file__).parent.parent
if (project_root / ".env").exists():
    load_dotenv(project_root / ".env")

# Override DEBUG to suppress SQLAlchemy echo (engine uses echo=settings.DEBUG)
os.environ["DEBUG"] = "false"

# App imports (after sys.path setup and env loading)
from meditrack.db.base import async_session_maker, engine
from meditrack.models.mastery import DecayRunSummary
from meditrack.services.mastery import DecayService, apply_decay_for_all_users


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    if not debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def print_summary(summary: DecayRunSummary) -> None:
    """Print a one-user decay summary."""
    status = "already applied" if summary.already_applied else "applied"
    print(f"\n{summary.user_id} ({summary.day}): {status}")
    print(
        f"  decayed={summary.decayed} unchanged={summary.unchanged} "
        f"skipped={summary.skipped} failed={summary.failed}"
    )
    for result in summary.results:
        if result.cumulative_before is None:
            print(f"  - technique {result.technique_id}: {result.outcome.value}")
        else:
            print(
                f"  - technique {result.technique_id}: {result.outcome.value} "
                f"{result.cumulative_before:.2f} -> {result.cumulative_after:.2f}"
            )


async def run(user_id: Optional[str], day: Optional[date], as_json: bool) -> int:
    """Run the decay and report. Returns the process exit code."""
    try:
        if user_id:
            async with async_session_maker() as db:
                summaries = [await DecayService(db).apply_daily_decay(user_id, day)]
        else:
            summaries = await apply_decay_for_all_users(async_session_maker, day)
    finally:
        await engine.dispose()

    if as_json:
        print(json.dumps([s.model_dump(mode="json") for s in summaries], indent=2))
    else:
        if not summaries:
            print("No mastery records to decay")
        for summary in summaries:
            print_summary(summary)

    return 1 if any(s.failed for s in summaries) else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply the daily mastery decay")
    parser.add_argument("--user", help="Only decay this user (default: all users)")
    parser.add_argument(
        "--day",
        type=date.fromisoformat,
        help="Decay day as YYYY-MM-DD (default: today, UTC)",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON summaries")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logging(args.debug)
    sys.exit(asyncio.run(run(args.user, args.day, args.json)))


if __name__ == "__main__":
    main()
