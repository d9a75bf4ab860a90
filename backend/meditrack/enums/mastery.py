"""
Mastery Engine Enums

Defines enums for session sources and daily decay outcomes.
"""

from enum import Enum


class SessionSource(str, Enum):
    """
    How a practice session was captured.

    - TIMER: Logged by the in-app timer when the session completed
    - MANUAL: Entered by hand, possibly for a past day
    """

    TIMER = "timer"
    MANUAL = "manual"


class DecayOutcome(str, Enum):
    """
    Result of running the daily decay for one mastery record.

    - DECAYED: Cumulative minutes were reduced and a history point written
    - UNCHANGED: Decay ran but nothing changed (practiced today, or already 0)
    - ALREADY_APPLIED: Decay already ran for this day; no-op
    - FAILED: The update failed and was rolled back; other records continue
    """

    DECAYED = "decayed"
    UNCHANGED = "unchanged"
    ALREADY_APPLIED = "already_applied"
    FAILED = "failed"
