"""
Practice Streak Rules

A streak counts consecutive calendar days (UTC) on which the user practiced
any technique. It is global to the user: every technique's gains are
multiplied by the same streak.

Transition for a session on day d:
- last practice on d: already counted, no change
- last practice on d - 1: streak + 1
- no practice yet, or a gap of 2+ days: streak restarts at 1
- last practice after d (backdated manual entry): no change

Multiplier ordering:
    A session earns the streak that was in force *before* it was counted
    (streak_in_force). Its own day only benefits later sessions. The very
    first session therefore earns exactly its duration-weighted minutes, and
    a lapsed streak earns no bonus even before it is reset.

Usage:
    from meditrack.services.mastery.streaks import StreakState, advance_streak, streak_in_force

    state = StreakState(streak=row.streak, last_practiced_on=row.last_practiced_on)
    bonus_streak = streak_in_force(state, session_day)
    state = advance_streak(state, session_day)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


@dataclass(frozen=True)
class StreakState:
    """Global streak of one user."""

    streak: int = 0
    last_practiced_on: Optional[date] = None


def advance_streak(state: StreakState, practiced_on: date) -> StreakState:
    """
    Count a session on practiced_on towards the streak.

    Args:
        state: Streak before the session.
        practiced_on: Calendar day of the session.

    Returns:
        Streak after the session.
    """
    last = state.last_practiced_on

    if last is not None and last >= practiced_on:
        # Same day, or a backdated entry: history before last is settled
        return state

    if last is not None and last == practiced_on - timedelta(days=1):
        return StreakState(streak=state.streak + 1, last_practiced_on=practiced_on)

    return StreakState(streak=1, last_practiced_on=practiced_on)


def streak_in_force(state: StreakState, on: date) -> int:
    """
    Streak that applies to a session on the given day, before it is counted.

    The stored streak is only still alive if the last practice was on the
    same day or the day before (or later, for backdated entries).
    """
    last = state.last_practiced_on
    if last is None:
        return 0
    if last >= on - timedelta(days=1):
        return state.streak
    return 0


def current_streak(state: StreakState, today: date) -> int:
    """
    Streak to display on a profile.

    The streak stays valid if the user practiced yesterday but hasn't
    practiced today yet.
    """
    return streak_in_force(state, today)
