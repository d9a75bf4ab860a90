"""
Mastery Formulas

Pure functions that turn practice time into mastery:

    effective_minutes = duration × duration_multiplier(duration)
                                 × streak_multiplier(streak)

    mastery_score = 100 / (1 + e^(-(E - 50000) / 9000))

Duration multiplier:
    1.0 up to 30 minutes, then linear with slope 0.8 / 29 per minute so that a
    59-minute sit earns 1.8×. The line keeps rising past an hour (no cap).
    Session edits and the CSV export use the same function, so stored and
    back-calculated values always agree.

Streak multiplier:
    1.05 ** streak, where streak is the number of consecutive practice days
    across the user's whole library.

Mastery curve:
    Logistic, centred at 50,000 effective minutes (score 50) with steepness
    9,000. Scores approach but never reach 100.

Usage:
    from meditrack.services.mastery.formulas import effective_minutes, mastery_from_minutes

    delta = effective_minutes(45, streak=3)
    score = mastery_from_minutes(record.cumulative_effective_minutes + delta)
"""

import math
from dataclasses import dataclass
from typing import Optional

from meditrack.config import settings

# Largest float below 100; keeps the float curve strictly inside (0, 100)
_MAX_SCORE = math.nextafter(100.0, 0.0)


@dataclass(frozen=True)
class CurveParams:
    """Constants of the mastery curves. Defaults come from settings."""

    baseline_minutes: float = 30.0
    peak_minutes: float = 59.0
    peak_multiplier: float = 1.8
    streak_base: float = 1.05
    center_minutes: float = 50000.0
    steepness: float = 9000.0

    @classmethod
    def from_settings(cls) -> "CurveParams":
        return cls(
            baseline_minutes=settings.DURATION_BASELINE_MINUTES,
            peak_minutes=settings.DURATION_PEAK_MINUTES,
            peak_multiplier=settings.DURATION_PEAK_MULTIPLIER,
            streak_base=settings.STREAK_MULTIPLIER_BASE,
            center_minutes=settings.MASTERY_CURVE_CENTER_MINUTES,
            steepness=settings.MASTERY_CURVE_STEEPNESS,
        )


def duration_multiplier(
    duration_minutes: float, params: Optional[CurveParams] = None
) -> float:
    """
    Multiplier earned by the length of a single session.

    Args:
        duration_minutes: Session length in minutes.
        params: Curve constants (settings when omitted).

    Returns:
        1.0 for sessions up to the baseline, then a linear increase that
        reaches the peak multiplier at the peak duration and keeps growing.
    """
    p = params or CurveParams.from_settings()
    if duration_minutes <= p.baseline_minutes:
        return 1.0

    slope = (p.peak_multiplier - 1.0) / (p.peak_minutes - p.baseline_minutes)
    return 1.0 + slope * (duration_minutes - p.baseline_minutes)


def streak_multiplier(streak: int, params: Optional[CurveParams] = None) -> float:
    """
    Multiplier earned by consecutive practice days.

    Raises:
        ValueError: If streak is negative.
    """
    if streak < 0:
        raise ValueError(f"streak must be >= 0, got {streak}")
    p = params or CurveParams.from_settings()
    return p.streak_base**streak


def effective_minutes(
    duration_minutes: float, streak: int, params: Optional[CurveParams] = None
) -> float:
    """
    Effective minutes a session adds to its technique's mastery record.

    The duration must already be validated (> 0 and finite) by the caller.

    Args:
        duration_minutes: Raw session length.
        streak: Streak in force for the session.
        params: Curve constants (settings when omitted).

    Returns:
        duration × duration multiplier × streak multiplier.
    """
    p = params or CurveParams.from_settings()
    delta = (
        duration_minutes
        * duration_multiplier(duration_minutes, p)
        * streak_multiplier(streak, p)
    )
    # A non-finite result means a broken curve, never bad user input
    assert math.isfinite(delta) and delta >= 0, f"effective minutes defect: {delta}"
    return delta


def mastery_from_minutes(
    cumulative_minutes: float, params: Optional[CurveParams] = None
) -> float:
    """
    Mastery score (0-100) for a cumulative amount of effective minutes.

    Args:
        cumulative_minutes: Non-negative cumulative effective minutes.
        params: Curve constants (settings when omitted).

    Returns:
        Logistic score, 50 at the curve centre, strictly between 0 and 100.

    Raises:
        ValueError: If cumulative_minutes is negative or not finite. Decay
            clamps at zero before the score is recomputed.
    """
    if not math.isfinite(cumulative_minutes) or cumulative_minutes < 0:
        raise ValueError(
            f"cumulative minutes must be finite and >= 0, got {cumulative_minutes}"
        )
    p = params or CurveParams.from_settings()
    exponent = -(cumulative_minutes - p.center_minutes) / p.steepness
    score = 100.0 / (1.0 + math.exp(exponent))
    return min(score, _MAX_SCORE)
