"""
Mastery Engine Services

Turns practice sessions into per-technique mastery scores, tracks the global
practice streak, and decays mastery when practice lapses.

Modules:
- formulas: Duration/streak multipliers and the logistic mastery curve
- streaks: Consecutive-day streak transitions
- records: Shared mastery record write helpers
- mastery_service: Session ingestion, edits, and read queries
- decay: Daily decay rule and job
- export: Session CSV export

Usage:
    from meditrack.services.mastery import (
        MasteryService,
        DecayService,
        effective_minutes,
        mastery_from_minutes,
    )
"""

from meditrack.services.mastery.formulas import (
    CurveParams,
    duration_multiplier,
    streak_multiplier,
    effective_minutes,
    mastery_from_minutes,
)
from meditrack.services.mastery.streaks import (
    StreakState,
    advance_streak,
    streak_in_force,
    current_streak,
)
from meditrack.services.mastery.decay import (
    DecayParams,
    DecayService,
    activity_coupling,
    daily_decay_amount,
    decay_cumulative,
    apply_decay_for_all_users,
)
from meditrack.services.mastery.mastery_service import MasteryService, validate_duration
from meditrack.services.mastery.export import export_sessions_csv

__all__ = [
    # Formulas
    "CurveParams",
    "duration_multiplier",
    "streak_multiplier",
    "effective_minutes",
    "mastery_from_minutes",
    # Streaks
    "StreakState",
    "advance_streak",
    "streak_in_force",
    "current_streak",
    # Decay
    "DecayParams",
    "DecayService",
    "activity_coupling",
    "daily_decay_amount",
    "decay_cumulative",
    "apply_decay_for_all_users",
    # Services
    "MasteryService",
    "validate_duration",
    "export_sessions_csv",
]
