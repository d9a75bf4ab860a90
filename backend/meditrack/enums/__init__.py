"""
Centralized enum definitions for the application.

Usage:
    from meditrack.enums import DecayOutcome, SessionSource

    # Or import from specific module
    from meditrack.enums.mastery import DecayOutcome
"""

from meditrack.enums.mastery import DecayOutcome, SessionSource

__all__ = [
    "DecayOutcome",
    "SessionSource",
]
