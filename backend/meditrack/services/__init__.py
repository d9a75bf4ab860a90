"""Services package for mastery tracking, decay, and scheduling."""

from meditrack.services.mastery import DecayService, MasteryService

__all__ = [
    "DecayService",
    "MasteryService",
]
