"""
Core Module - Shared errors, time helpers and the streak walk.

Every other package imports its exceptions and clock from here rather than
defining its own.
"""

from patissier.core.clock import Clock, UtcDatetime, ensure_utc, utc_now
from patissier.core.errors import (
    InvalidInputError,
    NotFoundError,
    PatissierError,
    PersistenceUnavailableError,
)
from patissier.core.streaks import calculate_current_streak, calculate_longest_streak

__all__ = [
    "Clock",
    "UtcDatetime",
    "ensure_utc",
    "utc_now",
    "PatissierError",
    "NotFoundError",
    "InvalidInputError",
    "PersistenceUnavailableError",
    "calculate_current_streak",
    "calculate_longest_streak",
]
