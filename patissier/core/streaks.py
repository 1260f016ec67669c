"""
Streak calculation.

A streak walks activity timestamps from newest to oldest with an
"expected day" cursor that starts today and moves back one calendar day
per counted timestamp. A timestamp counts while it is at most one day
before the cursor, so a single off day does not break the streak. The walk
stops at the first larger gap.

Days are UTC calendar days.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta


def calculate_current_streak(timestamps: Iterable[datetime], today: date) -> int:
    """
    Count the current streak.

    Args:
        timestamps: Activity timestamps in any order
        today: The day the cursor starts on

    Returns:
        Number of timestamps counted before the first gap above one day
    """
    cursor = today
    streak = 0

    for timestamp in sorted(timestamps, reverse=True):
        if (cursor - timestamp.date()).days <= 1:
            streak += 1
            cursor -= timedelta(days=1)
        else:
            break

    return streak


def calculate_longest_streak(timestamps: Iterable[datetime], today: date) -> int:
    """Longest streak; no history is kept, so this equals the current streak."""
    return calculate_current_streak(timestamps, today)
