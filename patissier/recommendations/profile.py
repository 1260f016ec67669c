"""
Learner profile derived from progress.

The profile is rebuilt on every recommendation request and never stored,
so it always reflects current progress.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from patissier.catalog.models import LearningPath, SkillLevel
from patissier.completion.aggregator import CompletionStats
from patissier.progress.models import ProgressStatus
from patissier.progress.store import ProgressStore

DEFAULT_DURATION = "1-2 weeks"

_NUMBER = re.compile(r"\d+(?:\.\d+)?")

# Unit keyword -> weeks per unit
_UNIT_WEEKS: list[tuple[str, float]] = [
    ("month", 4.0),
    ("week", 1.0),
    ("day", 1 / 7),
    ("hour", 1 / 40),
]


class DurationBucket(str, Enum):
    SHORT = "short"  # up to 2 weeks
    MEDIUM = "medium"  # up to 4 weeks
    LONG = "long"  # up to 8 weeks
    EXTENDED = "extended"

    @property
    def rank(self) -> int:
        return list(DurationBucket).index(self)


def parse_duration_weeks(duration: str) -> float | None:
    """
    Convert a catalog duration such as ``"1-2 weeks"`` or ``"3 months"`` to weeks.

    Ranges use their upper bound. A number without a unit is read as weeks.

    Returns:
        Weeks, or None when the text holds no number
    """
    numbers = [float(n) for n in _NUMBER.findall(duration)]
    if not numbers:
        return None
    text = duration.lower()
    per_unit = next((weeks for unit, weeks in _UNIT_WEEKS if unit in text), 1.0)
    return max(numbers) * per_unit


def duration_bucket(duration: str) -> DurationBucket | None:
    weeks = parse_duration_weeks(duration)
    if weeks is None:
        return None
    if weeks <= 2:
        return DurationBucket.SHORT
    if weeks <= 4:
        return DurationBucket.MEDIUM
    if weeks <= 8:
        return DurationBucket.LONG
    return DurationBucket.EXTENDED


@dataclass
class UserProfile:
    skill_level: SkillLevel = SkillLevel.BEGINNER
    preferred_difficulty: SkillLevel = SkillLevel.BEGINNER
    preferred_duration: str = DEFAULT_DURATION
    interests: list[str] = field(default_factory=list)
    favorite_categories: list[str] = field(default_factory=list)
    completed_path_ids: list[str] = field(default_factory=list)
    completed_module_ids: list[str] = field(default_factory=list)
    time_spent: float = 0
    average_score: float = 0
    learning_streak: int = 0
    last_activity: datetime | None = None


def build_user_profile(
    paths: list[LearningPath],
    progress: ProgressStore,
    stats: CompletionStats,
    interest_count: int = 10,
) -> UserProfile:
    """
    Derive a learner profile from the paths they have completed.

    Args:
        paths: Catalog in display order; ties in preferences resolve to the
            earliest completed path
        progress: Progress store to read completion from
        stats: Current completion statistics
        interest_count: Number of most frequent tags kept as interests

    Returns:
        UserProfile; a learner with nothing completed gets the Beginner defaults
    """
    completed = [path for path in paths if _is_completed(path, progress)]

    profile = UserProfile(
        completed_path_ids=[path.id for path in completed],
        completed_module_ids=sorted(
            record.module_id
            for record in progress.module_records()
            if record.status == ProgressStatus.COMPLETED
        ),
        time_spent=stats.total_time_spent,
        average_score=stats.average_score,
        learning_streak=stats.current_streak,
        last_activity=stats.last_activity,
    )
    if not completed:
        return profile

    profile.skill_level = max((path.level for path in completed), key=lambda level: level.rank)
    profile.preferred_difficulty = _mode([path.difficulty for path in completed])
    profile.preferred_duration = _mode([path.duration for path in completed])

    tag_counts = Counter(tag for path in completed for tag in path.tags)
    profile.interests = [tag for tag, _ in tag_counts.most_common(interest_count)]

    categories = Counter(
        category for path in completed if (category := path.resolved_category())
    )
    profile.favorite_categories = [category for category, _ in categories.most_common(5)]
    return profile


def _is_completed(path: LearningPath, progress: ProgressStore) -> bool:
    record = progress.get_path_progress(path.id)
    return record is not None and record.completion_percentage >= 100


def _mode(values: list):
    # Counter keeps first-seen order among equal counts
    return Counter(values).most_common(1)[0][0]
