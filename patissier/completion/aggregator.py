"""
Completion/Streak Aggregator.

Rolls the event log and the materialized progress records up into
completion statistics. Totals come from progress records, streaks from the
event log. The two are not reconciled automatically; replay_events() and
find_divergence() exist to check that they agree.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from statistics import mean

from patissier.catalog.models import LearningPath, SkillLevel
from patissier.completion.events import CompletionEvent, CompletionEventLog, EventType
from patissier.core.clock import Clock, utc_now
from patissier.core.streaks import calculate_current_streak, calculate_longest_streak
from patissier.progress.models import ProgressSnapshot, ProgressStatus
from patissier.progress.store import ProgressStore


@dataclass
class LevelCompletion:
    completed: int = 0
    total: int = 0
    percentage: float = 0


@dataclass
class CompletionStats:
    total_modules_completed: int = 0
    total_paths_completed: int = 0
    total_time_spent: float = 0
    average_score: float = 0
    current_streak: int = 0
    longest_streak: int = 0
    milestones: list[str] = field(default_factory=list)
    level_progress: dict[SkillLevel, LevelCompletion] = field(
        default_factory=lambda: {level: LevelCompletion() for level in SkillLevel}
    )
    last_activity: datetime | None = None


# (name, statistic, threshold), checked in this order
MILESTONES: list[tuple[str, str, float]] = [
    ("First Module Complete", "total_modules_completed", 1),
    ("Module Master", "total_modules_completed", 10),
    ("Learning Champion", "total_modules_completed", 50),
    ("First Path Complete", "total_paths_completed", 1),
    ("Path Master", "total_paths_completed", 5),
    ("Learning Legend", "total_paths_completed", 10),
    ("Hour of Learning", "total_time_spent", 60),
    ("Learning Marathon", "total_time_spent", 300),
    ("Learning Master", "total_time_spent", 1000),
    ("Week Warrior", "current_streak", 7),
    ("Monthly Master", "current_streak", 30),
    ("Streak Legend", "current_streak", 100),
    ("High Achiever", "average_score", 90),
    ("Perfectionist", "average_score", 95),
]


def milestone_names(stats: CompletionStats) -> list[str]:
    """Names of every milestone whose threshold the stats reach."""
    return [name for name, attr, threshold in MILESTONES if getattr(stats, attr) >= threshold]


def replay_events(events: Iterable[CompletionEvent]) -> set[str]:
    """Module ids the event log says were completed."""
    return {
        event.module_id
        for event in events
        if event.type == EventType.MODULE_COMPLETED and event.module_id is not None
    }


def find_divergence(events: Iterable[CompletionEvent], snapshot: ProgressSnapshot) -> list[str]:
    """
    Compare the event log against materialized progress.

    Returns:
        Sorted module ids that are completed according to exactly one of the two
    """
    replayed = replay_events(events)
    materialized = {
        module_id
        for module_id, record in snapshot.module_progress.items()
        if record.status == ProgressStatus.COMPLETED
    }
    return sorted(replayed ^ materialized)


class CompletionAggregator:
    """Computes completion statistics on demand; holds no state of its own."""

    def __init__(self, progress: ProgressStore, events: CompletionEventLog, clock: Clock = utc_now):
        self.progress = progress
        self.events = events
        self._clock = clock

    def calculate_current_streak(self) -> int:
        timestamps = [event.timestamp for event in self.events.events()]
        return calculate_current_streak(timestamps, self._clock().date())

    def calculate_longest_streak(self) -> int:
        timestamps = [event.timestamp for event in self.events.events()]
        return calculate_longest_streak(timestamps, self._clock().date())

    def get_completion_stats(self, paths: list[LearningPath] | None = None) -> CompletionStats:
        """
        Roll up totals, streaks and milestones.

        Args:
            paths: Catalog used for the per-level breakdown; without it the
                breakdown stays empty

        Returns:
            CompletionStats snapshot
        """
        modules = self.progress.module_records()
        path_records = self.progress.path_records()
        scores = [record.score for record in modules if record.score is not None]
        events = self.events.events()

        stats = CompletionStats(
            total_modules_completed=sum(1 for r in modules if r.status == ProgressStatus.COMPLETED),
            total_paths_completed=sum(
                1 for r in path_records if r.status == ProgressStatus.COMPLETED
            ),
            total_time_spent=sum(record.time_spent_minutes for record in modules),
            average_score=round(mean(scores), 2) if scores else 0,
            current_streak=self.calculate_current_streak(),
            longest_streak=self.calculate_longest_streak(),
            last_activity=max((event.timestamp for event in events), default=None),
        )

        for path in paths or []:
            level = stats.level_progress[path.level]
            level.total += 1
            record = self.progress.get_path_progress(path.id)
            if record is not None and record.status == ProgressStatus.COMPLETED:
                level.completed += 1
        for level in stats.level_progress.values():
            level.percentage = round(100 * level.completed / level.total, 2) if level.total else 0

        stats.milestones = milestone_names(stats)
        return stats

    def find_divergence(self) -> list[str]:
        """Module ids where the event log and the progress store disagree."""
        return find_divergence(self.events.events(), self.progress.get_all_progress())
