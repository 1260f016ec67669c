"""Completion/Streak Aggregator: event log, streaks and completion statistics."""

from patissier.completion.aggregator import (
    MILESTONES,
    CompletionAggregator,
    CompletionStats,
    LevelCompletion,
    find_divergence,
    milestone_names,
    replay_events,
)
from patissier.completion.events import CompletionEvent, CompletionEventLog, EventType
from patissier.core.streaks import calculate_current_streak, calculate_longest_streak

__all__ = [
    "MILESTONES",
    "CompletionAggregator",
    "CompletionEvent",
    "CompletionEventLog",
    "CompletionStats",
    "EventType",
    "LevelCompletion",
    "calculate_current_streak",
    "calculate_longest_streak",
    "find_divergence",
    "milestone_names",
    "replay_events",
]
