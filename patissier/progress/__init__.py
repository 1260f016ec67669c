"""Progress Store: module and path progress records."""

from patissier.progress.models import (
    LevelBreakdown,
    ModuleProgress,
    PathProgress,
    ProgressSnapshot,
    ProgressStats,
    ProgressStatus,
)
from patissier.progress.store import ProgressStore

__all__ = [
    "LevelBreakdown",
    "ModuleProgress",
    "PathProgress",
    "ProgressSnapshot",
    "ProgressStats",
    "ProgressStatus",
    "ProgressStore",
]
