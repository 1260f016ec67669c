"""
Progress records: the materialized view of learner activity.

Records are immutable pydantic models; the store replaces them wholesale
on every write. JSON uses camelCase keys so exports stay compatible with
the browser client's localStorage format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from patissier.catalog.models import SkillLevel
from patissier.core.clock import UtcDatetime


class ProgressStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
        extra="ignore",
    )


class ModuleProgress(RecordModel):
    """Progress of one learner on one module."""

    module_id: str
    path_id: str
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    completion_percentage: float = 0
    time_spent_minutes: float = 0
    attempts: int = 0
    score: float | None = None
    started_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None
    last_accessed_at: UtcDatetime
    notes: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED


class PathProgress(RecordModel):
    """Progress on a path, always derived from its module records."""

    path_id: str
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    completion_percentage: float = 0
    completed_module_ids: list[str] = Field(default_factory=list)
    current_module_id: str | None = None
    time_spent_minutes: float = 0
    score: float = 0
    started_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None
    last_accessed_at: UtcDatetime | None = None
    notes: str | None = None
    rating: float | None = None
    review: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.completion_percentage >= 100


class ProgressSnapshot(RecordModel):
    """The persisted progress document."""

    module_progress: dict[str, ModuleProgress] = Field(default_factory=dict)
    path_progress: dict[str, PathProgress] = Field(default_factory=dict)


@dataclass
class LevelBreakdown:
    """Path counts for one level."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    not_started: int = 0


@dataclass
class ProgressStats:
    """Overall progress statistics across a catalog."""

    total_paths: int = 0
    completed_paths: int = 0
    in_progress_paths: int = 0
    not_started_paths: int = 0
    total_modules: int = 0
    completed_modules: int = 0
    in_progress_modules: int = 0
    not_started_modules: int = 0
    total_time_spent: float = 0
    average_score: float = 0
    current_streak: int = 0
    longest_streak: int = 0
    level_progress: dict[SkillLevel, LevelBreakdown] = field(
        default_factory=lambda: {level: LevelBreakdown() for level in SkillLevel}
    )
