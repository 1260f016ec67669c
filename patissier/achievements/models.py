"""
Achievement, badge and level models.

Definitions are static and live in code; only the evaluated state
(progress, unlock flag and timestamp) is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from patissier.catalog.models import SkillLevel
from patissier.core.clock import UtcDatetime


class RequirementType(str, Enum):
    PATH_COMPLETION = "path_completion"
    MODULE_COMPLETION = "module_completion"
    SCORE_THRESHOLD = "score_threshold"
    TIME_SPENT = "time_spent"
    STREAK_DAYS = "streak_days"
    LEVEL_REACHED = "level_reached"
    CATEGORY_MASTERY = "category_mastery"
    TOTAL_PATHS = "total_paths"
    TOTAL_MODULES = "total_modules"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass(frozen=True)
class Requirement:
    """
    One measurable target.

    ``value`` is a number for count-style requirements, a SkillLevel for
    ``level_reached``, ``"half_estimated"`` for the speed variant of
    ``time_spent``, and a dict for ``score_threshold``: ``{"score", "count"}``
    over module scores or ``{"score", "type": "path"}`` over path completion.
    """

    type: RequirementType
    value: Any
    description: str


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    category: str
    rarity: Rarity
    points: int
    requirements: tuple[Requirement, ...]
    dependencies: tuple[str, ...] = ()
    is_hidden: bool = False


@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    title: str
    description: str
    category: str
    color: str
    requirements: tuple[Requirement, ...]


class UnlockState(BaseModel):
    """Persisted evaluation state of one achievement or badge."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    progress: float = 0
    unlocked: bool = False
    unlocked_at: UtcDatetime | None = None


@dataclass
class Achievement:
    definition: AchievementDefinition
    progress: float = 0
    is_unlocked: bool = False
    unlocked_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def title(self) -> str:
        return self.definition.title

    @property
    def points(self) -> int:
        return self.definition.points


@dataclass
class Badge:
    definition: BadgeDefinition
    progress: float = 0
    is_earned: bool = False
    earned_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def title(self) -> str:
        return self.definition.title


@dataclass(frozen=True)
class Level:
    id: str
    name: str
    description: str
    required_points: int


@dataclass
class ProgressOverview:
    """Everything a progress dashboard shows, computed in one pass."""

    overall_progress: float = 0
    level_progress: dict[SkillLevel, float] = field(default_factory=dict)
    category_progress: dict[str, float] = field(default_factory=dict)
    achievements: list[Achievement] = field(default_factory=list)
    badges: list[Badge] = field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    last_activity: datetime | None = None
    total_paths_completed: int = 0
    total_modules_completed: int = 0
    total_time_spent: float = 0
    average_score: float = 0
    total_points: int = 0
    current_level: Level | None = None
    next_level_progress: float = 0
