"""Achievement/Badge Evaluator: declarative milestones, points and levels."""

from patissier.achievements.catalog import ACHIEVEMENTS, BADGES, LEVELS
from patissier.achievements.evaluator import (
    AchievementEvaluator,
    RequirementContext,
    current_level,
    item_progress,
    next_level_progress,
    requirement_progress,
)
from patissier.achievements.models import (
    Achievement,
    AchievementDefinition,
    Badge,
    BadgeDefinition,
    Level,
    ProgressOverview,
    Rarity,
    Requirement,
    RequirementType,
)

__all__ = [
    "ACHIEVEMENTS",
    "BADGES",
    "LEVELS",
    "Achievement",
    "AchievementDefinition",
    "AchievementEvaluator",
    "Badge",
    "BadgeDefinition",
    "Level",
    "ProgressOverview",
    "Rarity",
    "Requirement",
    "RequirementContext",
    "RequirementType",
    "current_level",
    "item_progress",
    "next_level_progress",
    "requirement_progress",
]
