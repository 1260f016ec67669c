"""Built-in achievements, badges and levels."""

from __future__ import annotations

from patissier.achievements.models import (
    AchievementDefinition,
    BadgeDefinition,
    Level,
    Rarity,
    Requirement,
    RequirementType,
)
from patissier.catalog.models import SkillLevel


def _req(type_: RequirementType, value, description: str) -> tuple[Requirement, ...]:
    return (Requirement(type=type_, value=value, description=description),)


ACHIEVEMENTS: list[AchievementDefinition] = [
    AchievementDefinition(
        id="first_steps",
        title="First Steps",
        description="Complete your first learning path",
        category="progress",
        rarity=Rarity.COMMON,
        points=10,
        requirements=_req(RequirementType.PATH_COMPLETION, 1, "Complete 1 learning path"),
    ),
    AchievementDefinition(
        id="path_master",
        title="Path Master",
        description="Complete 10 learning paths",
        category="progress",
        rarity=Rarity.UNCOMMON,
        points=50,
        requirements=_req(RequirementType.PATH_COMPLETION, 10, "Complete 10 learning paths"),
        dependencies=("first_steps",),
    ),
    AchievementDefinition(
        id="path_legend",
        title="Path Legend",
        description="Complete 50 learning paths",
        category="progress",
        rarity=Rarity.LEGENDARY,
        points=500,
        requirements=_req(RequirementType.PATH_COMPLETION, 50, "Complete 50 learning paths"),
        dependencies=("path_master",),
    ),
    AchievementDefinition(
        id="module_master",
        title="Module Master",
        description="Complete 100 modules",
        category="milestone",
        rarity=Rarity.RARE,
        points=100,
        requirements=_req(RequirementType.MODULE_COMPLETION, 100, "Complete 100 modules"),
    ),
    AchievementDefinition(
        id="time_investor",
        title="Time Investor",
        description="Spend 100 hours learning",
        category="milestone",
        rarity=Rarity.EPIC,
        points=200,
        requirements=_req(RequirementType.TIME_SPENT, 6000, "Spend 100 hours learning"),
    ),
    AchievementDefinition(
        id="beginner_baker",
        title="Beginner Baker",
        description="Complete all beginner level paths",
        category="skill",
        rarity=Rarity.COMMON,
        points=25,
        requirements=_req(
            RequirementType.LEVEL_REACHED, SkillLevel.BEGINNER, "Complete all beginner level paths"
        ),
    ),
    AchievementDefinition(
        id="intermediate_chef",
        title="Intermediate Chef",
        description="Complete all intermediate level paths",
        category="skill",
        rarity=Rarity.UNCOMMON,
        points=75,
        requirements=_req(
            RequirementType.LEVEL_REACHED,
            SkillLevel.INTERMEDIATE,
            "Complete all intermediate level paths",
        ),
        dependencies=("beginner_baker",),
    ),
    AchievementDefinition(
        id="master_patissier",
        title="Master Patissier",
        description="Complete all advanced level paths",
        category="skill",
        rarity=Rarity.LEGENDARY,
        points=300,
        requirements=_req(
            RequirementType.LEVEL_REACHED, SkillLevel.ADVANCED, "Complete all advanced level paths"
        ),
        dependencies=("intermediate_chef",),
    ),
    AchievementDefinition(
        id="dedicated_learner",
        title="Dedicated Learner",
        description="Maintain a 7-day learning streak",
        category="streak",
        rarity=Rarity.COMMON,
        points=20,
        requirements=_req(RequirementType.STREAK_DAYS, 7, "Maintain a 7-day learning streak"),
    ),
    AchievementDefinition(
        id="streak_master",
        title="Streak Master",
        description="Maintain a 30-day learning streak",
        category="streak",
        rarity=Rarity.RARE,
        points=100,
        requirements=_req(RequirementType.STREAK_DAYS, 30, "Maintain a 30-day learning streak"),
        dependencies=("dedicated_learner",),
    ),
    AchievementDefinition(
        id="perfectionist",
        title="Perfectionist",
        description="Achieve 100% score on 10 modules",
        category="special",
        rarity=Rarity.EPIC,
        points=150,
        requirements=_req(
            RequirementType.SCORE_THRESHOLD,
            {"score": 100, "count": 10},
            "Achieve 100% score on 10 modules",
        ),
    ),
    AchievementDefinition(
        id="early_bird",
        title="Early Bird",
        description="Complete a path in half the estimated time",
        category="special",
        rarity=Rarity.UNCOMMON,
        points=50,
        requirements=_req(
            RequirementType.TIME_SPENT, "half_estimated", "Complete a path in half the estimated time"
        ),
        is_hidden=True,
    ),
]


BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="path_completer",
        title="Path Completer",
        description="Complete a learning path",
        category="completion",
        color="green",
        requirements=_req(RequirementType.PATH_COMPLETION, 1, "Complete 1 learning path"),
    ),
    BadgeDefinition(
        id="module_completer",
        title="Module Completer",
        description="Complete a learning module",
        category="completion",
        color="blue",
        requirements=_req(RequirementType.MODULE_COMPLETION, 1, "Complete 1 learning module"),
    ),
    BadgeDefinition(
        id="progress_tracker",
        title="Progress Tracker",
        description="Reach 50% completion on any path",
        category="progress",
        color="yellow",
        requirements=_req(
            RequirementType.SCORE_THRESHOLD,
            {"score": 50, "type": "path"},
            "Reach 50% completion on any path",
        ),
    ),
    BadgeDefinition(
        id="almost_there",
        title="Almost There",
        description="Reach 90% completion on any path",
        category="progress",
        color="orange3",
        requirements=_req(
            RequirementType.SCORE_THRESHOLD,
            {"score": 90, "type": "path"},
            "Reach 90% completion on any path",
        ),
    ),
    BadgeDefinition(
        id="category_expert",
        title="Category Expert",
        description="Complete all paths in a category",
        category="skill",
        color="red",
        requirements=_req(RequirementType.CATEGORY_MASTERY, 1, "Complete all paths in a category"),
    ),
    BadgeDefinition(
        id="century_club",
        title="Century Club",
        description="Complete 100 modules",
        category="milestone",
        color="purple",
        requirements=_req(RequirementType.MODULE_COMPLETION, 100, "Complete 100 modules"),
    ),
    BadgeDefinition(
        id="time_traveler",
        title="Time Traveler",
        description="Spend 24 hours learning",
        category="milestone",
        color="cyan",
        requirements=_req(RequirementType.TIME_SPENT, 1440, "Spend 24 hours learning"),
    ),
    BadgeDefinition(
        id="perfectionist_badge",
        title="Perfectionist",
        description="Achieve perfect scores on 5 modules",
        category="special",
        color="magenta",
        requirements=_req(
            RequirementType.SCORE_THRESHOLD,
            {"score": 100, "count": 5},
            "Achieve perfect scores on 5 modules",
        ),
    ),
]


LEVELS: list[Level] = [
    Level("novice", "Novice", "Just starting your pastry journey", 0),
    Level("apprentice", "Apprentice", "Learning the fundamentals", 100),
    Level("journeyman", "Journeyman", "Developing your skills", 500),
    Level("craftsman", "Craftsman", "Mastering your craft", 1000),
    Level("master", "Master", "A true pastry master", 2500),
]
