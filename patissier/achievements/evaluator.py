"""
Achievement/Badge Evaluator.

Evaluates declarative requirement lists against progress and completion
statistics. Each requirement normalizes to 0..100 against its target and
an item's progress is the mean over its requirements; the item unlocks when
that mean reaches 100.

Achievements are evaluated in definition order. One whose dependencies are
not all unlocked is skipped entirely, whatever its own requirements say.
Unlocks are monotonic until reset_all().
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from statistics import mean
from typing import Any

from loguru import logger
from pydantic import TypeAdapter

from patissier.achievements.catalog import ACHIEVEMENTS, BADGES, LEVELS
from patissier.achievements.models import (
    Achievement,
    AchievementDefinition,
    Badge,
    BadgeDefinition,
    Level,
    ProgressOverview,
    Requirement,
    RequirementType,
    UnlockState,
)
from patissier.catalog.models import CATEGORY_KEYWORDS, LearningPath, SkillLevel
from patissier.completion.aggregator import CompletionAggregator, CompletionStats
from patissier.core.clock import Clock, utc_now
from patissier.progress.models import ProgressSnapshot, ProgressStatus
from patissier.progress.store import ProgressStore
from patissier.storage.repository import StateRepository

_STATES_ADAPTER = TypeAdapter(list[UnlockState])


@dataclass
class RequirementContext:
    """State a requirement is measured against."""

    snapshot: ProgressSnapshot
    stats: CompletionStats
    paths: list[LearningPath]

    def is_path_completed(self, path_id: str) -> bool:
        record = self.snapshot.path_progress.get(path_id)
        return record is not None and record.completion_percentage >= 100


def _ratio(current: float, target: Any) -> float:
    if not _is_number(target):
        return 0.0
    if target <= 0:
        return 100.0
    return min(current / target * 100, 100.0)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def requirement_progress(requirement: Requirement, context: RequirementContext) -> float:
    """
    Progress toward one requirement, 0..100.

    Unknown or malformed requirement values count as 0.
    """
    kind = requirement.type
    value = requirement.value
    modules = context.snapshot.module_progress.values()
    path_records = context.snapshot.path_progress.values()

    if kind == RequirementType.PATH_COMPLETION:
        completed = sum(1 for p in path_records if p.completion_percentage >= 100)
        return _ratio(completed, value)

    elif kind == RequirementType.MODULE_COMPLETION:
        completed = sum(1 for m in modules if m.status == ProgressStatus.COMPLETED)
        return _ratio(completed, value)

    elif kind == RequirementType.SCORE_THRESHOLD:
        if not isinstance(value, dict) or not _is_number(value.get("score")):
            return 0.0
        if value.get("type") == "path":
            reached = any(p.completion_percentage >= value["score"] for p in path_records)
            return 100.0 if reached else 0.0
        if "count" in value:
            scored = sum(1 for m in modules if m.score is not None and m.score >= value["score"])
            return _ratio(scored, value["count"])
        return 0.0

    elif kind == RequirementType.TIME_SPENT:
        if value == "half_estimated":
            return 100.0 if _completed_in_half_time(context) else 0.0
        if isinstance(value, (int, float)):
            return _ratio(context.stats.total_time_spent, value)
        return 0.0

    elif kind == RequirementType.STREAK_DAYS:
        return _ratio(context.stats.current_streak, value)

    elif kind == RequirementType.LEVEL_REACHED:
        try:
            level = SkillLevel(value)
        except ValueError:
            return 0.0
        level_paths = [path for path in context.paths if path.level == level]
        if not level_paths:
            return 0.0
        completed = sum(1 for path in level_paths if context.is_path_completed(path.id))
        return _ratio(completed, len(level_paths))

    elif kind == RequirementType.CATEGORY_MASTERY:
        mastered = sum(
            1
            for category_paths in _paths_by_category(context.paths).values()
            if category_paths and all(context.is_path_completed(p.id) for p in category_paths)
        )
        return _ratio(mastered, value)

    elif kind == RequirementType.TOTAL_PATHS:
        return _ratio(len(context.snapshot.path_progress), value)

    elif kind == RequirementType.TOTAL_MODULES:
        return _ratio(len(context.snapshot.module_progress), value)

    return 0.0


def item_progress(requirements: Sequence[Requirement], context: RequirementContext) -> float:
    if not requirements:
        return 0.0
    return min(mean(requirement_progress(r, context) for r in requirements), 100.0)


def current_level(points: int) -> Level:
    """Highest level whose point requirement is met."""
    reached = [level for level in LEVELS if level.required_points <= points]
    return reached[-1] if reached else LEVELS[0]


def next_level_progress(points: int) -> float:
    """Percentage of the way from the current level to the next; 100 at the top level."""
    level = current_level(points)
    upcoming = [lvl for lvl in LEVELS if lvl.required_points > points]
    if not upcoming:
        return 100.0
    span = upcoming[0].required_points - level.required_points
    return (points - level.required_points) / span * 100


def _paths_by_category(paths: list[LearningPath]) -> dict[str, list[LearningPath]]:
    categories: dict[str, list[LearningPath]] = {name: [] for name in CATEGORY_KEYWORDS}
    for path in paths:
        category = path.resolved_category()
        if category:
            categories.setdefault(category, []).append(path)
    return categories


def _completed_in_half_time(context: RequirementContext) -> bool:
    for path in context.paths:
        record = context.snapshot.path_progress.get(path.id)
        if record is None or record.completion_percentage < 100 or path.estimated_hours <= 0:
            continue
        if record.time_spent_minutes <= path.estimated_hours * 60 * 0.5:
            return True
    return False


class AchievementEvaluator:
    """Tracks achievement and badge state for one learner."""

    ACHIEVEMENTS = "achievements"
    BADGES = "badges"

    def __init__(
        self,
        progress: ProgressStore,
        aggregator: CompletionAggregator,
        repository: StateRepository,
        achievements: list[AchievementDefinition] | None = None,
        badges: list[BadgeDefinition] | None = None,
        clock: Clock = utc_now,
    ):
        self.progress = progress
        self.aggregator = aggregator
        self._repository = repository
        self._clock = clock
        self._achievements = [
            Achievement(definition) for definition in (achievements or ACHIEVEMENTS)
        ]
        self._badges = [Badge(definition) for definition in (badges or BADGES)]
        self._load()

    # ========================================
    # Evaluation
    # ========================================

    def check_achievements(self, paths: list[LearningPath]) -> list[Achievement]:
        """
        Re-evaluate locked achievements.

        Returns:
            Achievements unlocked by this call
        """
        context = self._context(paths)
        unlocked_ids = {a.id for a in self._achievements if a.is_unlocked}
        newly_unlocked = []

        for achievement in self._achievements:
            if achievement.is_unlocked:
                continue
            if not all(dep in unlocked_ids for dep in achievement.definition.dependencies):
                continue

            achievement.progress = item_progress(achievement.definition.requirements, context)
            if achievement.progress >= 100:
                achievement.is_unlocked = True
                achievement.unlocked_at = self._clock()
                unlocked_ids.add(achievement.id)
                newly_unlocked.append(achievement)
                logger.info(f"Achievement unlocked: {achievement.title}")

        self._save_achievements()
        return newly_unlocked

    def check_badges(self, paths: list[LearningPath]) -> list[Badge]:
        """
        Re-evaluate badges not yet earned.

        Returns:
            Badges earned by this call
        """
        context = self._context(paths)
        newly_earned = []

        for badge in self._badges:
            if badge.is_earned:
                continue
            badge.progress = item_progress(badge.definition.requirements, context)
            if badge.progress >= 100:
                badge.is_earned = True
                badge.earned_at = self._clock()
                newly_earned.append(badge)
                logger.info(f"Badge earned: {badge.title}")

        self._save_badges()
        return newly_earned

    def get_achievements(self, include_hidden: bool = True) -> list[Achievement]:
        return [
            a
            for a in self._achievements
            if include_hidden or a.is_unlocked or not a.definition.is_hidden
        ]

    def get_badges(self) -> list[Badge]:
        return list(self._badges)

    # ========================================
    # Points and levels
    # ========================================

    def total_points(self) -> int:
        return sum(a.points for a in self._achievements if a.is_unlocked)

    def current_level(self) -> Level:
        return current_level(self.total_points())

    def next_level_progress(self) -> float:
        return next_level_progress(self.total_points())

    # ========================================
    # Overview
    # ========================================

    def get_progress_overview(self, paths: list[LearningPath]) -> ProgressOverview:
        """
        Evaluate achievements and badges, then summarize progress for a dashboard.

        Args:
            paths: Catalog used for overall, level and category completion

        Returns:
            ProgressOverview
        """
        self.check_achievements(paths)
        self.check_badges(paths)

        context = self._context(paths)
        completed = {path.id for path in paths if context.is_path_completed(path.id)}

        level_progress = {}
        for level in SkillLevel:
            level_paths = [path for path in paths if path.level == level]
            done = sum(1 for path in level_paths if path.id in completed)
            level_progress[level] = done / len(level_paths) * 100 if level_paths else 0.0

        category_progress = {}
        for category, category_paths in _paths_by_category(paths).items():
            done = sum(1 for path in category_paths if path.id in completed)
            category_progress[category] = (
                done / len(category_paths) * 100 if category_paths else 0.0
            )

        stats = context.stats
        points = self.total_points()
        return ProgressOverview(
            overall_progress=len(completed) / len(paths) * 100 if paths else 0.0,
            level_progress=level_progress,
            category_progress=category_progress,
            achievements=self.get_achievements(),
            badges=self.get_badges(),
            current_streak=stats.current_streak,
            longest_streak=stats.longest_streak,
            last_activity=stats.last_activity,
            total_paths_completed=sum(
                1 for record in context.snapshot.path_progress.values()
                if record.completion_percentage >= 100
            ),
            total_modules_completed=stats.total_modules_completed,
            total_time_spent=stats.total_time_spent,
            average_score=stats.average_score,
            total_points=points,
            current_level=current_level(points),
            next_level_progress=next_level_progress(points),
        )

    # ========================================
    # Persistence
    # ========================================

    def reset_all(self) -> None:
        for achievement in self._achievements:
            achievement.progress = 0
            achievement.is_unlocked = False
            achievement.unlocked_at = None
        for badge in self._badges:
            badge.progress = 0
            badge.is_earned = False
            badge.earned_at = None
        self._save_achievements()
        self._save_badges()
        logger.info("Achievements and badges reset")

    def _context(self, paths: list[LearningPath]) -> RequirementContext:
        return RequirementContext(
            snapshot=self.progress.get_all_progress(),
            stats=self.aggregator.get_completion_stats(paths),
            paths=paths,
        )

    def _load(self) -> None:
        achievement_states = {
            state.id: state
            for state in self._repository.load(self.ACHIEVEMENTS, _STATES_ADAPTER, list)
        }
        for achievement in self._achievements:
            state = achievement_states.get(achievement.id)
            if state:
                achievement.progress = state.progress
                achievement.is_unlocked = state.unlocked
                achievement.unlocked_at = state.unlocked_at

        badge_states = {
            state.id: state for state in self._repository.load(self.BADGES, _STATES_ADAPTER, list)
        }
        for badge in self._badges:
            state = badge_states.get(badge.id)
            if state:
                badge.progress = state.progress
                badge.is_earned = state.unlocked
                badge.earned_at = state.unlocked_at

    def _save_achievements(self) -> None:
        states = [
            UnlockState(id=a.id, progress=a.progress, unlocked=a.is_unlocked, unlocked_at=a.unlocked_at)
            for a in self._achievements
        ]
        self._repository.save(
            self.ACHIEVEMENTS, _STATES_ADAPTER.dump_python(states, mode="json", by_alias=True)
        )

    def _save_badges(self) -> None:
        states = [
            UnlockState(id=b.id, progress=b.progress, unlocked=b.is_earned, unlocked_at=b.earned_at)
            for b in self._badges
        ]
        self._repository.save(
            self.BADGES, _STATES_ADAPTER.dump_python(states, mode="json", by_alias=True)
        )
