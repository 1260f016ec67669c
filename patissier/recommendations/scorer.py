"""
Recommendation Scorer.

Ranks learning paths by weighted similarity to the learner profile:

    score = 0.40 skill + 0.25 interest + 0.15 difficulty
          + 0.10 duration + 0.05 popularity + 0.05 progress

Filters never exclude a path outright (except ``exclude_completed``);
they multiply its score down so mismatches rank lower. Reasons, confidence,
priority and basis are derived after scoring and do not affect rank.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel

from config import Settings, get_settings
from patissier.catalog.models import LearningPath, SkillLevel, find_path
from patissier.completion.aggregator import CompletionAggregator
from patissier.core.clock import Clock, UtcDatetime, utc_now
from patissier.progress.store import ProgressStore
from patissier.recommendations.profile import UserProfile, build_user_profile, duration_bucket
from patissier.storage.repository import StateRepository

WEIGHTS: dict[str, float] = {
    "skill": 0.40,
    "interest": 0.25,
    "difficulty": 0.15,
    "duration": 0.10,
    "popularity": 0.05,
    "progress": 0.05,
}

POPULAR_STUDENT_COUNT = 1000
HIGH_RATING = 4.5


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationBasis(str, Enum):
    SKILL_LEVEL = "skill_level"
    INTERESTS = "interests"
    DIFFICULTY = "difficulty"
    DURATION = "duration"
    POPULARITY = "popularity"
    COMPLETION = "completion"


class InteractionAction(str, Enum):
    CLICK = "click"
    BOOKMARK = "bookmark"
    START = "start"
    COMPLETE = "complete"


@dataclass
class ScoreBreakdown:
    """Per-component match values, each in 0..1."""

    skill: float
    interest: float
    difficulty: float
    duration: float
    popularity: float
    progress: float

    @property
    def weighted(self) -> float:
        return sum(getattr(self, name) * weight for name, weight in WEIGHTS.items())


@dataclass
class RecommendationFilters:
    skill_level: SkillLevel | None = None
    difficulty: SkillLevel | None = None
    duration: str | None = None
    categories: list[str] = field(default_factory=list)
    min_rating: float | None = None
    exclude_completed: bool = False


@dataclass
class Recommendation:
    path_id: str
    path: LearningPath
    score: float
    reasons: list[str]
    confidence: float
    priority: Priority
    based_on: RecommendationBasis
    breakdown: ScoreBreakdown | None = None


class Interaction(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    path_id: str
    action: InteractionAction
    timestamp: UtcDatetime


@dataclass
class RecommendationAnalytics:
    total_interactions: int = 0
    interactions_by_action: dict[str, int] = field(default_factory=dict)
    clicks: int = 0
    bookmarks: int = 0
    starts: int = 0
    completions: int = 0
    top_path_ids: list[str] = field(default_factory=list)
    last_interaction: datetime | None = None


_HISTORY_ADAPTER = TypeAdapter(list[Interaction])


def tier_match(learner_rank: int, candidate_rank: int) -> float:
    """
    Tiered similarity between two ordered levels.

    1.0 when equal, 0.8 when the candidate is one step below the learner,
    0.6 when one step above, 0.2 otherwise.
    """
    gap = learner_rank - candidate_rank
    if gap == 0:
        return 1.0
    if gap == 1:
        return 0.8
    if gap == -1:
        return 0.6
    return 0.2


def interest_match(interests: list[str], tags: list[str]) -> float:
    if not interests:
        return 0.5
    matching = [tag for tag in tags if tag in interests]
    return len(matching) / max(len(interests), len(tags))


def duration_match(preferred: str, duration: str) -> float:
    if preferred == duration:
        return 1.0
    preferred_bucket = duration_bucket(preferred)
    candidate_bucket = duration_bucket(duration)
    if preferred_bucket is None or candidate_bucket is None:
        return 0.2
    return tier_match(preferred_bucket.rank, candidate_bucket.rank)


def path_similarity(target: LearningPath, other: LearningPath) -> float:
    """0.3 for equal level, 0.3 for equal difficulty, 0.4 scaled by tag overlap."""
    score = 0.0
    if target.level == other.level:
        score += 0.3
    if target.difficulty == other.difficulty:
        score += 0.3
    largest = max(len(target.tags), len(other.tags))
    if largest:
        common = [tag for tag in target.tags if tag in other.tags]
        score += len(common) / largest * 0.4
    return score


class RecommendationScorer:
    """Ranks learning paths for the current learner and tracks interactions."""

    COLLECTION = "recommendations"

    def __init__(
        self,
        progress: ProgressStore,
        aggregator: CompletionAggregator,
        repository: StateRepository,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ):
        self.progress = progress
        self.aggregator = aggregator
        self.settings = settings or get_settings()
        self._repository = repository
        self._clock = clock
        self._history: list[Interaction] = repository.load(
            self.COLLECTION, _HISTORY_ADAPTER, list
        )

    # ========================================
    # Profile and scoring
    # ========================================

    def build_profile(self, paths: list[LearningPath]) -> UserProfile:
        stats = self.aggregator.get_completion_stats(paths)
        return build_user_profile(
            paths, self.progress, stats, interest_count=self.settings.interest_count
        )

    def score_breakdown(self, path: LearningPath, profile: UserProfile) -> ScoreBreakdown:
        return ScoreBreakdown(
            skill=tier_match(profile.skill_level.rank, path.level.rank),
            interest=interest_match(profile.interests, path.tags),
            difficulty=tier_match(profile.preferred_difficulty.rank, path.difficulty.rank),
            duration=duration_match(profile.preferred_duration, path.duration),
            popularity=min(path.total_students / self.settings.popularity_ceiling, 1),
            progress=self._progress_bonus(path),
        )

    def score_path(
        self,
        path: LearningPath,
        profile: UserProfile,
        filters: RecommendationFilters | None = None,
    ) -> float:
        """Weighted score after filter penalties, clamped to 0..1."""
        score = self.score_breakdown(path, profile).weighted
        if filters:
            score *= _filter_multiplier(path, filters)
        return min(max(score, 0.0), 1.0)

    def get_recommendations(
        self,
        paths: list[LearningPath],
        filters: RecommendationFilters | None = None,
        limit: int | None = None,
    ) -> list[Recommendation]:
        """
        Rank paths for the learner.

        Args:
            paths: Catalog to rank
            filters: Optional soft filters
            limit: Maximum results (defaults to the configured limit)

        Returns:
            Recommendations, highest score first
        """
        profile = self.build_profile(paths)
        limit = self.settings.recommendation_limit if limit is None else limit
        recommendations: list[Recommendation] = []

        for path in paths:
            if filters and filters.exclude_completed and path.id in profile.completed_path_ids:
                continue

            breakdown = self.score_breakdown(path, profile)
            score = self.score_path(path, profile, filters)
            if score <= 0:
                continue

            reasons = _reasons(path, profile)
            confidence = min(score + min(0.1 * len(reasons), 0.3), 1)
            recommendations.append(
                Recommendation(
                    path_id=path.id,
                    path=path,
                    score=score,
                    reasons=reasons,
                    confidence=confidence,
                    priority=_priority(score, confidence),
                    based_on=_basis(path, profile),
                    breakdown=breakdown,
                )
            )

        recommendations.sort(key=lambda r: r.score, reverse=True)
        logger.debug(f"Scored {len(recommendations)} paths for a {profile.skill_level.value} learner")
        return recommendations[:limit]

    def get_trending(self, paths: list[LearningPath], limit: int = 10) -> list[Recommendation]:
        """Featured or popular paths ranked by student count."""
        trending = [
            Recommendation(
                path_id=path.id,
                path=path,
                score=min(path.total_students / self.settings.popularity_ceiling, 1),
                reasons=["Trending learning path"],
                confidence=0.8,
                priority=Priority.HIGH,
                based_on=RecommendationBasis.POPULARITY,
            )
            for path in paths
            if path.is_featured or path.total_students > POPULAR_STUDENT_COUNT
        ]
        trending.sort(key=lambda r: r.score, reverse=True)
        return trending[:limit]

    def get_similar_paths(
        self, path_id: str, paths: list[LearningPath], limit: int = 5
    ) -> list[Recommendation]:
        """
        Paths resembling the given one; only similarities above 0.3 are kept.

        Raises:
            NotFoundError: If the path is not in the catalog
        """
        target = find_path(paths, path_id)
        similar = []
        for path in paths:
            if path.id == path_id:
                continue
            score = path_similarity(target, path)
            if score <= 0.3:
                continue
            similar.append(
                Recommendation(
                    path_id=path.id,
                    path=path,
                    score=score,
                    reasons=["Similar to your current path"],
                    confidence=score,
                    priority=Priority.HIGH if score > 0.7 else Priority.MEDIUM,
                    based_on=RecommendationBasis.INTERESTS,
                )
            )
        similar.sort(key=lambda r: r.score, reverse=True)
        return similar[:limit]

    # ========================================
    # Interaction history
    # ========================================

    def track_interaction(self, path_id: str, action: InteractionAction) -> Interaction:
        interaction = Interaction(path_id=path_id, action=action, timestamp=self._clock())
        self._history.append(interaction)
        self._save_history()
        return interaction

    def get_analytics(self) -> RecommendationAnalytics:
        by_action = Counter(interaction.action.value for interaction in self._history)
        by_path = Counter(interaction.path_id for interaction in self._history)
        return RecommendationAnalytics(
            total_interactions=len(self._history),
            interactions_by_action=dict(by_action),
            clicks=by_action[InteractionAction.CLICK.value],
            bookmarks=by_action[InteractionAction.BOOKMARK.value],
            starts=by_action[InteractionAction.START.value],
            completions=by_action[InteractionAction.COMPLETE.value],
            top_path_ids=[path_id for path_id, _ in by_path.most_common(5)],
            last_interaction=max((i.timestamp for i in self._history), default=None),
        )

    def clear_history(self) -> None:
        self._history = []
        self._save_history()

    def _save_history(self) -> None:
        self._repository.save(
            self.COLLECTION,
            _HISTORY_ADAPTER.dump_python(self._history, mode="json", by_alias=True),
        )

    def _progress_bonus(self, path: LearningPath) -> float:
        record = self.progress.get_path_progress(path.id)
        if record is None or record.completion_percentage <= 0:
            return 0.5
        if record.completion_percentage >= 100:
            return 0.3
        return 0.9


def _filter_multiplier(path: LearningPath, filters: RecommendationFilters) -> float:
    multiplier = 1.0
    if filters.skill_level and path.level != filters.skill_level:
        multiplier *= 0.5
    if filters.difficulty and path.difficulty != filters.difficulty:
        multiplier *= 0.5
    if filters.duration and filters.duration not in path.duration:
        multiplier *= 0.7
    if filters.categories:
        labels = set(path.tags)
        category = path.resolved_category()
        if category:
            labels.add(category)
        if not labels.intersection(filters.categories):
            multiplier *= 0.6
    if filters.min_rating is not None and path.average_rating < filters.min_rating:
        multiplier *= 0.3
    return multiplier


def _reasons(path: LearningPath, profile: UserProfile) -> list[str]:
    reasons = []
    if path.level == profile.skill_level:
        reasons.append(f"Matches your {profile.skill_level.value} skill level")
    matching = [tag for tag in path.tags if tag in profile.interests]
    if matching:
        reasons.append(f"Matches your interests: {', '.join(matching)}")
    if path.difficulty == profile.preferred_difficulty:
        reasons.append(f"Matches your preferred {path.difficulty.value} difficulty")
    if path.duration == profile.preferred_duration:
        reasons.append(f"Matches your preferred {path.duration} duration")
    if path.total_students > POPULAR_STUDENT_COUNT:
        reasons.append(f"Popular choice with {path.total_students:,} students")
    if path.average_rating >= HIGH_RATING:
        reasons.append(f"Highly rated ({path.average_rating:.1f}/5)")
    if path.is_featured:
        reasons.append("Featured learning path")
    return reasons


def _priority(score: float, confidence: float) -> Priority:
    combined = (score + confidence) / 2
    if combined >= 0.8:
        return Priority.HIGH
    if combined >= 0.6:
        return Priority.MEDIUM
    return Priority.LOW


def _basis(path: LearningPath, profile: UserProfile) -> RecommendationBasis:
    if path.level == profile.skill_level:
        return RecommendationBasis.SKILL_LEVEL
    if any(tag in profile.interests for tag in path.tags):
        return RecommendationBasis.INTERESTS
    if path.difficulty == profile.preferred_difficulty:
        return RecommendationBasis.DIFFICULTY
    if path.duration == profile.preferred_duration:
        return RecommendationBasis.DURATION
    if path.total_students > POPULAR_STUDENT_COUNT:
        return RecommendationBasis.POPULARITY
    return RecommendationBasis.COMPLETION
