"""Recommendation Scorer: learner profile and weighted path ranking."""

from patissier.recommendations.profile import (
    DurationBucket,
    UserProfile,
    build_user_profile,
    duration_bucket,
    parse_duration_weeks,
)
from patissier.recommendations.scorer import (
    WEIGHTS,
    Interaction,
    InteractionAction,
    Priority,
    Recommendation,
    RecommendationAnalytics,
    RecommendationBasis,
    RecommendationFilters,
    RecommendationScorer,
    ScoreBreakdown,
    interest_match,
    path_similarity,
    tier_match,
)

__all__ = [
    "WEIGHTS",
    "DurationBucket",
    "Interaction",
    "InteractionAction",
    "Priority",
    "Recommendation",
    "RecommendationAnalytics",
    "RecommendationBasis",
    "RecommendationFilters",
    "RecommendationScorer",
    "ScoreBreakdown",
    "UserProfile",
    "build_user_profile",
    "duration_bucket",
    "interest_match",
    "parse_duration_weeks",
    "path_similarity",
    "tier_match",
]
