"""
Tests for learner profiles and recommendation scoring.
"""

import pytest

from patissier.catalog.models import LearningPath, SkillLevel
from patissier.completion.aggregator import CompletionAggregator
from patissier.completion.events import CompletionEventLog
from patissier.core.errors import NotFoundError
from patissier.recommendations.profile import (
    DEFAULT_DURATION,
    DurationBucket,
    UserProfile,
    duration_bucket,
    parse_duration_weeks,
)
from patissier.recommendations.scorer import (
    InteractionAction,
    Priority,
    RecommendationFilters,
    RecommendationScorer,
    duration_match,
    interest_match,
    tier_match,
)


@pytest.fixture
def scorer(progress_store, repository, settings, clock):
    aggregator = CompletionAggregator(progress_store, CompletionEventLog(repository), clock)
    return RecommendationScorer(progress_store, aggregator, repository, settings, clock)


def _complete_path(progress_store, path):
    for module in path.modules:
        progress_store.mark_module_complete(module.id, path)


class TestComponentMatches:
    def test_tiers(self):
        assert tier_match(1, 1) == 1.0
        assert tier_match(2, 1) == 0.8
        assert tier_match(1, 2) == 0.6
        assert tier_match(0, 2) == 0.2

    def test_interest_match_normalizes_by_larger_set(self):
        assert interest_match(["chocolate"], ["chocolate", "cake"]) == 0.5
        assert interest_match(["chocolate", "cake", "bread"], ["cake"]) == pytest.approx(1 / 3)

    def test_interest_match_cold_start(self):
        assert interest_match([], ["bread"]) == 0.5

    def test_duration_match(self):
        assert duration_match("1-2 weeks", "1-2 weeks") == 1.0
        assert duration_match("1-2 weeks", "3-4 weeks") == 0.6
        assert duration_match("6 weeks", "2 weeks") == 0.2
        assert duration_match("self-paced", "2 weeks") == 0.2


class TestDurationParsing:
    @pytest.mark.parametrize(
        "text, weeks",
        [
            ("1-2 weeks", 2),
            ("3 months", 12),
            ("14 days", 2),
            ("40 hours", 1),
            ("5", 5),
        ],
    )
    def test_parse_duration_weeks(self, text, weeks):
        assert parse_duration_weeks(text) == pytest.approx(weeks)

    def test_text_without_number(self):
        assert parse_duration_weeks("self-paced") is None
        assert duration_bucket("self-paced") is None

    def test_buckets(self):
        assert duration_bucket("1-2 weeks") == DurationBucket.SHORT
        assert duration_bucket("3-4 weeks") == DurationBucket.MEDIUM
        assert duration_bucket("6 weeks") == DurationBucket.LONG
        assert duration_bucket("3 months") == DurationBucket.EXTENDED


class TestUserProfile:
    def test_new_learner_gets_beginner_defaults(self, scorer, paths):
        profile = scorer.build_profile(paths)

        assert profile.skill_level == SkillLevel.BEGINNER
        assert profile.preferred_duration == DEFAULT_DURATION
        assert profile.interests == []

    def test_profile_follows_completed_paths(self, scorer, progress_store, path_by_id, paths):
        _complete_path(progress_store, path_by_id["p1"])
        _complete_path(progress_store, path_by_id["p2"])

        profile = scorer.build_profile(paths)

        assert profile.skill_level == SkillLevel.INTERMEDIATE
        assert profile.completed_path_ids == ["p1", "p2"]
        assert profile.completed_module_ids == ["m1", "m2", "m3", "m4"]
        assert set(profile.interests) == {"basics", "dough", "chocolate", "cake"}
        assert profile.favorite_categories == ["Fundamentals", "Cakes & Desserts"]


class TestScoring:
    def test_skill_and_interest_contribution(self, scorer):
        profile = UserProfile(skill_level=SkillLevel.INTERMEDIATE, interests=["chocolate"])
        candidate = LearningPath(
            id="choc", level="Intermediate", tags=["chocolate", "cake"]
        )

        breakdown = scorer.score_breakdown(candidate, profile)

        assert breakdown.skill == 1.0
        assert breakdown.interest == 0.5
        assert 0.40 * breakdown.skill + 0.25 * breakdown.interest == pytest.approx(0.525)

    def test_progress_bonus(self, scorer, progress_store, path_by_id):
        profile = UserProfile()
        p1, p2 = path_by_id["p1"], path_by_id["p2"]
        assert scorer.score_breakdown(p1, profile).progress == 0.5

        progress_store.mark_module_complete("m3", p2)
        assert scorer.score_breakdown(p2, profile).progress == 0.9

        _complete_path(progress_store, p1)
        assert scorer.score_breakdown(p1, profile).progress == 0.3

    def test_popularity_is_capped(self, scorer):
        crowded = LearningPath(id="crowded", total_students=50000)
        assert scorer.score_breakdown(crowded, UserProfile()).popularity == 1

    def test_scores_stay_in_unit_interval(self, scorer, paths):
        profile = UserProfile()
        for path in paths:
            assert 0 <= scorer.score_path(path, profile) <= 1

    def test_filters_penalize_instead_of_excluding(self, scorer, path_by_id):
        profile = UserProfile()
        p1 = path_by_id["p1"]
        unfiltered = scorer.score_path(p1, profile)

        penalized = scorer.score_path(p1, profile, RecommendationFilters(min_rating=4.9))

        assert penalized == pytest.approx(unfiltered * 0.3)

    def test_category_filter_matches_tags_or_category(self, scorer, path_by_id):
        profile = UserProfile()
        p2 = path_by_id["p2"]
        unfiltered = scorer.score_path(p2, profile)

        by_tag = scorer.score_path(p2, profile, RecommendationFilters(categories=["cake"]))
        by_category = scorer.score_path(
            p2, profile, RecommendationFilters(categories=["Cakes & Desserts"])
        )
        miss = scorer.score_path(p2, profile, RecommendationFilters(categories=["bread"]))

        assert by_tag == pytest.approx(unfiltered)
        assert by_category == pytest.approx(unfiltered)
        assert miss == pytest.approx(unfiltered * 0.6)


class TestRecommendations:
    def test_beginner_is_offered_the_fundamentals_first(self, scorer, paths):
        recommendations = scorer.get_recommendations(paths)

        assert [r.path_id for r in recommendations] == ["p1", "p2", "p3"]
        top = recommendations[0]
        assert top.score == pytest.approx(0.8075)
        assert "Featured learning path" in top.reasons
        assert top.priority == Priority.HIGH

    def test_exclude_completed(self, scorer, progress_store, path_by_id, paths):
        _complete_path(progress_store, path_by_id["p1"])

        recommendations = scorer.get_recommendations(
            paths, RecommendationFilters(exclude_completed=True)
        )

        assert "p1" not in [r.path_id for r in recommendations]

    def test_limit(self, scorer, paths):
        assert len(scorer.get_recommendations(paths, limit=1)) == 1

    def test_trending(self, scorer, paths):
        trending = scorer.get_trending(paths)

        assert [r.path_id for r in trending] == ["p1"]
        assert trending[0].score == pytest.approx(0.15)

    def test_similar_paths(self, scorer):
        catalog = [
            LearningPath(id="a", level="Intermediate", difficulty="Intermediate", tags=["cake"]),
            LearningPath(id="b", level="Intermediate", difficulty="Intermediate", tags=["cake"]),
            LearningPath(id="c", level="Intermediate", difficulty="Advanced", tags=["bread"]),
            LearningPath(id="d", level="Beginner", difficulty="Beginner", tags=["bread"]),
        ]

        similar = scorer.get_similar_paths("a", catalog)

        assert [r.path_id for r in similar] == ["b"]
        assert similar[0].priority == Priority.HIGH

    def test_similar_paths_for_unknown_path(self, scorer, paths):
        with pytest.raises(NotFoundError):
            scorer.get_similar_paths("missing", paths)


class TestInteractions:
    def test_analytics(self, scorer, clock):
        scorer.track_interaction("p1", InteractionAction.CLICK)
        scorer.track_interaction("p1", InteractionAction.START)
        scorer.track_interaction("p2", InteractionAction.CLICK)

        analytics = scorer.get_analytics()

        assert analytics.total_interactions == 3
        assert analytics.clicks == 2
        assert analytics.starts == 1
        assert analytics.top_path_ids == ["p1", "p2"]
        assert analytics.last_interaction == clock.now

    def test_history_persists_until_cleared(self, scorer, progress_store, repository, settings, clock):
        scorer.track_interaction("p1", InteractionAction.BOOKMARK)
        reloaded = RecommendationScorer(
            progress_store, scorer.aggregator, repository, settings, clock
        )
        assert reloaded.get_analytics().bookmarks == 1

        reloaded.clear_history()
        assert reloaded.get_analytics().total_interactions == 0
