"""Tests for the content scorer."""

import math
from datetime import timedelta

import pytest

from ..conftest import NOW, make_post
from ..models import InteractionCounts, PostMeta, UserProfile
from .scoring import ContentScorer, engagement_rate


@pytest.fixture
def scorer():
    return ContentScorer()


@pytest.fixture
def profile():
    return UserProfile(
        id="u1",
        interest_vector=[1.0, 0.0],
        followed_users=["author-a"],
    )


class TestCalculateScore:
    def test_followed_author_identical_embedding_scenario(self, scorer, profile):
        post = make_post("p1", author_id="author-a", hours_old=1.0, embedding=[1.0, 0.0])
        score = scorer.calculate_score(post, profile, InteractionCounts(), now=NOW)

        expected = 0.2 * math.exp(-1 / 24) + 0.4 * 0 + 0.35 * 1 + 0.05 * 1
        assert score == pytest.approx(expected)
        assert score == pytest.approx(0.592, abs=1e-3)

    def test_score_within_unit_interval(self, scorer, profile):
        cases = [
            (make_post("a", hours_old=0.0), InteractionCounts(likes=500, shares=90, views=10)),
            (make_post("b", author_id="x", hours_old=500, embedding=[-1.0, 0.0]), InteractionCounts()),
            (make_post("c", hours_old=-3.0), InteractionCounts(comments=2, views=1)),
        ]
        for post, counts in cases:
            score = scorer.calculate_score(post, profile, counts, now=NOW)
            assert 0.0 <= score <= 1.0 + 1e-9

    def test_deterministic(self, scorer, profile):
        post = make_post("p1", category="Sports")
        counts = InteractionCounts(likes=1, views=50)
        first = scorer.calculate_score(post, profile, counts, now=NOW)
        assert scorer.calculate_score(post, profile, counts, now=NOW) == first


class TestRecencyScore:
    def test_brand_new_post_is_one(self, scorer):
        assert scorer.recency_score(NOW, NOW) == pytest.approx(1.0)

    def test_day_old_post(self, scorer):
        assert scorer.recency_score(NOW - timedelta(hours=24), NOW) == pytest.approx(math.exp(-1))

    def test_very_old_post_tends_to_zero(self, scorer):
        assert scorer.recency_score(NOW - timedelta(days=60), NOW) < 1e-20

    def test_future_post_clamped_to_one(self, scorer):
        assert scorer.recency_score(NOW + timedelta(hours=5), NOW) == 1.0


class TestEngagementScore:
    def test_zero_views_treated_as_one(self, scorer):
        assert scorer.engagement_score(InteractionCounts()) == 0.0

    def test_weighted_rate(self, scorer):
        # (1 + 3*1 + 5*0) / 1000 * 100 = 0.4
        counts = InteractionCounts(likes=1, comments=1, views=1000)
        assert scorer.engagement_score(counts) == pytest.approx(0.4)

    def test_clipped_to_one(self, scorer):
        assert scorer.engagement_score(InteractionCounts(shares=10, views=10)) == 1.0

    def test_plain_engagement_rate(self):
        counts = InteractionCounts(likes=2, comments=1, shares=1, views=8)
        assert engagement_rate(counts) == pytest.approx(0.5)
        assert engagement_rate(InteractionCounts(likes=9)) == 1.0


class TestRelevanceScore:
    def test_history_boost_capped(self, scorer):
        profile = UserProfile(id="u1", interaction_history={"Sports": 500.0})
        post = make_post("p1", author_id="x", category="Sports", embedding=[])
        assert scorer.relevance_score(post, profile) == pytest.approx(0.2)

    def test_history_boost_scaled(self, scorer):
        profile = UserProfile(id="u1", interaction_history={"Sports": 7.0})
        post = make_post("p1", author_id="x", category="Sports", embedding=[])
        assert scorer.relevance_score(post, profile) == pytest.approx(0.07)

    def test_uncategorised_post_gets_no_history_boost(self, scorer):
        profile = UserProfile(id="u1", interaction_history={"": 50.0})
        post = make_post("p1", author_id="x", embedding=[])
        assert scorer.relevance_score(post, profile) == 0.0

    def test_mismatched_dimensions_give_zero_similarity(self, scorer):
        profile = UserProfile(id="u1", interest_vector=[1.0, 0.0, 0.0])
        post = make_post("p1", author_id="x", embedding=[1.0, 0.0])
        assert scorer.relevance_score(post, profile) == 0.0

    def test_negative_similarity_floored(self, scorer):
        profile = UserProfile(id="u1", interest_vector=[1.0, 0.0])
        post = make_post("p1", author_id="x", embedding=[-1.0, 0.0])
        assert scorer.relevance_score(post, profile) == 0.0


class TestDiversityPenalty:
    def test_no_recent_feed(self, scorer):
        post = make_post("p1", category="Tech")
        assert scorer.diversity_penalty(post, []) == 1.0

    def test_repetition_and_author_penalties(self, scorer):
        post = make_post("p1", author_id="author-a", category="Tech")
        recent = ["r1", "r2", "r3"]
        meta = {
            "r1": PostMeta(category="Tech", author_id="author-a"),
            "r2": PostMeta(category="Tech", author_id="someone"),
            "r3": PostMeta(category="Sports", author_id="author-a"),
        }
        # 2 same category -> 0.2, 2 same author -> 0.3
        assert scorer.diversity_penalty(post, recent, meta) == pytest.approx(0.5)

    def test_penalties_capped(self, scorer):
        post = make_post("p1", author_id="author-a", category="Tech")
        recent = [f"r{i}" for i in range(10)]
        meta = {pid: PostMeta(category="Tech", author_id="author-a") for pid in recent}
        assert scorer.diversity_penalty(post, recent, meta) == pytest.approx(0.1)

    def test_cache_miss_counts_toward_nothing(self, scorer):
        post = make_post("p1", author_id="author-a", category="Tech")
        recent = ["hit", "miss-1", "miss-2"]
        meta = {"hit": PostMeta(category="Tech", author_id="author-a")}
        assert scorer.diversity_penalty(post, recent, meta) == pytest.approx(1 - 0.1 - 0.15)

    def test_all_misses_no_penalty(self, scorer):
        post = make_post("p1")
        assert scorer.diversity_penalty(post, ["a", "b"], {}) == 1.0
