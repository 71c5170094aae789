"""Tests for the trending tracker."""

import asyncio
import math

import pytest

from ..errors import InvalidInputError
from ..models import InteractionType
from .stores.memory import InMemoryEngagementStore
from .trending import TrendingTracker, calculate_trending_score

CLOCK = 1_790_000_000.0


@pytest.fixture
def store():
    return InMemoryEngagementStore()


@pytest.fixture
def tracker(store):
    return TrendingTracker(store, clock=lambda: CLOCK)


class TestCalculateTrendingScore:
    def test_formula(self):
        counters = {"views": 10, "likes": 2, "comments": 1, "shares": 1}
        assert calculate_trending_score(counters, CLOCK) == pytest.approx(
            (2 + 2 * 1 + 3 * 1) / 10 * math.log(CLOCK)
        )

    def test_zero_views_treated_as_one(self):
        assert calculate_trending_score({"likes": 1}, CLOCK) == pytest.approx(math.log(CLOCK))

    def test_no_engagement_scores_zero(self):
        assert calculate_trending_score({"views": 40}, CLOCK) == 0.0

    def test_monotonic_in_engagement(self):
        base = {"views": 20, "likes": 3, "comments": 2, "shares": 1}
        before = calculate_trending_score(base, CLOCK)
        for field in ("likes", "comments", "shares"):
            bumped = {**base, field: base[field] + 1}
            assert calculate_trending_score(bumped, CLOCK) >= before

    def test_drifts_upward_with_time(self):
        counters = {"views": 5, "likes": 5}
        assert calculate_trending_score(counters, CLOCK + 86400) > calculate_trending_score(
            counters, CLOCK
        )


class TestRecordEngagement:
    @pytest.mark.asyncio
    async def test_increments_matching_counter(self, tracker, store):
        await tracker.record_engagement("p1", "like")
        await tracker.record_engagement("p1", InteractionType.VIEW)
        await tracker.record_engagement("p1", "dwell")
        assert store.counters("p1") == {"likes": 1, "views": 1, "dwells": 1}

    @pytest.mark.asyncio
    async def test_returns_score_from_full_snapshot(self, tracker):
        await tracker.record_engagement("p1", "view")
        await tracker.record_engagement("p1", "view")
        score = await tracker.record_engagement("p1", "share")
        assert score == pytest.approx(3 / 2 * math.log(CLOCK))

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, tracker):
        with pytest.raises(InvalidInputError):
            await tracker.record_engagement("p1", "bookmark")

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, tracker, store):
        await asyncio.gather(*(tracker.record_engagement("p1", "like") for _ in range(50)))
        assert store.counters("p1") == {"likes": 50}


class TestTopTrending:
    @pytest.mark.asyncio
    async def test_k_larger_than_population(self, tracker):
        await tracker.record_engagement("x", "like")
        assert await tracker.top_trending(2) == ["x"]

    @pytest.mark.asyncio
    async def test_non_positive_k_is_empty(self, tracker):
        await tracker.record_engagement("x", "like")
        assert await tracker.top_trending(0) == []
        assert await tracker.top_trending(-3) == []

    @pytest.mark.asyncio
    async def test_highest_score_first(self, tracker):
        await tracker.record_engagement("low", "like")
        for _ in range(3):
            await tracker.record_engagement("high", "share")
        await tracker.record_engagement("mid", "comment")
        assert await tracker.top_trending(3) == ["high", "mid", "low"]

    @pytest.mark.asyncio
    async def test_score_replaced_on_update(self, tracker):
        await tracker.record_engagement("a", "share")
        await tracker.record_engagement("b", "like")
        for _ in range(10):
            await tracker.record_engagement("a", "view")
        assert await tracker.top_trending(1) == ["b"]
