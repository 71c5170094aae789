"""Tests for the built-in candidate sources and the registry."""

import pytest

from ...conftest import make_post
from ...models import UserProfile
from ..similarity import RecordedSimilarityLookup
from . import (
    FEED_SOURCES,
    CandidateResult,
    get_source,
    list_sources,
    merge_candidates,
)


@pytest.fixture
def profile():
    return UserProfile(id="u1", interest_vector=[1.0, 0.0], followed_users=["author-a"])


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_feed_sources_registered_in_order(self):
        assert list_sources()[:4] == FEED_SOURCES

    def test_unknown_source(self):
        assert get_source("nope") is None


class TestMergeCandidates:
    def test_first_occurrence_wins(self):
        shared = make_post("shared")
        results = [
            CandidateResult(source_name="followed", posts=[make_post("a"), shared]),
            CandidateResult(source_name="trending", posts=[shared, make_post("b")]),
        ]
        merged = merge_candidates(results)
        assert [(p.id, s) for p, s in merged] == [
            ("a", "followed"),
            ("shared", "followed"),
            ("b", "trending"),
        ]

    def test_empty(self):
        assert merge_candidates([]) == []


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

class TestFollowedSource:
    @pytest.mark.asyncio
    async def test_recent_posts_by_followed_authors(self, backends, profile):
        backends.posts.add(make_post("mine", author_id="author-a", hours_old=2))
        backends.posts.add(make_post("stale", author_id="author-a", hours_old=72))
        backends.posts.add(make_post("other", author_id="author-b", hours_old=1))

        result = await get_source("followed").generate(backends, profile)

        assert result.source_name == "followed"
        assert [p.id for p in result.posts] == ["mine"]

    @pytest.mark.asyncio
    async def test_follows_nobody(self, backends):
        backends.posts.add(make_post("p1"))
        result = await get_source("followed").generate(backends, UserProfile(id="loner"))
        assert result.posts == []

    @pytest.mark.asyncio
    async def test_respects_num_candidates(self, backends, profile):
        for i in range(5):
            backends.posts.add(make_post(f"p{i}", author_id="author-a"))
        result = await get_source("followed").generate(backends, profile, num_candidates=2)
        assert len(result.posts) == 2


class TestTrendingSource:
    @pytest.mark.asyncio
    async def test_hydrates_in_trending_order(self, backends, profile):
        backends.posts.add(make_post("hot"))
        backends.posts.add(make_post("warm"))
        await backends.tracker.record_engagement("warm", "like")
        await backends.tracker.record_engagement("hot", "share")
        await backends.tracker.record_engagement("gone", "share")

        result = await get_source("trending").generate(backends, profile)

        # "gone" is trending but no longer in the post store.
        assert [p.id for p in result.posts] == ["hot", "warm"]

    @pytest.mark.asyncio
    async def test_nothing_trending(self, backends, profile):
        result = await get_source("trending").generate(backends, profile)
        assert result.posts == []


class TestSimilarSource:
    @pytest.mark.asyncio
    async def test_delegates_to_similarity_lookup(self, backends, profile):
        backends.similarity = RecordedSimilarityLookup(
            {"u1": [make_post("s1"), make_post("s2"), make_post("s3")]}
        )
        result = await get_source("similar").generate(backends, profile, num_candidates=2)
        assert result.source_name == "similar"
        assert [p.id for p in result.posts] == ["s1", "s2"]

    @pytest.mark.asyncio
    async def test_lookup_may_return_nothing(self, backends, profile):
        result = await get_source("similar").generate(backends, profile)
        assert result.posts == []


class TestExplorationSource:
    @pytest.mark.asyncio
    async def test_samples_last_day_only(self, backends, profile):
        for i in range(4):
            backends.posts.add(make_post(f"new{i}", author_id=f"x{i}", hours_old=3))
        backends.posts.add(make_post("old", author_id="x", hours_old=30))

        result = await get_source("exploration").generate(backends, profile)

        assert result.source_name == "exploration"
        assert sorted(p.id for p in result.posts) == ["new0", "new1", "new2", "new3"]

    @pytest.mark.asyncio
    async def test_sample_size_bounded(self, backends, profile):
        for i in range(10):
            backends.posts.add(make_post(f"p{i}", hours_old=1))
        result = await get_source("exploration").generate(backends, profile, num_candidates=3)
        assert len(result.posts) == 3
        assert len({p.id for p in result.posts}) == 3
