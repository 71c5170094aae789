"""Feed assembler.

Builds a user's feed in five stages:

1. Resolve the profile, cache first, falling back to the profile store.
2. Gather candidates from every feed source concurrently and merge them by
   post id (first source wins).
3. Score every candidate concurrently:
   ``0.4 * content + 0.3 * social + 0.3 * engagement_prediction``.
4. Sort by score (stable) and apply the diversity filter.
5. Truncate, then remember what was shown (post metadata in the cache, ids
   in the feed history) and drop the now stale cached profile.

A missing or unreachable profile fails the request, as does an empty
candidate set when any source failed.  Any other collaborator failure
degrades to an empty contribution or a default sub-score and is logged.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from ..errors import FeedUnavailableError, UpstreamUnavailableError
from ..models import InteractionCounts, Post, PostMeta, ScoredPost, UserProfile
from .backends import Backends
from .candidates import FEED_SOURCES, CandidateResult, get_source, merge_candidates
from .diversity import apply_diversity_filter
from .scoring import ContentScorer, engagement_rate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

DEFAULT_FEED_LIMIT = 50
DEFAULT_PROFILE_TTL = 60 * 60

CONTENT_WEIGHT = 0.4
SOCIAL_WEIGHT = 0.3
ENGAGEMENT_PREDICTION_WEIGHT = 0.3

FOLLOWED_AUTHOR_SOCIAL_SCORE = 0.8
FRIEND_ENGAGEMENT_STEP = 0.1
FRIEND_ENGAGEMENT_CAP = 0.5


class FeedAssembler:
    def __init__(
        self,
        backends: Backends,
        scorer: ContentScorer | None = None,
        profile_ttl: int = DEFAULT_PROFILE_TTL,
        sources: list[str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.backends = backends
        self.scorer = scorer or ContentScorer()
        self.profile_ttl = profile_ttl
        self.sources = sources or list(FEED_SOURCES)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def generate_feed(self, user_id: str, limit: int = DEFAULT_FEED_LIMIT) -> list[ScoredPost]:
        profile = await self.get_user_profile(user_id)
        candidates = await self.get_candidate_posts(profile)
        if not candidates:
            logger.info("No candidates for user %s", user_id)
            return []

        recent_meta = await self._recent_feed_meta(profile)
        user_rate = await self._user_engagement_rate(user_id)
        now = self.clock()

        scored = await asyncio.gather(
            *(
                self.score_post(post, source, profile, recent_meta, user_rate, now)
                for post, source in candidates
            )
        )
        ranked = sorted(scored, key=lambda p: p.score, reverse=True)
        feed = apply_diversity_filter(ranked)[: max(limit, 0)]

        logger.info(
            "Built feed for %s: %d candidates, %d returned", user_id, len(candidates), len(feed)
        )
        await self._remember(profile, feed)
        return feed

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_user_profile(self, user_id: str) -> UserProfile:
        cache = self.backends.cache
        try:
            cached = await cache.get_profile(user_id)
        except UpstreamUnavailableError:
            logger.warning("Profile cache unavailable for %s; reading store", user_id)
            cached = None
        if cached is not None:
            return cached

        profile = await self.backends.profiles.get_user_profile(user_id)

        try:
            await cache.set_profile(user_id, profile, self.profile_ttl)
        except UpstreamUnavailableError:
            logger.warning("Could not cache profile for %s", user_id)
        return profile

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    async def get_candidate_posts(self, profile: UserProfile) -> list[tuple[Post, str]]:
        """Merged ``(post, source_name)`` pairs from every feed source.

        Raises ``FeedUnavailableError`` when nothing was gathered and at least
        one source failed, so an outage is never reported as an empty feed.
        """
        outcomes = await asyncio.gather(
            *(self._run_source(name, profile) for name in self.sources),
            return_exceptions=True,
        )

        results: list[CandidateResult] = []
        failed: list[str] = []
        for name, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Candidate source '%s' failed", name, exc_info=outcome)
                failed.append(name)
                continue
            results.append(outcome)

        merged = merge_candidates(results)
        if failed and not merged:
            raise FeedUnavailableError(
                f"no candidates for {profile.id}; failed sources: {', '.join(failed)}"
            )
        return merged

    async def _run_source(self, name: str, profile: UserProfile) -> CandidateResult:
        source = get_source(name)
        if source is None:
            raise LookupError(f"Unknown candidate source: {name}")
        return await source.generate(self.backends, profile)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def score_post(
        self,
        post: Post,
        source: str | None,
        profile: UserProfile,
        recent_meta: dict[str, PostMeta],
        user_rate: float,
        now: datetime,
    ) -> ScoredPost:
        counts = await self._interaction_counts(post.id)

        content_score = self.scorer.calculate_score(post, profile, counts, recent_meta, now)
        social_score = await self.social_score(post, profile)
        engagement_score = (user_rate + engagement_rate(counts)) / 2

        score = (
            content_score * CONTENT_WEIGHT
            + social_score * SOCIAL_WEIGHT
            + engagement_score * ENGAGEMENT_PREDICTION_WEIGHT
        )
        return ScoredPost(**post.model_dump(), score=score, source=source)

    async def social_score(self, post: Post, profile: UserProfile) -> float:
        if post.author_id in profile.followed_users:
            return FOLLOWED_AUTHOR_SOCIAL_SCORE
        try:
            friends = await self.backends.interactions.count_friend_engagement(
                profile.id, post.id, followed_users=profile.followed_users
            )
        except Exception:
            logger.warning("Friend engagement lookup failed for post %s", post.id, exc_info=True)
            return 0.0
        return min(friends * FRIEND_ENGAGEMENT_STEP, FRIEND_ENGAGEMENT_CAP)

    async def _interaction_counts(self, post_id: str) -> InteractionCounts:
        try:
            return await self.backends.interactions.get_aggregate_counts(post_id)
        except Exception:
            logger.warning("Interaction counts unavailable for post %s", post_id, exc_info=True)
            return InteractionCounts()

    async def _user_engagement_rate(self, user_id: str) -> float:
        try:
            rate = await self.backends.interactions.get_user_average_engagement_rate(user_id)
        except Exception:
            logger.warning("Engagement rate unavailable for user %s", user_id, exc_info=True)
            return 0.0
        return min(max(rate, 0.0), 1.0)

    async def _recent_feed_meta(self, profile: UserProfile) -> dict[str, PostMeta]:
        if not profile.recent_feed:
            return {}
        try:
            return await self.backends.cache.get_post_meta_many(profile.recent_feed)
        except UpstreamUnavailableError:
            logger.warning("Post metadata cache unavailable for %s", profile.id)
            return {}

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    async def _remember(self, profile: UserProfile, feed: list[ScoredPost]) -> None:
        if not feed:
            return
        metas = {p.id: PostMeta(category=p.category, author_id=p.author_id) for p in feed}
        try:
            await self.backends.cache.set_post_meta_many(metas)
        except UpstreamUnavailableError:
            logger.warning("Could not cache post metadata for feed of %s", profile.id)
        try:
            await self.backends.profiles.append_feed_history(profile.id, [p.id for p in feed])
        except Exception:
            logger.warning("Could not record feed history for %s", profile.id, exc_info=True)
            return
        # The cached profile still holds the old recent feed.
        try:
            await self.backends.cache.delete_profile(profile.id)
        except UpstreamUnavailableError:
            logger.warning("Could not invalidate cached profile for %s", profile.id)
