"""Content scorer.

Blends four sub-scores into a single relevance score in ``[0, 1]``:

* **Recency** – ``exp(-hours_since_posted / 24)``.
* **Engagement** – views-normalised weighted interaction rate, clipped to 1.
* **Relevance** – cosine similarity to the user's interest vector plus a
  boost for followed authors and for categories the user engages with.
* **Diversity** – ``1 - penalty`` where the penalty grows with the number of
  recently shown posts sharing the category or author.

The score is for relative ordering only; it is not a probability.

Everything here is pure.  The current time and the category/author metadata
of the user's recent feed are passed in explicitly so the result depends on
nothing but the arguments.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timezone

from ..models import UNKNOWN_META, InteractionCounts, Post, PostMeta, UserProfile
from .embeddings import cosine_similarity

# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

RECENCY_WEIGHT = 0.2
ENGAGEMENT_WEIGHT = 0.4
RELEVANCE_WEIGHT = 0.35
DIVERSITY_WEIGHT = 0.05

# Hours; a day-old post keeps ~37% of its recency score.
RECENCY_DECAY_HOURS = 24.0

ENGAGEMENT_SCALE = 100.0
COMMENT_ENGAGEMENT_WEIGHT = 3
SHARE_ENGAGEMENT_WEIGHT = 5

FOLLOWED_AUTHOR_BOOST = 0.2
HISTORY_BOOST_DIVISOR = 100.0
HISTORY_BOOST_CAP = 0.2

CATEGORY_REPETITION_STEP = 0.1
CATEGORY_REPETITION_CAP = 0.5
AUTHOR_REPETITION_STEP = 0.15
AUTHOR_REPETITION_CAP = 0.4


def engagement_rate(interactions: InteractionCounts) -> float:
    """Plain (likes + comments + shares) / max(views, 1), clipped to 1."""
    total = interactions.likes + interactions.comments + interactions.shares
    return min(total / max(interactions.views, 1), 1.0)


class ContentScorer:
    """Scores a post for a user from content, engagement and recent-feed signals."""

    def calculate_score(
        self,
        post: Post,
        user: UserProfile,
        interactions: InteractionCounts,
        recent_meta: Mapping[str, PostMeta] | None = None,
        now: datetime | None = None,
    ) -> float:
        recency = self.recency_score(post.created_at, now)
        engagement = self.engagement_score(interactions)
        relevance = self.relevance_score(post, user)
        diversity = self.diversity_penalty(post, user.recent_feed, recent_meta)

        return (
            recency * RECENCY_WEIGHT
            + engagement * ENGAGEMENT_WEIGHT
            + relevance * RELEVANCE_WEIGHT
            + diversity * DIVERSITY_WEIGHT
        )

    def recency_score(self, created_at: datetime, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        hours = max((now - created_at).total_seconds() / 3600.0, 0.0)
        return math.exp(-hours / RECENCY_DECAY_HOURS)

    def engagement_score(self, interactions: InteractionCounts) -> float:
        weighted = (
            interactions.likes
            + interactions.comments * COMMENT_ENGAGEMENT_WEIGHT
            + interactions.shares * SHARE_ENGAGEMENT_WEIGHT
        )
        rate = weighted / max(interactions.views, 1)
        return min(rate * ENGAGEMENT_SCALE, 1.0)

    def relevance_score(self, post: Post, user: UserProfile) -> float:
        similarity = cosine_similarity(post.embedding, user.interest_vector)
        social_boost = FOLLOWED_AUTHOR_BOOST if post.author_id in user.followed_users else 0.0
        history_boost = self.history_boost(post, user.interaction_history)
        return min(max(similarity + social_boost + history_boost, 0.0), 1.0)

    def history_boost(self, post: Post, history: Mapping[str, float]) -> float:
        if post.category is None:
            return 0.0
        return min(history.get(post.category, 0.0) / HISTORY_BOOST_DIVISOR, HISTORY_BOOST_CAP)

    def diversity_penalty(
        self,
        post: Post,
        recent_feed: list[str],
        recent_meta: Mapping[str, PostMeta] | None = None,
    ) -> float:
        """Return ``1 - (repetition penalty + author penalty)``.

        Recent-feed entries missing from *recent_meta* resolve to
        ``UNKNOWN_META`` and count toward neither penalty.
        """
        recent_meta = recent_meta or {}
        metas = [recent_meta.get(post_id, UNKNOWN_META) for post_id in recent_feed]

        category_count = 0
        if post.category is not None:
            category_count = sum(1 for m in metas if m.category == post.category)
        author_count = sum(1 for m in metas if m.author_id == post.author_id)

        repetition = min(category_count * CATEGORY_REPETITION_STEP, CATEGORY_REPETITION_CAP)
        author = min(author_count * AUTHOR_REPETITION_STEP, AUTHOR_REPETITION_CAP)
        return 1.0 - (repetition + author)
