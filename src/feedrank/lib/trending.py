"""Trending tracker.

Every engagement event bumps a per-post counter and recomputes that post's
trending score from the full counter snapshot:

    velocity = (likes + 2*comments + 3*shares) / max(views, 1)
    score    = velocity * ln(now_unix_seconds)

``ln(now)`` is a crude recency multiplier: all scores drift upward with wall
clock time even without new engagement.  The formula is kept as-is for
compatibility with existing rankings.
"""

import logging
import math
import time
from collections.abc import Callable

from ..errors import InvalidInputError
from ..models import InteractionType
from .stores.base import EngagementStore

logger = logging.getLogger(__name__)

COMMENT_VELOCITY_WEIGHT = 2
SHARE_VELOCITY_WEIGHT = 3

# Interaction type -> counter field in the engagement hash.
COUNTER_FIELDS = {
    InteractionType.VIEW: "views",
    InteractionType.LIKE: "likes",
    InteractionType.COMMENT: "comments",
    InteractionType.SHARE: "shares",
    InteractionType.DWELL: "dwells",
}


def calculate_trending_score(counters: dict[str, int], now: float) -> float:
    views = counters.get("views", 0)
    likes = counters.get("likes", 0)
    comments = counters.get("comments", 0)
    shares = counters.get("shares", 0)

    velocity = (
        likes + comments * COMMENT_VELOCITY_WEIGHT + shares * SHARE_VELOCITY_WEIGHT
    ) / max(views, 1)
    return velocity * math.log(now)


class TrendingTracker:
    def __init__(self, store: EngagementStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    async def record_engagement(self, post_id: str, interaction_type: InteractionType | str) -> float:
        """Count one interaction and return the post's new trending score."""
        try:
            field = COUNTER_FIELDS[InteractionType(interaction_type)]
        except ValueError:
            raise InvalidInputError(f"unknown interaction type: {interaction_type!r}") from None

        score = await self.store.increment_and_rescore(
            post_id, field, lambda counters: calculate_trending_score(counters, self.clock())
        )
        logger.debug("Trending score for %s is now %.4f", post_id, score)
        return score

    async def top_trending(self, k: int = 20) -> list[str]:
        if k <= 0:
            return []
        return await self.store.top(k)
