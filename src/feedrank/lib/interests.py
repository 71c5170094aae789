"""Interest vector updater.

Evolves a user's interest vector from one observed interaction:

    v'[i] = 0.95 * v[i] + (weight * 0.1) * e[i]

followed by normalisation to unit length.  ``e`` is the post embedding and
``weight`` depends on the interaction type (view 1, like 3, comment 5,
share 7, dwell duration/10).

The read-modify-write on the vector is a compare-and-set against the
profile's version, retried on conflict, so concurrent interactions by the
same user are never lost.  Failures to resolve the post, its embedding or
the profile are soft: they come back as ``InterestUpdate(applied=False)``.
"""

import logging

from ..errors import ConflictError, InvalidInputError, NotFoundError, UpstreamUnavailableError
from ..models import InteractionType, InterestUpdate, Post
from .analysis import ContentAnalyzer
from .embeddings import normalize
from .stores.base import Cache, PostStore, ProfileStore

logger = logging.getLogger(__name__)

INTERACTION_WEIGHTS = {
    InteractionType.VIEW: 1.0,
    InteractionType.LIKE: 3.0,
    InteractionType.COMMENT: 5.0,
    InteractionType.SHARE: 7.0,
}
DWELL_SECONDS_PER_WEIGHT = 10.0

LEARNING_RATE = 0.1
DECAY = 0.95

MAX_CAS_ATTEMPTS = 5


def interaction_weight(interaction_type: InteractionType | str, duration: float | None = None) -> float:
    try:
        kind = InteractionType(interaction_type)
    except ValueError:
        raise InvalidInputError(f"unknown interaction type: {interaction_type!r}") from None
    if kind is InteractionType.DWELL:
        return (duration or 0.0) / DWELL_SECONDS_PER_WEIGHT
    return INTERACTION_WEIGHTS[kind]


def updated_interest_vector(current: list[float], embedding: list[float], weight: float) -> list[float]:
    """Apply one decayed, weighted step and normalise.

    An empty *current* vector starts from zeros of the embedding's length.
    """
    if not current:
        current = [0.0] * len(embedding)
    if len(current) != len(embedding):
        raise InvalidInputError(
            f"interest vector has {len(current)} dims, embedding has {len(embedding)}"
        )
    adjusted = weight * LEARNING_RATE
    return normalize([DECAY * v + adjusted * e for v, e in zip(current, embedding)])


class InterestVectorUpdater:
    def __init__(
        self,
        profiles: ProfileStore,
        posts: PostStore,
        cache: Cache,
        analyzer: ContentAnalyzer | None = None,
    ):
        self.profiles = profiles
        self.posts = posts
        self.cache = cache
        self.analyzer = analyzer

    async def apply_interaction(
        self,
        user_id: str,
        post_id: str,
        interaction_type: InteractionType | str,
        duration: float | None = None,
    ) -> InterestUpdate:
        weight = interaction_weight(interaction_type, duration)

        try:
            post = await self.posts.get_post(post_id)
        except NotFoundError:
            return self._skipped(user_id, post_id, weight, "post_not_found")
        except UpstreamUnavailableError:
            return self._skipped(user_id, post_id, weight, "upstream_unavailable")

        embedding = await self.get_post_embedding(post)
        if not embedding:
            return self._skipped(user_id, post_id, weight, "no_embedding")

        try:
            vector = await self._update_vector(user_id, embedding, weight)
        except NotFoundError:
            return self._skipped(user_id, post_id, weight, "profile_not_found")
        except InvalidInputError:
            return self._skipped(user_id, post_id, weight, "dimension_mismatch")
        except ConflictError:
            return self._skipped(user_id, post_id, weight, "conflict")
        except UpstreamUnavailableError:
            return self._skipped(user_id, post_id, weight, "upstream_unavailable")

        if post.category:
            try:
                await self.profiles.increment_category_weight(user_id, post.category, weight)
            except UpstreamUnavailableError:
                logger.warning("Could not bump %s weight for user %s", post.category, user_id)

        try:
            await self.cache.delete_profile(user_id)
        except UpstreamUnavailableError:
            logger.warning("Could not invalidate cached profile for %s", user_id)

        return InterestUpdate(applied=True, weight=weight, vector=vector)

    async def get_post_embedding(self, post: Post) -> list[float] | None:
        """Resolve a post's embedding: cache, then the post record, then the analyzer."""
        try:
            cached = await self.cache.get_embedding(post.id)
        except UpstreamUnavailableError:
            logger.warning("Embedding cache unavailable for post %s", post.id)
            cached = None
        if cached:
            return cached

        embedding = list(post.embedding)
        if not embedding and self.analyzer is not None:
            try:
                embedding = await self.analyzer.embed(f"{post.title} {post.content}".strip())
            except UpstreamUnavailableError:
                logger.warning("Content analyzer could not embed post %s", post.id)
                return None

        if embedding:
            try:
                await self.cache.set_embedding(post.id, embedding)
            except UpstreamUnavailableError:
                logger.warning("Could not cache embedding for post %s", post.id)
        return embedding or None

    async def _update_vector(self, user_id: str, embedding: list[float], weight: float) -> list[float]:
        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            current, version = await self.profiles.get_interest_vector(user_id)
            vector = updated_interest_vector(current, embedding, weight)
            try:
                await self.profiles.save_interest_vector(user_id, vector, expected_version=version)
                return vector
            except ConflictError:
                logger.info("Interest vector of %s changed concurrently (attempt %d)", user_id, attempt)
        raise ConflictError(f"gave up updating interest vector of {user_id}")

    def _skipped(self, user_id: str, post_id: str, weight: float, reason: str) -> InterestUpdate:
        logger.warning("Skipped interest update for user %s on post %s: %s", user_id, post_id, reason)
        return InterestUpdate(applied=False, weight=weight, reason=reason)
