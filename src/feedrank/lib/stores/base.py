"""Abstract collaborators used by the ranking core.

Each store has a live implementation (Elasticsearch or Redis) and an
in-memory one used in tests and local development.  All methods are async
and may raise :class:`~feedrank.errors.UpstreamUnavailableError`.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from ...models import InteractionCounts, InteractionEvent, Post, PostMeta, UserProfile


class ProfileStore(ABC):
    """Authoritative store of user profiles."""

    @abstractmethod
    async def get_user_profile(self, user_id: str) -> UserProfile:
        """Assemble the full profile.  Raises ``NotFoundError`` if absent."""
        ...

    @abstractmethod
    async def get_interest_vector(self, user_id: str) -> tuple[list[float], object]:
        """Return ``(vector, version)``; *version* is opaque and used for CAS."""
        ...

    @abstractmethod
    async def save_interest_vector(
        self,
        user_id: str,
        vector: list[float],
        expected_version: object = None,
    ) -> None:
        """Persist *vector*.

        When *expected_version* is given the write only succeeds if the stored
        version still matches; otherwise ``ConflictError`` is raised.
        """
        ...

    @abstractmethod
    async def increment_category_weight(self, user_id: str, category: str, weight: float) -> None:
        """Atomically add *weight* to the user's accumulated category weight."""
        ...

    @abstractmethod
    async def append_feed_history(self, user_id: str, post_ids: list[str]) -> None:
        """Record *post_ids* as shown to the user, first id being the most recent."""
        ...


class PostStore(ABC):
    @abstractmethod
    async def get_post(self, post_id: str) -> Post:
        """Raises ``NotFoundError`` if absent."""
        ...

    @abstractmethod
    async def query_recent_by_authors(
        self, author_ids: list[str], window_hours: int, limit: int
    ) -> list[Post]:
        ...

    @abstractmethod
    async def query_recent_random(self, window_hours: int, limit: int) -> list[Post]:
        ...

    @abstractmethod
    async def get_many_by_ids(self, post_ids: list[str]) -> list[Post]:
        """Return the posts that exist, in the order of *post_ids*."""
        ...


class InteractionStore(ABC):
    @abstractmethod
    async def get_aggregate_counts(self, post_id: str) -> InteractionCounts:
        ...

    @abstractmethod
    async def count_friend_engagement(
        self, user_id: str, post_id: str, followed_users: list[str] | None = None
    ) -> int:
        """Number of interactions on *post_id* by authors *user_id* follows.

        Callers already holding the follow list pass it as *followed_users*.
        """
        ...

    @abstractmethod
    async def get_user_average_engagement_rate(self, user_id: str) -> float:
        """Share of the user's interactions that are likes, comments or shares."""
        ...

    @abstractmethod
    async def log_interaction(self, event: InteractionEvent) -> None:
        ...


class Cache(ABC):
    """Advisory, time-bounded cache.  Misses return ``None`` / omit the key."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> UserProfile | None:
        ...

    @abstractmethod
    async def set_profile(self, user_id: str, profile: UserProfile, ttl: int) -> None:
        ...

    @abstractmethod
    async def delete_profile(self, user_id: str) -> None:
        ...

    @abstractmethod
    async def get_embedding(self, post_id: str) -> list[float] | None:
        ...

    @abstractmethod
    async def set_embedding(self, post_id: str, vector: list[float]) -> None:
        ...

    @abstractmethod
    async def get_post_meta_many(self, post_ids: list[str]) -> dict[str, PostMeta]:
        """Return metadata for the ids that are cached; misses are omitted."""
        ...

    @abstractmethod
    async def set_post_meta_many(self, metas: dict[str, PostMeta]) -> None:
        ...


class EngagementStore(ABC):
    """Per-post engagement counters plus the trending sorted set."""

    @abstractmethod
    async def increment_and_rescore(
        self,
        post_id: str,
        counter: str,
        rescore: Callable[[dict[str, int]], float],
    ) -> float:
        """Increment *counter* for *post_id*, recompute its score and store it.

        *rescore* receives the full post-increment counter snapshot.  The whole
        read-modify-write is serialised per post.  Returns the new score.
        """
        ...

    @abstractmethod
    async def top(self, k: int) -> list[str]:
        """Post ids with the *k* highest scores, highest first."""
        ...
