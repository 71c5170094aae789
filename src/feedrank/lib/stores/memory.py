"""In-memory collaborators.

Used by the test suite and for local development with
``FEEDRANK_BACKEND=memory``.  Per-key critical sections use
``asyncio.Lock`` so concurrent updates to the same post or user serialise
the way the live stores do.
"""

import asyncio
import random
import time
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from ...errors import ConflictError, NotFoundError
from ...models import (
    RECENT_FEED_LIMIT,
    InteractionCounts,
    InteractionEvent,
    InteractionType,
    Post,
    PostMeta,
    UserProfile,
)
from .base import Cache, EngagementStore, InteractionStore, PostStore, ProfileStore

_ENGAGED_TYPES = {InteractionType.LIKE, InteractionType.COMMENT, InteractionType.SHARE}


class InMemoryProfileStore(ProfileStore):
    def __init__(self, profiles: list[UserProfile] | None = None):
        self._profiles: dict[str, UserProfile] = {}
        self._versions: dict[str, int] = {}
        for p in profiles or []:
            self.add(p)

    def add(self, profile: UserProfile) -> None:
        self._profiles[profile.id] = profile.model_copy(deep=True)
        self._versions[profile.id] = 0

    def _require(self, user_id: str) -> UserProfile:
        try:
            return self._profiles[user_id]
        except KeyError:
            raise NotFoundError("profile", user_id) from None

    async def get_user_profile(self, user_id: str) -> UserProfile:
        return self._require(user_id).model_copy(deep=True)

    async def get_interest_vector(self, user_id: str) -> tuple[list[float], object]:
        profile = self._require(user_id)
        return list(profile.interest_vector), self._versions[user_id]

    async def save_interest_vector(self, user_id, vector, expected_version=None) -> None:
        profile = self._require(user_id)
        if expected_version is not None and self._versions[user_id] != expected_version:
            raise ConflictError(f"interest vector of {user_id} changed concurrently")
        profile.interest_vector = list(vector)
        self._versions[user_id] += 1

    async def increment_category_weight(self, user_id, category, weight) -> None:
        profile = self._require(user_id)
        history = profile.interaction_history
        history[category] = history.get(category, 0.0) + weight

    async def append_feed_history(self, user_id, post_ids) -> None:
        profile = self._require(user_id)
        profile.recent_feed = (list(post_ids) + profile.recent_feed)[:RECENT_FEED_LIMIT]


class InMemoryPostStore(PostStore):
    def __init__(self, posts: list[Post] | None = None, clock: Callable[[], datetime] | None = None):
        self._posts: dict[str, Post] = {p.id: p for p in posts or []}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rng = random.Random()

    def add(self, post: Post) -> None:
        self._posts[post.id] = post

    def _recent(self, window_hours: int) -> list[Post]:
        cutoff = self._clock() - timedelta(hours=window_hours)
        return [p for p in self._posts.values() if p.created_at > cutoff]

    async def get_post(self, post_id: str) -> Post:
        try:
            return self._posts[post_id]
        except KeyError:
            raise NotFoundError("post", post_id) from None

    async def query_recent_by_authors(self, author_ids, window_hours, limit) -> list[Post]:
        authors = set(author_ids)
        return [p for p in self._recent(window_hours) if p.author_id in authors][:limit]

    async def query_recent_random(self, window_hours, limit) -> list[Post]:
        recent = self._recent(window_hours)
        return self._rng.sample(recent, min(limit, len(recent)))

    async def get_many_by_ids(self, post_ids) -> list[Post]:
        return [self._posts[pid] for pid in post_ids if pid in self._posts]


class InMemoryInteractionStore(InteractionStore):
    def __init__(self, follows: dict[str, list[str]] | None = None):
        # follower -> followed authors; used for friend engagement counts.
        self._follows = follows or {}
        self.events: list[InteractionEvent] = []

    async def get_aggregate_counts(self, post_id: str) -> InteractionCounts:
        counts: dict[str, int] = defaultdict(int)
        for e in self.events:
            if e.post_id == post_id and e.type != InteractionType.DWELL:
                counts[e.type.value + "s"] += 1
        return InteractionCounts(**counts)

    async def count_friend_engagement(self, user_id, post_id, followed_users=None) -> int:
        if followed_users is None:
            followed_users = self._follows.get(user_id, [])
        friends = set(followed_users)
        return sum(1 for e in self.events if e.post_id == post_id and e.user_id in friends)

    async def get_user_average_engagement_rate(self, user_id: str) -> float:
        mine = [e for e in self.events if e.user_id == user_id]
        if not mine:
            return 0.0
        return sum(1 for e in mine if e.type in _ENGAGED_TYPES) / len(mine)

    async def log_interaction(self, event: InteractionEvent) -> None:
        self.events.append(event)


class InMemoryCache(Cache):
    """TTL cache keyed like the Redis one; entries are dropped once expired."""

    def __init__(self, embedding_ttl: int = 86400, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, tuple[float, object]] = {}
        self._embedding_ttl = embedding_ttl
        self._clock = clock

    def _get(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def _set(self, key: str, value, ttl: int) -> None:
        self._entries[key] = (self._clock() + ttl, value)

    async def get_profile(self, user_id: str) -> UserProfile | None:
        profile = self._get(f"user:{user_id}:profile")
        return profile.model_copy(deep=True) if profile is not None else None

    async def set_profile(self, user_id: str, profile: UserProfile, ttl: int) -> None:
        self._set(f"user:{user_id}:profile", profile.model_copy(deep=True), ttl)

    async def delete_profile(self, user_id: str) -> None:
        self._entries.pop(f"user:{user_id}:profile", None)

    async def get_embedding(self, post_id: str) -> list[float] | None:
        vec = self._get(f"post:{post_id}:embedding")
        return list(vec) if vec is not None else None

    async def set_embedding(self, post_id: str, vector: list[float]) -> None:
        self._set(f"post:{post_id}:embedding", list(vector), self._embedding_ttl)

    async def get_post_meta_many(self, post_ids: list[str]) -> dict[str, PostMeta]:
        found = {}
        for pid in post_ids:
            meta = self._get(f"post:{pid}:meta")
            if meta is not None:
                found[pid] = meta
        return found

    async def set_post_meta_many(self, metas: dict[str, PostMeta]) -> None:
        for pid, meta in metas.items():
            self._set(f"post:{pid}:meta", meta, self._embedding_ttl)


class InMemoryEngagementStore(EngagementStore):
    def __init__(self):
        self._counters: dict[str, dict[str, int]] = defaultdict(dict)
        self._scores: dict[str, float] = {}
        # Per-post locks live only while some task holds or awaits them.
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = defaultdict(int)

    async def increment_and_rescore(self, post_id, counter, rescore) -> float:
        lock = self._locks.setdefault(post_id, asyncio.Lock())
        self._lock_users[post_id] += 1
        try:
            async with lock:
                counters = self._counters[post_id]
                counters[counter] = counters.get(counter, 0) + 1
                score = rescore(dict(counters))
                self._scores[post_id] = score
                return score
        finally:
            self._lock_users[post_id] -= 1
            if not self._lock_users[post_id]:
                del self._lock_users[post_id]
                del self._locks[post_id]

    async def top(self, k: int) -> list[str]:
        if k <= 0:
            return []
        ranked = sorted(self._scores.items(), key=lambda item: item[1], reverse=True)
        return [post_id for post_id, _ in ranked[:k]]

    def counters(self, post_id: str) -> dict[str, int]:
        return dict(self._counters.get(post_id, {}))
