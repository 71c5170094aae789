"""Redis-backed cache and trending structure.

Keys:
  • Profile cache   — STRING (JSON)  user:{user_id}:profile, TTL = profile TTL
  • Embedding cache — STRING (b64 float32) post:{post_id}:embedding
  • Post metadata   — HASH  post:{post_id}:meta  {category, author_id}
  • Engagement      — HASH  post:{post_id}:engagement  {views, likes, ...}
  • Trending        — ZSET  trending:posts  score = trending score, member = post_id

Trending updates run an optimistic WATCH/MULTI transaction per post so the
counter increment and the sorted-set write commit together.
"""

import logging

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from ...errors import ConflictError, UpstreamUnavailableError
from ...models import PostMeta, UserProfile
from ..embeddings import decode_float32_b64, encode_float32_b64
from .base import Cache, EngagementStore

logger = logging.getLogger(__name__)

TRENDING_KEY = "trending:posts"

# Attempts before a contended trending update gives up.
MAX_WATCH_RETRIES = 10


def profile_key(user_id: str) -> str:
    return f"user:{user_id}:profile"


def embedding_key(post_id: str) -> str:
    return f"post:{post_id}:embedding"


def meta_key(post_id: str) -> str:
    return f"post:{post_id}:meta"


def engagement_key(post_id: str) -> str:
    return f"post:{post_id}:engagement"


def create_redis(url: str) -> aioredis.Redis:
    return aioredis.Redis.from_url(url, decode_responses=True)


class RedisCache(Cache):
    def __init__(self, redis: aioredis.Redis, embedding_ttl: int = 86400):
        self.redis = redis
        self.embedding_ttl = embedding_ttl

    async def get_profile(self, user_id: str) -> UserProfile | None:
        try:
            raw = await self.redis.get(profile_key(user_id))
        except RedisError as exc:
            raise UpstreamUnavailableError("profile cache read failed") from exc
        if not raw:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cached profile for %s", user_id)
            return None

    async def set_profile(self, user_id: str, profile: UserProfile, ttl: int) -> None:
        try:
            await self.redis.set(profile_key(user_id), profile.model_dump_json(), ex=ttl)
        except RedisError as exc:
            raise UpstreamUnavailableError("profile cache write failed") from exc

    async def delete_profile(self, user_id: str) -> None:
        try:
            await self.redis.delete(profile_key(user_id))
        except RedisError as exc:
            raise UpstreamUnavailableError("profile cache delete failed") from exc

    async def get_embedding(self, post_id: str) -> list[float] | None:
        try:
            raw = await self.redis.get(embedding_key(post_id))
        except RedisError as exc:
            raise UpstreamUnavailableError("embedding cache read failed") from exc
        if not raw:
            return None
        return decode_float32_b64(raw)

    async def set_embedding(self, post_id: str, vector: list[float]) -> None:
        try:
            await self.redis.set(
                embedding_key(post_id), encode_float32_b64(list(vector)), ex=self.embedding_ttl
            )
        except RedisError as exc:
            raise UpstreamUnavailableError("embedding cache write failed") from exc

    async def get_post_meta_many(self, post_ids: list[str]) -> dict[str, PostMeta]:
        if not post_ids:
            return {}
        pipe = self.redis.pipeline()
        for pid in post_ids:
            pipe.hgetall(meta_key(pid))
        try:
            results = await pipe.execute()
        except RedisError as exc:
            raise UpstreamUnavailableError("post metadata read failed") from exc
        return {
            pid: PostMeta(category=res.get("category"), author_id=res.get("author_id"))
            for pid, res in zip(post_ids, results)
            if res
        }

    async def set_post_meta_many(self, metas: dict[str, PostMeta]) -> None:
        if not metas:
            return
        pipe = self.redis.pipeline()
        for pid, meta in metas.items():
            mapping = {k: v for k, v in meta.model_dump().items() if v is not None}
            if not mapping:
                continue
            pipe.hset(meta_key(pid), mapping=mapping)
            pipe.expire(meta_key(pid), self.embedding_ttl)
        try:
            await pipe.execute()
        except RedisError as exc:
            raise UpstreamUnavailableError("post metadata write failed") from exc


class RedisEngagementStore(EngagementStore):
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def increment_and_rescore(self, post_id, counter, rescore) -> float:
        key = engagement_key(post_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for attempt in range(1, MAX_WATCH_RETRIES + 1):
                    try:
                        await pipe.watch(key)
                        raw = await pipe.hgetall(key)
                        counters = {k: int(v) for k, v in raw.items()}
                        counters[counter] = counters.get(counter, 0) + 1
                        score = rescore(counters)

                        pipe.multi()
                        pipe.hincrby(key, counter, 1)
                        pipe.zadd(TRENDING_KEY, {post_id: score})
                        await pipe.execute()
                        return score
                    except WatchError:
                        logger.debug("Trending update for %s raced (attempt %d)", post_id, attempt)
                        await pipe.reset()
        except RedisError as exc:
            raise UpstreamUnavailableError("trending update failed") from exc
        raise ConflictError(f"trending update for {post_id} kept conflicting")

    async def top(self, k: int) -> list[str]:
        if k <= 0:
            return []
        try:
            return list(await self.redis.zrevrange(TRENDING_KEY, 0, k - 1))
        except RedisError as exc:
            raise UpstreamUnavailableError("trending read failed") from exc
