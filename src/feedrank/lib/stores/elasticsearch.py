"""Elasticsearch-backed stores.

Index layout:

* ``posts`` – one document per post (``author_id``, ``created_at``,
  ``category``, ``embedding``, ``title``, ``content``), ``_id`` = post id.
* ``users`` – ``interest_vector`` and ``category_weights``, ``_id`` = user id.
* ``follows`` – ``follower_id`` / ``followed_id`` edges.
* ``feed_history`` – ``user_id``, ``post_id``, ``shown_at``.
* ``interactions`` – ``user_id``, ``post_id``, ``type``, ``duration``, ``created_at``.

Interest-vector writes use ``if_seq_no`` / ``if_primary_term`` optimistic
concurrency; category weights are bumped with a Painless script so the
increment happens server-side.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from elasticsearch import ApiError, TransportError
from elasticsearch import ConflictError as EsConflictError
from elasticsearch import NotFoundError as EsNotFoundError

from ...errors import ConflictError, NotFoundError, UpstreamUnavailableError
from ...models import (
    RECENT_FEED_LIMIT,
    InteractionCounts,
    InteractionEvent,
    InteractionType,
    Post,
    UserProfile,
)
from ..elasticsearch import iter_sources, post_from_source, unwrap_es_response
from .base import InteractionStore, PostStore, ProfileStore

logger = logging.getLogger(__name__)

POSTS_INDEX = "posts"
USERS_INDEX = "users"
FOLLOWS_INDEX = "follows"
FEED_HISTORY_INDEX = "feed_history"
INTERACTIONS_INDEX = "interactions"

# Upper bound on follow edges loaded for one user.
FOLLOWS_LIMIT = 1000

CATEGORY_WEIGHT_SCRIPT = """
if (ctx._source.category_weights == null) { ctx._source.category_weights = [:]; }
def current = ctx._source.category_weights.containsKey(params.category)
    ? ctx._source.category_weights[params.category] : 0;
ctx._source.category_weights[params.category] = current + params.weight;
"""


class _EsStore:
    """Shared plumbing: every client call goes through :meth:`_call`."""

    def __init__(self, es):
        self.es = es

    async def _call(self, method: str, **kwargs) -> dict:
        try:
            resp = await getattr(self.es, method)(**kwargs)
        except (EsConflictError, EsNotFoundError):
            raise
        except (ApiError, TransportError) as exc:
            logger.warning("Elasticsearch %s on %s failed: %s", method, kwargs.get("index"), exc)
            raise UpstreamUnavailableError(f"Elasticsearch {method} failed") from exc
        return unwrap_es_response(resp)

    async def _get_doc(self, index: str, doc_id: str, kind: str) -> dict:
        try:
            data = await self._call("get", index=index, id=doc_id)
        except EsNotFoundError:
            raise NotFoundError(kind, doc_id) from None
        if not data.get("found", True):
            raise NotFoundError(kind, doc_id)
        return data

    async def _followed_ids(self, user_id: str) -> list[str]:
        data = await self._call(
            "search",
            index=FOLLOWS_INDEX,
            query={"bool": {"filter": [{"term": {"follower_id": user_id}}]}},
            size=FOLLOWS_LIMIT,
            _source=["followed_id"],
        )
        return [src["followed_id"] for _, src in iter_sources(data) if src.get("followed_id")]


class ElasticsearchProfileStore(_EsStore, ProfileStore):
    async def get_user_profile(self, user_id: str) -> UserProfile:
        user_doc, followed, history = await asyncio.gather(
            self._get_doc(USERS_INDEX, user_id, "profile"),
            self._followed_ids(user_id),
            self._recent_feed(user_id),
        )
        src = user_doc.get("_source") or {}
        return UserProfile(
            id=user_id,
            interest_vector=src.get("interest_vector") or [],
            followed_users=followed,
            recent_feed=history,
            interaction_history=src.get("category_weights") or {},
        )

    async def _recent_feed(self, user_id: str) -> list[str]:
        data = await self._call(
            "search",
            index=FEED_HISTORY_INDEX,
            query={"bool": {"filter": [{"term": {"user_id": user_id}}]}},
            size=RECENT_FEED_LIMIT,
            sort=[{"shown_at": "desc"}],
            _source=["post_id"],
        )
        return [src["post_id"] for _, src in iter_sources(data) if src.get("post_id")]

    async def get_interest_vector(self, user_id: str) -> tuple[list[float], object]:
        doc = await self._get_doc(USERS_INDEX, user_id, "profile")
        vector = (doc.get("_source") or {}).get("interest_vector") or []
        return vector, (doc.get("_seq_no"), doc.get("_primary_term"))

    async def save_interest_vector(self, user_id, vector, expected_version=None) -> None:
        kwargs = {}
        if expected_version is not None:
            seq_no, primary_term = expected_version
            kwargs = {"if_seq_no": seq_no, "if_primary_term": primary_term}
        try:
            await self._call(
                "update",
                index=USERS_INDEX,
                id=user_id,
                doc={"interest_vector": list(vector)},
                **kwargs,
            )
        except EsConflictError as exc:
            raise ConflictError(f"interest vector of {user_id} changed concurrently") from exc
        except EsNotFoundError:
            raise NotFoundError("profile", user_id) from None

    async def increment_category_weight(self, user_id, category, weight) -> None:
        try:
            await self._call(
                "update",
                index=USERS_INDEX,
                id=user_id,
                script={
                    "source": CATEGORY_WEIGHT_SCRIPT,
                    "lang": "painless",
                    "params": {"category": category, "weight": weight},
                },
                retry_on_conflict=5,
            )
        except EsNotFoundError:
            raise NotFoundError("profile", user_id) from None

    async def append_feed_history(self, user_id, post_ids) -> None:
        if not post_ids:
            return
        now = datetime.now(timezone.utc)
        operations: list[dict] = []
        for i, post_id in enumerate(post_ids):
            # Later entries get older timestamps so the first id sorts most recent.
            shown_at = now - timedelta(milliseconds=i)
            operations.append({"index": {"_index": FEED_HISTORY_INDEX}})
            operations.append(
                {"user_id": user_id, "post_id": post_id, "shown_at": shown_at.isoformat()}
            )
        data = await self._call("bulk", operations=operations)
        if data.get("errors"):
            failed = [
                item for item in data.get("items", [])
                if (item.get("index") or {}).get("error")
            ]
            logger.warning(
                "Feed history for %s partially written: %d of %d entries failed",
                user_id, len(failed), len(post_ids),
            )


class ElasticsearchPostStore(_EsStore, PostStore):
    async def get_post(self, post_id: str) -> Post:
        doc = await self._get_doc(POSTS_INDEX, post_id, "post")
        return post_from_source(doc.get("_id", post_id), doc.get("_source") or {})

    async def query_recent_by_authors(self, author_ids, window_hours, limit) -> list[Post]:
        if not author_ids:
            return []
        query = {
            "bool": {
                "filter": [
                    {"terms": {"author_id": list(author_ids)}},
                    {"range": {"created_at": {"gte": f"now-{window_hours}h"}}},
                ]
            }
        }
        data = await self._call(
            "search", index=POSTS_INDEX, query=query, size=limit, sort=[{"created_at": "desc"}]
        )
        return [post_from_source(doc_id, src) for doc_id, src in iter_sources(data)]

    async def query_recent_random(self, window_hours, limit) -> list[Post]:
        query = {
            "function_score": {
                "query": {
                    "bool": {
                        "filter": [{"range": {"created_at": {"gte": f"now-{window_hours}h"}}}],
                    }
                },
                "functions": [{"random_score": {}}],
                "boost_mode": "replace",
            }
        }
        data = await self._call("search", index=POSTS_INDEX, query=query, size=limit)
        return [post_from_source(doc_id, src) for doc_id, src in iter_sources(data)]

    async def get_many_by_ids(self, post_ids) -> list[Post]:
        if not post_ids:
            return []
        data = await self._call(
            "search",
            index=POSTS_INDEX,
            query={"ids": {"values": list(post_ids)}},
            size=len(post_ids),
        )
        by_id = {}
        for doc_id, src in iter_sources(data):
            post = post_from_source(doc_id, src)
            by_id[post.id] = post
        return [by_id[pid] for pid in post_ids if pid in by_id]


def _type_buckets(data: dict) -> dict[str, int]:
    buckets = data.get("aggregations", {}).get("by_type", {}).get("buckets", [])
    return {b["key"]: b["doc_count"] for b in buckets}


class ElasticsearchInteractionStore(_EsStore, InteractionStore):
    async def get_aggregate_counts(self, post_id: str) -> InteractionCounts:
        data = await self._call(
            "search",
            index=INTERACTIONS_INDEX,
            query={"bool": {"filter": [{"term": {"post_id": post_id}}]}},
            size=0,
            aggs={"by_type": {"terms": {"field": "type"}}},
        )
        counts = _type_buckets(data)
        return InteractionCounts(
            likes=counts.get(InteractionType.LIKE.value, 0),
            comments=counts.get(InteractionType.COMMENT.value, 0),
            shares=counts.get(InteractionType.SHARE.value, 0),
            views=counts.get(InteractionType.VIEW.value, 0),
        )

    async def count_friend_engagement(
        self, user_id: str, post_id: str, followed_users: list[str] | None = None
    ) -> int:
        if followed_users is None:
            followed_users = await self._followed_ids(user_id)
        if not followed_users:
            return 0
        query = {
            "bool": {
                "filter": [
                    {"term": {"post_id": post_id}},
                    {"terms": {"user_id": list(followed_users)}},
                ]
            }
        }
        data = await self._call("count", index=INTERACTIONS_INDEX, query=query)
        return int(data.get("count", 0))

    async def get_user_average_engagement_rate(self, user_id: str) -> float:
        data = await self._call(
            "search",
            index=INTERACTIONS_INDEX,
            query={"bool": {"filter": [{"term": {"user_id": user_id}}]}},
            size=0,
            aggs={"by_type": {"terms": {"field": "type"}}},
        )
        counts = _type_buckets(data)
        total = sum(counts.values())
        if total == 0:
            return 0.0
        engaged = sum(
            counts.get(t.value, 0)
            for t in (InteractionType.LIKE, InteractionType.COMMENT, InteractionType.SHARE)
        )
        return engaged / total

    async def log_interaction(self, event: InteractionEvent) -> None:
        await self._call(
            "index",
            index=INTERACTIONS_INDEX,
            document={
                "user_id": event.user_id,
                "post_id": event.post_id,
                "type": event.type.value,
                "duration": event.duration,
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
        )
