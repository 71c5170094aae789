"""Content-similarity lookup.

Finds posts close to a user's interest vector.  The lookup is an external
capability and may legitimately return nothing.

Implementations:

* :class:`ElasticsearchSimilarityLookup` – kNN search on ``posts.embedding``.
* :class:`StubSimilarityLookup` – always empty.
* :class:`RecordedSimilarityLookup` – fixed results per user.
"""

import logging
from abc import ABC, abstractmethod

from ..models import Post
from .elasticsearch import iter_sources, post_from_source, unwrap_es_response
from .stores.base import ProfileStore

logger = logging.getLogger(__name__)

EMBEDDING_FIELD = "embedding"


class SimilarityLookup(ABC):
    @abstractmethod
    async def find_similar_posts(
        self,
        user_id: str,
        limit: int,
        interest_vector: list[float] | None = None,
    ) -> list[Post]:
        """Posts similar to the user's interests.

        *interest_vector* may be passed by callers that already hold it.
        """
        ...


class StubSimilarityLookup(SimilarityLookup):
    async def find_similar_posts(self, user_id, limit, interest_vector=None) -> list[Post]:
        return []


class RecordedSimilarityLookup(SimilarityLookup):
    def __init__(self, results: dict[str, list[Post]]):
        self.results = results

    async def find_similar_posts(self, user_id, limit, interest_vector=None) -> list[Post]:
        return list(self.results.get(user_id, []))[:limit]


async def knn_search_posts(es, query_vector: list[float], num_candidates: int) -> list[Post]:
    """Run a kNN search against the ``posts`` index and return posts."""
    knn_query = {
        "knn": {
            "field": EMBEDDING_FIELD,
            "query_vector": query_vector,
            "k": num_candidates,
            "num_candidates": max(100, num_candidates * 10),
        }
    }

    resp = await es.search(index="posts", query=knn_query, size=num_candidates)
    data = unwrap_es_response(resp)
    return [post_from_source(doc_id, src) for doc_id, src in iter_sources(data)]


class ElasticsearchSimilarityLookup(SimilarityLookup):
    """Nearest neighbours of the user's interest vector.

    Pipeline:
        user_id → interest vector (profile store, unless supplied) → kNN search
    """

    def __init__(self, es, profiles: ProfileStore):
        self.es = es
        self.profiles = profiles

    async def find_similar_posts(self, user_id, limit, interest_vector=None) -> list[Post]:
        if interest_vector is None:
            interest_vector, _ = await self.profiles.get_interest_vector(user_id)

        if not interest_vector or not any(interest_vector):
            logger.info("No interest vector for user %s", user_id)
            return []

        return await knn_search_posts(self.es, interest_vector, limit)
