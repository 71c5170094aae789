"""Collaborator bundle and its construction from settings."""

import logging

from ..config import BACKEND_MEMORY, Settings
from .analysis import ContentAnalyzer, HttpContentAnalyzer
from .similarity import ElasticsearchSimilarityLookup, SimilarityLookup, StubSimilarityLookup
from .stores import (
    Cache,
    InMemoryCache,
    InMemoryEngagementStore,
    InMemoryInteractionStore,
    InMemoryPostStore,
    InMemoryProfileStore,
    InteractionStore,
    PostStore,
    ProfileStore,
)
from .trending import TrendingTracker

logger = logging.getLogger(__name__)


class Backends:
    """Everything the ranking core talks to, bundled for injection."""

    def __init__(
        self,
        profiles: ProfileStore,
        posts: PostStore,
        interactions: InteractionStore,
        cache: Cache,
        tracker: TrendingTracker,
        similarity: SimilarityLookup,
        analyzer: ContentAnalyzer | None = None,
        clients: list | None = None,
    ):
        self.profiles = profiles
        self.posts = posts
        self.interactions = interactions
        self.cache = cache
        self.tracker = tracker
        self.similarity = similarity
        self.analyzer = analyzer
        # Network clients owned by this bundle, closed on shutdown.
        self.clients = clients or []

    async def aclose(self) -> None:
        for client in self.clients:
            close = getattr(client, "aclose", None) or client.close
            try:
                await close()
            except Exception:
                logger.exception("Failed to close %s", type(client).__name__)


def memory_backends(settings: Settings | None = None) -> Backends:
    embedding_ttl = settings.embedding_ttl if settings else 86400
    return Backends(
        profiles=InMemoryProfileStore(),
        posts=InMemoryPostStore(),
        interactions=InMemoryInteractionStore(),
        cache=InMemoryCache(embedding_ttl=embedding_ttl),
        tracker=TrendingTracker(InMemoryEngagementStore()),
        similarity=StubSimilarityLookup(),
    )


def live_backends(settings: Settings) -> Backends:
    from elasticsearch import AsyncElasticsearch

    from .stores.elasticsearch import (
        ElasticsearchInteractionStore,
        ElasticsearchPostStore,
        ElasticsearchProfileStore,
    )
    from .stores.redis import RedisCache, RedisEngagementStore, create_redis

    es = AsyncElasticsearch(settings.elasticsearch_url, api_key=settings.elasticsearch_api_key)
    redis = create_redis(settings.redis_url)
    profiles = ElasticsearchProfileStore(es)

    if settings.similarity == "stub":
        similarity: SimilarityLookup = StubSimilarityLookup()
    else:
        similarity = ElasticsearchSimilarityLookup(es, profiles)

    analyzer = None
    clients: list = [es, redis]
    if settings.content_analyzer_url:
        analyzer = HttpContentAnalyzer(settings.content_analyzer_url, settings.content_analyzer_key)
        clients.append(analyzer.client)

    return Backends(
        profiles=profiles,
        posts=ElasticsearchPostStore(es),
        interactions=ElasticsearchInteractionStore(es),
        cache=RedisCache(redis, embedding_ttl=settings.embedding_ttl),
        tracker=TrendingTracker(RedisEngagementStore(redis)),
        similarity=similarity,
        analyzer=analyzer,
        clients=clients,
    )


def build_backends(settings: Settings) -> Backends:
    if settings.backend == BACKEND_MEMORY:
        logger.info("Using in-memory backends")
        return memory_backends(settings)
    logger.info(
        "Using Elasticsearch at %s and Redis at %s", settings.elasticsearch_url, settings.redis_url
    )
    return live_backends(settings)
