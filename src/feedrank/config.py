"""Environment-driven settings.

Values are read from ``os.environ`` (populated from ``.env`` by the package
``__init__``) every time :func:`get_settings` is called, so tests can patch
the environment without reloading modules.
"""

import os

from pydantic import BaseModel, Field

BACKEND_LIVE = "live"
BACKEND_MEMORY = "memory"


class Settings(BaseModel):
    api_key: str | None = None
    backend: str = BACKEND_LIVE
    elasticsearch_url: str = "http://localhost:9200"
    elasticsearch_api_key: str | None = None
    redis_url: str = "redis://localhost:6379/0"
    profile_ttl: int = Field(3600, ge=1, description="Profile cache TTL in seconds")
    embedding_ttl: int = Field(86400, ge=1, description="Embedding/meta cache TTL in seconds")
    similarity: str = "elasticsearch"
    content_analyzer_url: str | None = None
    content_analyzer_key: str | None = None
    log_level: str = "INFO"


def get_settings() -> Settings:
    env = os.environ
    return Settings(
        api_key=env.get("API_KEY"),
        backend=env.get("FEEDRANK_BACKEND", BACKEND_LIVE),
        elasticsearch_url=env.get("ELASTICSEARCH_URL", "http://localhost:9200"),
        elasticsearch_api_key=env.get("ELASTICSEARCH_API_KEY"),
        redis_url=env.get("REDIS_URL", "redis://localhost:6379/0"),
        profile_ttl=int(env.get("FEEDRANK_PROFILE_TTL", "3600")),
        embedding_ttl=int(env.get("FEEDRANK_EMBEDDING_TTL", "86400")),
        similarity=env.get("FEEDRANK_SIMILARITY", "elasticsearch"),
        content_analyzer_url=env.get("CONTENT_ANALYZER_URL"),
        content_analyzer_key=env.get("CONTENT_ANALYZER_KEY"),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )
