"""Shared fixtures: fixed clock, post/profile factories, seeded in-memory backends."""

from datetime import datetime, timedelta, timezone

import pytest

from .lib.backends import Backends
from .lib.similarity import RecordedSimilarityLookup
from .lib.stores import (
    InMemoryCache,
    InMemoryEngagementStore,
    InMemoryInteractionStore,
    InMemoryPostStore,
    InMemoryProfileStore,
)
from .lib.trending import TrendingTracker
from .models import Post

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_post(post_id: str, author_id: str = "author-a", hours_old: float = 1.0, **kwargs) -> Post:
    kwargs.setdefault("embedding", [1.0, 0.0])
    return Post(
        id=post_id,
        author_id=author_id,
        created_at=NOW - timedelta(hours=hours_old),
        title=kwargs.pop("title", f"title {post_id}"),
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def backends():
    """Empty in-memory backends on the fixed clock; tests seed what they need."""
    return Backends(
        profiles=InMemoryProfileStore(),
        posts=InMemoryPostStore(clock=lambda: NOW),
        interactions=InMemoryInteractionStore(),
        cache=InMemoryCache(),
        tracker=TrendingTracker(InMemoryEngagementStore(), clock=lambda: NOW.timestamp()),
        similarity=RecordedSimilarityLookup({}),
    )
