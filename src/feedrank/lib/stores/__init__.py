"""Storage collaborators for the ranking core.

Abstract interfaces live in :mod:`.base`; live implementations in
:mod:`.elasticsearch` and :mod:`.redis`; in-memory ones in :mod:`.memory`.
"""

from .base import Cache, EngagementStore, InteractionStore, PostStore, ProfileStore
from .memory import (
    InMemoryCache,
    InMemoryEngagementStore,
    InMemoryInteractionStore,
    InMemoryPostStore,
    InMemoryProfileStore,
)

__all__ = [
    "Cache",
    "EngagementStore",
    "InteractionStore",
    "PostStore",
    "ProfileStore",
    "InMemoryCache",
    "InMemoryEngagementStore",
    "InMemoryInteractionStore",
    "InMemoryPostStore",
    "InMemoryProfileStore",
]
