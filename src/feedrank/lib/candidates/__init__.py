"""Candidate generation for the feed assembler.

Provides an abstraction for named candidate sources that can be called
internally (as a pipeline step) or via an API endpoint.
"""

from .base import (
    CandidateResult,
    CandidateSource,
    get_source,
    list_sources,
    merge_candidates,
    register_source,
)
from .exploration import ExplorationCandidateSource
from .followed import FollowedAuthorsCandidateSource
from .similar import SimilarCandidateSource
from .trending import TrendingCandidateSource

# Register built-in sources; registration order is the feed merge order.
register_source(FollowedAuthorsCandidateSource())
register_source(TrendingCandidateSource())
register_source(SimilarCandidateSource())
register_source(ExplorationCandidateSource())

# Sources consulted for every feed, in merge order.
FEED_SOURCES = ["followed", "trending", "similar", "exploration"]

__all__ = [
    "CandidateResult",
    "CandidateSource",
    "FEED_SOURCES",
    "get_source",
    "list_sources",
    "merge_candidates",
    "register_source",
    "ExplorationCandidateSource",
    "FollowedAuthorsCandidateSource",
    "SimilarCandidateSource",
    "TrendingCandidateSource",
]
