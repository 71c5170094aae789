"""Domain errors raised by the ranking core and its storage adapters.

Routers translate these into HTTP responses; library code never raises
``HTTPException`` directly.
"""


class FeedRankError(Exception):
    """Base class for all feedrank errors."""


class NotFoundError(FeedRankError):
    """A profile or post is absent from its store."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class UpstreamUnavailableError(FeedRankError):
    """A cache, store or external lookup failed or returned garbage."""


class FeedUnavailableError(UpstreamUnavailableError):
    """Every candidate source failed for a single feed request."""


class InvalidInputError(FeedRankError, ValueError):
    """An argument is outside the documented domain (e.g. unknown interaction type)."""


class ConflictError(FeedRankError):
    """A compare-and-set write lost a race with a concurrent writer."""
