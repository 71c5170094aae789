"""Base abstraction for candidate sources.

Each source has a unique name and an async `generate` method that returns
a `CandidateResult` containing posts.  Sources are registered in a global
registry so they can be looked up by name from the feed assembler or the
API layer.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from ...models import Post, UserProfile


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class CandidateResult(BaseModel):
    """The output of a candidate source invocation."""

    source_name: str = Field(..., description="Name of the source that produced these posts")
    posts: list[Post] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class CandidateSource(ABC):
    """Abstract base class for named candidate sources.

    Subclasses must implement `name` (property) and `generate`.
    """

    # Default number of candidates requested from this source per feed.
    default_limit: int = 50

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name identifying this source (e.g. ``trending``)."""
        ...

    @abstractmethod
    async def generate(
        self,
        backends,
        profile: UserProfile,
        num_candidates: int | None = None,
    ) -> CandidateResult:
        """Produce candidate posts for the given user.

        Parameters
        ----------
        backends:
            A :class:`~feedrank.lib.backends.Backends` bundle of collaborators.
        profile:
            The requesting user's resolved profile.
        num_candidates:
            Maximum number of candidates to return; ``None`` means
            :attr:`default_limit`.

        Returns
        -------
        CandidateResult
        """
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_sources: dict[str, CandidateSource] = {}


def register_source(source: CandidateSource) -> None:
    """Register a source instance by its name."""
    _sources[source.name] = source


def get_source(name: str) -> CandidateSource | None:
    """Look up a registered source by name.  Returns ``None`` if not found."""
    return _sources.get(name)


def list_sources() -> list[str]:
    """Return the names of all registered sources, in registration order."""
    return list(_sources.keys())


def merge_candidates(results: list[CandidateResult]) -> list[tuple[Post, str]]:
    """Union the results by post id, keeping the first occurrence.

    Returns ``(post, source_name)`` pairs in source order.
    """
    seen: set[str] = set()
    merged: list[tuple[Post, str]] = []
    for result in results:
        for post in result.posts:
            if post.id in seen:
                continue
            seen.add(post.id)
            merged.append((post, result.source_name))
    return merged
