"""Exploration candidate source.

A random sample of posts from the last 24 hours, so users see content
outside their follow graph and interest profile.
"""

from .base import CandidateResult, CandidateSource

WINDOW_HOURS = 24


class ExplorationCandidateSource(CandidateSource):
    default_limit = 50

    @property
    def name(self) -> str:
        return "exploration"

    async def generate(self, backends, profile, num_candidates=None) -> CandidateResult:
        posts = await backends.posts.query_recent_random(
            WINDOW_HOURS, num_candidates or self.default_limit
        )
        return CandidateResult(source_name=self.name, posts=posts)
