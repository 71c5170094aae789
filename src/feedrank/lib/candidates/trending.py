"""Trending candidate source.

The top posts from the trending tracker, hydrated from the post store in
trending order.  ``profile`` is accepted for interface consistency but is
not used – trending candidates are the same for every user.
"""

from .base import CandidateResult, CandidateSource


class TrendingCandidateSource(CandidateSource):
    default_limit = 50

    @property
    def name(self) -> str:
        return "trending"

    async def generate(self, backends, profile, num_candidates=None) -> CandidateResult:
        post_ids = await backends.tracker.top_trending(num_candidates or self.default_limit)
        posts = await backends.posts.get_many_by_ids(post_ids) if post_ids else []
        return CandidateResult(source_name=self.name, posts=posts)
