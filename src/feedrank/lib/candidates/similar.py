"""Similar-content candidate source.

Delegates to the configured :class:`~feedrank.lib.similarity.SimilarityLookup`,
which may return nothing.
"""

from .base import CandidateResult, CandidateSource


class SimilarCandidateSource(CandidateSource):
    default_limit = 100

    @property
    def name(self) -> str:
        return "similar"

    async def generate(self, backends, profile, num_candidates=None) -> CandidateResult:
        posts = await backends.similarity.find_similar_posts(
            profile.id,
            num_candidates or self.default_limit,
            interest_vector=profile.interest_vector or None,
        )
        return CandidateResult(source_name=self.name, posts=posts)
