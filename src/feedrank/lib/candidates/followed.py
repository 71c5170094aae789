"""Followed-authors candidate source.

Recent posts (last 48 hours) written by the authors the user follows.
"""

import logging

from .base import CandidateResult, CandidateSource

logger = logging.getLogger(__name__)

WINDOW_HOURS = 48


class FollowedAuthorsCandidateSource(CandidateSource):
    default_limit = 100

    @property
    def name(self) -> str:
        return "followed"

    async def generate(self, backends, profile, num_candidates=None) -> CandidateResult:
        if not profile.followed_users:
            logger.info("User %s follows nobody", profile.id)
            return CandidateResult(source_name=self.name, posts=[])

        posts = await backends.posts.query_recent_by_authors(
            profile.followed_users, WINDOW_HOURS, num_candidates or self.default_limit
        )
        return CandidateResult(source_name=self.name, posts=posts)
