"""Diversity-constrained re-ranking.

Walks a score-sorted list and bounds same-category and same-author
repetition, letting high-scoring posts through regardless.  Every
``SPLICE_EVERY`` accepted posts, one under-represented candidate is spliced
in to keep the feed varied.
"""

from collections import Counter

from ..models import ScoredPost

MAX_PER_CATEGORY = 3
MAX_PER_AUTHOR = 2
# Posts scoring at least this are admitted even when saturated.
HIGH_SCORE_BYPASS = 0.8

SPLICE_EVERY = 10
SPLICE_MAX_CATEGORY = 2
SPLICE_MAX_AUTHOR = 1


def category_key(post: ScoredPost) -> str:
    # Uncategorised posts share one bucket.
    return post.category or ""


def find_diverse_post(
    posts: list[ScoredPost],
    included: set[str],
    category_counts: Counter,
    author_counts: Counter,
) -> ScoredPost | None:
    """First not-yet-included post from an under-represented category and author."""
    for post in posts:
        if post.id in included:
            continue
        if (
            category_counts[category_key(post)] < SPLICE_MAX_CATEGORY
            and author_counts[post.author_id] < SPLICE_MAX_AUTHOR
        ):
            return post
    return None


def apply_diversity_filter(posts: list[ScoredPost]) -> list[ScoredPost]:
    """Re-rank *posts* (already sorted by score, highest first)."""
    accepted: list[ScoredPost] = []
    included: set[str] = set()
    category_counts: Counter = Counter()
    author_counts: Counter = Counter()

    def accept(post: ScoredPost) -> None:
        accepted.append(post)
        included.add(post.id)
        category_counts[category_key(post)] += 1
        author_counts[post.author_id] += 1

    for post in posts:
        if post.id in included:
            continue

        saturated = (
            category_counts[category_key(post)] >= MAX_PER_CATEGORY
            or author_counts[post.author_id] >= MAX_PER_AUTHOR
        )
        if saturated and post.score < HIGH_SCORE_BYPASS:
            continue

        accept(post)

        if len(accepted) % SPLICE_EVERY == 0:
            diverse = find_diverse_post(posts, included, category_counts, author_counts)
            if diverse is not None:
                accept(diverse)

    return accepted
