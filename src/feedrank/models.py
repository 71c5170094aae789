from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Maximum number of post ids kept in a profile's recent-feed history.
RECENT_FEED_LIMIT = 50


class InteractionType(str, Enum):
    VIEW = "view"
    LIKE = "like"
    COMMENT = "comment"
    SHARE = "share"
    DWELL = "dwell"


class Post(BaseModel):
    """A post as stored in the ``posts`` index."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Post identifier")
    author_id: str = Field(..., description="Identifier of the posting user")
    created_at: datetime = Field(..., description="Creation time (timezone-aware)")
    category: str | None = Field(None, description="Category label from content analysis")
    embedding: list[float] = Field(
        default_factory=list, description="Content embedding; empty if not yet analyzed"
    )
    title: str = ""
    content: str = ""


class ScoredPost(Post):
    """A post with its per-request ranking score."""

    score: float = Field(..., description="Blended ranking score (relative, not a probability)")
    source: str | None = Field(None, description="Candidate source that first produced the post")


class UserProfile(BaseModel):
    id: str
    interest_vector: list[float] = Field(default_factory=list)
    followed_users: list[str] = Field(default_factory=list)
    recent_feed: list[str] = Field(
        default_factory=list, description="Post ids shown recently, most recent first"
    )
    interaction_history: dict[str, float] = Field(
        default_factory=dict, description="Category -> accumulated interaction weight"
    )


class InteractionCounts(BaseModel):
    likes: int = Field(0, ge=0)
    comments: int = Field(0, ge=0)
    shares: int = Field(0, ge=0)
    views: int = Field(0, ge=0)


class PostMeta(BaseModel):
    """Category/author pair cached per post for recent-feed lookups."""

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    author_id: str | None = None


# Returned on a cache miss; matches no post.
UNKNOWN_META = PostMeta()


class InteractionEvent(BaseModel):
    user_id: str = Field(..., description="User performing the interaction")
    post_id: str = Field(..., description="Post interacted with")
    type: InteractionType
    duration: float | None = Field(None, ge=0, description="Dwell duration in seconds")


class InterestUpdate(BaseModel):
    """Outcome of applying one interaction to a user's interest vector."""

    applied: bool
    weight: float = 0.0
    reason: str | None = None
    vector: list[float] | None = None
