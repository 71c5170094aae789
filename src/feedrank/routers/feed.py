"""Feed router – personalised feeds and interaction events.

GET /feed
    Build a ranked, diversity-filtered feed for a user.

POST /interactions
    Record an interaction: log it, update the post's trending score, and
    update the user's interest vector in the background.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ..errors import ConflictError, FeedUnavailableError, NotFoundError, UpstreamUnavailableError
from ..lib.feed import DEFAULT_FEED_LIMIT
from ..lib.interests import InterestVectorUpdater
from ..models import InteractionEvent
from ..security import verify_api_key

router = APIRouter(tags=["feed"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)

MAX_FEED_LIMIT = 200


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class FeedPost(BaseModel):
    """A ranked post as returned to clients (embedding omitted)."""

    id: str
    author_id: str
    created_at: datetime
    category: str | None = None
    title: str = ""
    content: str = ""
    score: float = Field(..., description="Ranking score; relative ordering only")
    source: str | None = Field(None, description="Candidate source that produced the post")


class FeedResponse(BaseModel):
    user_id: str
    posts: list[FeedPost]


class InteractionResponse(BaseModel):
    success: bool
    trending_score: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _update_interests(updater: InterestVectorUpdater, event: InteractionEvent) -> None:
    outcome = await updater.apply_interaction(
        event.user_id, event.post_id, event.type, event.duration
    )
    if outcome.applied:
        logger.debug("Updated interest vector of %s from %s", event.user_id, event.post_id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    request: Request,
    user_id: str = Query(..., description="ID of the requesting user"),
    limit: int = Query(DEFAULT_FEED_LIMIT, ge=1, le=MAX_FEED_LIMIT),
) -> FeedResponse:
    """Return up to ``limit`` ranked posts for ``user_id``."""
    assembler = request.app.state.assembler
    try:
        posts = await assembler.generate_feed(user_id, limit)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    except FeedUnavailableError as exc:
        logger.error("Every candidate source failed for user %s", user_id)
        raise HTTPException(status_code=503, detail="Feed temporarily unavailable") from exc
    except UpstreamUnavailableError as exc:
        logger.exception("Feed generation failed for user %s", user_id)
        raise HTTPException(status_code=502, detail="Upstream request failed") from exc

    return FeedResponse(
        user_id=user_id,
        posts=[FeedPost.model_validate(p.model_dump(exclude={"embedding"})) for p in posts],
    )


@router.post("/interactions", response_model=InteractionResponse)
async def record_interaction(
    request: Request,
    payload: InteractionEvent,
    background_tasks: BackgroundTasks,
) -> InteractionResponse:
    backends = request.app.state.backends

    try:
        await backends.interactions.log_interaction(payload)
    except UpstreamUnavailableError:
        logger.warning("Could not log %s interaction on %s", payload.type.value, payload.post_id)

    try:
        score = await backends.tracker.record_engagement(payload.post_id, payload.type)
    except (UpstreamUnavailableError, ConflictError) as exc:
        logger.exception("Trending update failed for post %s", payload.post_id)
        raise HTTPException(status_code=502, detail="Trending update failed") from exc

    background_tasks.add_task(_update_interests, request.app.state.updater, payload)
    return InteractionResponse(success=True, trending_score=score)
