from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from ..errors import UpstreamUnavailableError
from ..security import verify_api_key

router = APIRouter(tags=["trending"], dependencies=[Depends(verify_api_key)])


class TrendingResponse(BaseModel):
    post_ids: list[str]


@router.get("/trending", response_model=TrendingResponse)
async def get_trending(
    request: Request,
    limit: int = Query(20, ge=0, le=500),
) -> TrendingResponse:
    """Return the ids of the highest-scoring trending posts, highest first."""
    tracker = request.app.state.backends.tracker
    try:
        post_ids = await tracker.top_trending(limit)
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=502, detail="Trending store unavailable") from exc
    return TrendingResponse(post_ids=post_ids)
