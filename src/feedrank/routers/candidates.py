"""Candidates router – exposes candidate sources via HTTP.

GET /candidates/sources
    List available sources.

POST /candidates/generate
    Run one or more named sources for a user and return de-duplicated,
    unscored candidates.  Useful for inspecting what feeds the ranker.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..errors import NotFoundError, UpstreamUnavailableError
from ..lib.candidates import CandidateResult, get_source, list_sources, merge_candidates
from ..security import verify_api_key

router = APIRouter(tags=["candidates"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class CandidateGenerateRequest(BaseModel):
    """Request body for the generate endpoint."""

    user_id: str = Field(..., description="ID of the user to generate candidates for")
    sources: list[str] = Field(
        ..., min_length=1, description="Names of the candidate sources to run, in merge order"
    )
    num_candidates: int = Field(100, ge=1, le=1000, description="Total candidates to return")


class CandidateOut(BaseModel):
    id: str
    author_id: str
    category: str | None = None
    title: str = ""
    source: str


class CandidateGenerateResponse(BaseModel):
    """Response body returning de-duplicated candidates from all sources."""

    candidates: list[CandidateOut]


class SourceListResponse(BaseModel):
    """Lists available source names."""

    sources: list[str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/candidates/sources", response_model=SourceListResponse)
async def candidates_list_sources() -> SourceListResponse:
    """Return the names of all registered candidate sources."""
    return SourceListResponse(sources=list_sources())


@router.post("/candidates/generate", response_model=CandidateGenerateResponse)
async def candidates_generate(
    request: Request,
    payload: CandidateGenerateRequest,
) -> CandidateGenerateResponse:
    """Run the named sources and return de-duplicated candidates.

    Candidates keep source order; the first occurrence of a post wins.
    """
    assembler = request.app.state.assembler

    try:
        profile = await assembler.get_user_profile(payload.user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=502, detail="Profile lookup failed") from exc

    results: list[CandidateResult] = []
    for name in payload.sources:
        source = get_source(name)
        if source is None:
            raise HTTPException(status_code=404, detail=f"Unknown source: {name}")

        try:
            result = await source.generate(
                request.app.state.backends, profile, num_candidates=payload.num_candidates
            )
        except Exception as exc:
            logger.exception("Candidate source '%s' failed", name)
            raise HTTPException(status_code=502, detail=f"Source '{name}' failed") from exc

        results.append(result)

    merged = merge_candidates(results)[: payload.num_candidates]
    return CandidateGenerateResponse(
        candidates=[
            CandidateOut(
                id=post.id,
                author_id=post.author_id,
                category=post.category,
                title=post.title,
                source=source_name,
            )
            for post, source_name in merged
        ]
    )
