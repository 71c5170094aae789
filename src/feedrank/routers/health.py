from fastapi import APIRouter
from pydantic import BaseModel

from ..config import get_settings

router = APIRouter(tags=["health"])

SERVICE_NAME = "feedrank"


class HealthResponse(BaseModel):
    status: str
    service: str
    backend: str


@router.get("/health", response_model=HealthResponse, status_code=200)
async def healthcheck() -> HealthResponse:
    """Liveness probe; does not touch Elasticsearch or Redis."""
    return HealthResponse(status="ok", service=SERVICE_NAME, backend=get_settings().backend)
