"""Shared Elasticsearch utilities.

Helpers for working with Elasticsearch responses that are used across the
storage adapters and the similarity lookup.
"""

import logging
from datetime import datetime, timezone

from elastic_transport import ObjectApiResponse

from ..errors import UpstreamUnavailableError
from ..models import Post

logger = logging.getLogger(__name__)


def unwrap_es_response(resp) -> dict:
    """Unwrap an Elasticsearch response, handling both ObjectApiResponse and dict.

    Raises ``UpstreamUnavailableError`` if the response type is unexpected.
    """
    if isinstance(resp, ObjectApiResponse):
        return resp.body
    elif isinstance(resp, dict):
        return resp
    else:
        logger.error("Unexpected Elasticsearch response type: %s", type(resp))
        raise UpstreamUnavailableError("Invalid Elasticsearch response")


def iter_sources(data: dict):
    """Yield ``(_id, _source)`` for every hit in a search response body."""
    for hit in data.get("hits", {}).get("hits", []):
        yield hit.get("_id"), hit.get("_source") or {}


def parse_timestamp(value) -> datetime:
    """Parse an ES date (ISO string or epoch millis) into an aware datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def post_from_source(doc_id: str | None, src: dict) -> Post:
    """Build a :class:`Post` from a ``posts`` index document."""
    return Post(
        id=src.get("id") or doc_id,
        author_id=src.get("author_id"),
        created_at=parse_timestamp(src.get("created_at")),
        category=src.get("category"),
        embedding=src.get("embedding") or [],
        title=src.get("title") or "",
        content=src.get("content") or "",
    )
