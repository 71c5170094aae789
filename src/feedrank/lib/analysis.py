"""Content analysis capability.

Post embeddings and categories are produced outside the ranking core.  The
core only needs an embedding when a post arrives without one, so the
analyzer is an optional collaborator of the interest-vector updater.

Implementations:

* :class:`HttpContentAnalyzer` – an OpenAI-compatible HTTP provider
  (``/embeddings``, ``/moderations``, ``/chat/completions``) via ``httpx``.
* :class:`RecordedContentAnalyzer` – replays analyses recorded per text.
* :class:`StubContentAnalyzer` – no network, fixed neutral answers.
"""

import logging
from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, Field

from ..errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Technology",
    "Sports",
    "Entertainment",
    "Politics",
    "Lifestyle",
    "Business",
    "Education",
    "Other",
]
SENTIMENTS = ["positive", "negative", "neutral"]

# Moderation categories that make a post unsafe even when not flagged overall.
HIGH_RISK_CATEGORIES = ["hate", "hate/threatening", "self-harm", "sexual/minors", "violence"]


class ContentAnalysis(BaseModel):
    embedding: list[float] = Field(default_factory=list)
    category: str = "Other"
    sentiment: str = "neutral"
    is_safe: bool = True


class ContentAnalyzer(ABC):
    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        ...

    @abstractmethod
    async def analyze(self, text: str) -> ContentAnalysis:
        ...


class StubContentAnalyzer(ContentAnalyzer):
    async def embed(self, text: str) -> list[float]:
        return []

    async def analyze(self, text: str) -> ContentAnalysis:
        return ContentAnalysis()


class RecordedContentAnalyzer(ContentAnalyzer):
    """Serves analyses recorded ahead of time, keyed by the exact input text."""

    def __init__(self, recordings: dict[str, ContentAnalysis]):
        self.recordings = recordings

    async def embed(self, text: str) -> list[float]:
        return list((await self.analyze(text)).embedding)

    async def analyze(self, text: str) -> ContentAnalysis:
        try:
            return self.recordings[text]
        except KeyError:
            raise UpstreamUnavailableError(f"no recorded analysis for {text[:40]!r}") from None


def _pick(answer: str, options: list[str], default: str) -> str:
    cleaned = answer.strip().strip(".").lower()
    for option in options:
        if option.lower() == cleaned:
            return option
    return default


class HttpContentAnalyzer(ContentAnalyzer):
    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        embedding_model: str = "text-embedding-3-small",
        chat_model: str = "gpt-4o-mini",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = client or httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
        self.embedding_model = embedding_model
        self.chat_model = chat_model

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            resp = await self.client.post(path, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Content analyzer call %s failed: %s", path, exc)
            raise UpstreamUnavailableError(f"content analyzer {path} failed") from exc
        return resp.json()

    async def embed(self, text: str) -> list[float]:
        data = await self._post("/embeddings", {"model": self.embedding_model, "input": text})
        return data["data"][0]["embedding"]

    async def _ask(self, prompt: str) -> str:
        data = await self._post(
            "/chat/completions",
            {
                "model": self.chat_model,
                "max_tokens": 20,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        return data["choices"][0]["message"]["content"]

    async def classify(self, text: str) -> str:
        answer = await self._ask(
            "Classify this post into ONE category: "
            f"{', '.join(CATEGORIES[:-1])}, or Other.\n\nPost: {text}\n\n"
            "Respond with just the category name."
        )
        return _pick(answer, CATEGORIES, "Other")

    async def sentiment(self, text: str) -> str:
        answer = await self._ask(
            "Analyze the sentiment of this post. Respond with only one word: "
            f"Positive, Negative, or Neutral.\n\nPost: {text}"
        )
        return _pick(answer, SENTIMENTS, "neutral")

    async def moderate(self, text: str) -> bool:
        data = await self._post("/moderations", {"input": text})
        result = data["results"][0]
        categories = result.get("categories", {})
        high_risk = any(categories.get(c) for c in HIGH_RISK_CATEGORIES)
        return not result.get("flagged", False) and not high_risk

    async def analyze(self, text: str) -> ContentAnalysis:
        return ContentAnalysis(
            embedding=await self.embed(text),
            category=await self.classify(text),
            sentiment=await self.sentiment(text),
            is_safe=await self.moderate(text),
        )
