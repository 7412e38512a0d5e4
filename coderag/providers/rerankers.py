"""Relevance models for the cross-encoder re-ranker.

Two backends:
- OllamaRelevanceModel: asks a local Ollama LLM for a 0-100 relevance rating
- SentenceTransformerCrossEncoder: scores (query, document) pairs with a
  local sentence-transformers CrossEncoder
"""

import asyncio
import logging
import math
import re

import httpx

from coderag.errors import ReRankerError
from coderag.settings import (
    CROSS_ENCODER_MODEL,
    OLLAMA_BASE_URL,
    RERANK_BACKEND,
    RERANK_DEFAULT_SCORE,
    RERANK_MODEL,
    RERANK_TIMEOUT,
)

logger = logging.getLogger(__name__)

__all__ = ["OllamaRelevanceModel", "SentenceTransformerCrossEncoder", "create_relevance_model"]

_SCORE_PATTERN = re.compile(r"\d+")


def build_scoring_prompt(query: str, document: str) -> str:
    return (
        "Rate relevance 0-100 of this code to the query. Reply with ONLY the number.\n"
        f"Query: {query}\n"
        f"Code:\n{document}\n"
        "Score:"
    )


def parse_score(response: str) -> float:
    """First integer in the reply, clamped to 0-100 and scaled to [0, 1].

    Replies without a number get RERANK_DEFAULT_SCORE.
    """
    match = _SCORE_PATTERN.search(response)
    if match is None:
        return RERANK_DEFAULT_SCORE
    return max(0, min(100, int(match.group(0)))) / 100.0


class OllamaRelevanceModel:
    """Relevance scoring through Ollama's ``/api/generate`` endpoint.

    A non-2xx response is treated as "no opinion" and scored with the
    default score. Transport errors (Ollama unreachable, timeouts) raise
    ReRankerError so the whole re-rank is abandoned.
    """

    def __init__(
        self,
        model: str = RERANK_MODEL,
        base_url: str = OLLAMA_BASE_URL,
        timeout: float = RERANK_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def score(self, query: str, document: str) -> float:
        try:
            response = await self._get_client().post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": build_scoring_prompt(query, document),
                    "stream": False,
                },
            )
        except httpx.HTTPError as e:
            raise ReRankerError(f"Ollama request failed: {e}", e) from e

        if response.is_error:
            logger.warning(
                f"Ollama returned HTTP {response.status_code}, using default score"
            )
            return RERANK_DEFAULT_SCORE

        try:
            reply = response.json().get("response", "")
        except ValueError as e:
            raise ReRankerError(f"Ollama returned invalid JSON: {e}", e) from e

        return parse_score(str(reply))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OllamaRelevanceModel":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class SentenceTransformerCrossEncoder:
    """Local cross-encoder; logits are squashed to [0, 1] with a sigmoid."""

    # model name -> loaded CrossEncoder
    _models: dict = {}

    def __init__(self, model_name: str = CROSS_ENCODER_MODEL):
        self.model_name = model_name

    @classmethod
    def _get_model(cls, model_name: str):
        if model_name not in cls._models:
            from sentence_transformers import CrossEncoder

            logger.info(f"Loading cross-encoder model: {model_name}")
            cls._models[model_name] = CrossEncoder(model_name)
        return cls._models[model_name]

    def _predict(self, query: str, document: str) -> float:
        logit = float(self._get_model(self.model_name).predict([(query, document)])[0])
        return 1.0 / (1.0 + math.exp(-logit))

    async def score(self, query: str, document: str) -> float:
        try:
            return await asyncio.to_thread(self._predict, query, document)
        except Exception as e:
            raise ReRankerError(f"Cross-encoder {self.model_name} failed: {e}", e) from e


def create_relevance_model(backend: str = RERANK_BACKEND):
    """Build the relevance model for the configured backend."""
    if backend == "ollama":
        return OllamaRelevanceModel()
    if backend == "cross_encoder":
        return SentenceTransformerCrossEncoder()
    raise ValueError(f"Unknown rerank backend: {backend}")
