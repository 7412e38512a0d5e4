"""Cross-encoder re-ranking of the head of a ranked list."""

import asyncio
import logging

from coderag.errors import ReRankerError
from coderag.models.retrieval import SearchResult
from coderag.providers.base import CrossEncoderModel
from coderag.settings import RERANK_TIMEOUT, RERANK_TOP_N
from coderag.utils.aio import describe_error

logger = logging.getLogger(__name__)

__all__ = ["CrossEncoderReRanker"]


class CrossEncoderReRanker:
    """Re-score the first ``top_n`` candidates with a relevance model.

    The re-ranked head is sorted by model score (descending, stable) and the
    remaining tail is appended in its original order. Results keep their
    identity, content and metadata; only ``score`` and position change.

    All-or-nothing: if any model call fails or times out, ReRankerError is
    raised and no partially re-ranked list is produced. There is no retry
    here; callers keep the pre-rerank order.
    """

    def __init__(
        self,
        model: CrossEncoderModel,
        top_n: int = RERANK_TOP_N,
        *,
        timeout: float = RERANK_TIMEOUT,
    ):
        if top_n < 1:
            raise ValueError(f"top_n must be >= 1, got {top_n}")
        self.model = model
        self.top_n = top_n
        self.timeout = timeout

    async def rerank(self, query: str, candidates: list[SearchResult]) -> list[SearchResult]:
        """Re-rank candidates for query.

        Raises:
            ReRankerError: Relevance model failed or timed out
        """
        if not candidates:
            return []

        head = candidates[: self.top_n]
        tail = candidates[self.top_n :]

        tasks = [asyncio.create_task(self._score(query, result)) for result in head]
        try:
            scores = await asyncio.gather(*tasks)
        except ReRankerError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        rescored = [result.with_score(score) for result, score in zip(head, scores)]
        rescored.sort(key=lambda result: result.score, reverse=True)

        logger.info(f"Re-ranked {len(head)} of {len(candidates)} candidates")
        return rescored + tail

    async def _score(self, query: str, result: SearchResult) -> float:
        try:
            return float(
                await asyncio.wait_for(self.model.score(query, result.content), timeout=self.timeout)
            )
        except asyncio.TimeoutError as e:
            raise ReRankerError(
                f"Relevance scoring timed out after {self.timeout}s for {result.chunk_id}", e
            ) from e
        except ReRankerError:
            raise
        except Exception as e:
            raise ReRankerError(
                f"Relevance scoring failed for {result.chunk_id}: {describe_error(e)}", e
            ) from e
