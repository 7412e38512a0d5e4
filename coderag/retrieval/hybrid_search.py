"""Hybrid search combining vector similarity and lexical (BM25) matching.

Pipeline for one query:
1. Embed the query and fetch vector candidates (in parallel with step 2)
2. Fetch lexical candidates for the same text
3. Normalize both signals to [0, 1] (1.0 = best match)
4. Fuse: vector_weight * vector_score + bm25_weight * lexical_score
5. Sort by fused score (ties by chunk id), truncate to top_k
6. Hydrate the survivors concurrently through the chunk lookup

Both signals are required: any collaborator failure or timeout is raised as
EmbedError / StoreError and no partial result is returned.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from coderag.errors import EmbedError, RetrievalError, StoreError
from coderag.models.chunk import Chunk, ChunkMetadata
from coderag.models.config import RetrievalConfig
from coderag.models.retrieval import SearchMethod, SearchResult
from coderag.providers.base import (
    ChunkLookup,
    EmbeddingProvider,
    LexicalHit,
    LexicalIndex,
    VectorHit,
    VectorStore,
)
from coderag.settings import (
    CANDIDATE_MULTIPLIER,
    CHUNK_TYPES,
    EMBED_TIMEOUT,
    LOOKUP_TIMEOUT,
    RRF_K,
    STORE_TIMEOUT,
)
from coderag.utils.aio import describe_error, maybe_await

logger = logging.getLogger(__name__)

__all__ = ["HybridSearch"]

T = TypeVar("T")


class HybridSearch:
    """Weighted fusion of vector and lexical retrieval.

    Attributes:
        embedding_provider: Turns the query into a vector
        vector_store: Nearest-neighbour search over chunk embeddings
        lexical_index: Keyword search over chunk text
        config: Retrieval configuration (top_k, weights, fusion strategy)
        chunk_lookup: Optional chunk resolver used to hydrate results;
            metadata stored on the index hits is used when absent
        embed_timeout: Seconds allowed for the embedding call
        store_timeout: Seconds allowed for each index query
        lookup_timeout: Seconds allowed for each chunk lookup
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        lexical_index: LexicalIndex,
        config: RetrievalConfig | None = None,
        *,
        chunk_lookup: ChunkLookup | None = None,
        embed_timeout: float = EMBED_TIMEOUT,
        store_timeout: float = STORE_TIMEOUT,
        lookup_timeout: float = LOOKUP_TIMEOUT,
    ):
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.lexical_index = lexical_index
        self.config = config or RetrievalConfig()
        self.chunk_lookup = chunk_lookup
        self.embed_timeout = embed_timeout
        self.store_timeout = store_timeout
        self.lookup_timeout = lookup_timeout

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        vector_weight: float | None = None,
        bm25_weight: float | None = None,
    ) -> list[SearchResult]:
        """Execute hybrid search.

        Args:
            query: Search query text
            top_k: Number of results (default: config.top_k)
            vector_weight: Override for config.vector_weight
            bm25_weight: Override for config.bm25_weight

        Returns:
            Up to top_k SearchResult objects sorted by fused score

        Raises:
            EmbedError: Embedding provider failed or timed out
            StoreError: Vector store, lexical index or chunk lookup failed or timed out
        """
        top_k = top_k if top_k is not None else self.config.top_k
        vector_weight = vector_weight if vector_weight is not None else self.config.vector_weight
        bm25_weight = bm25_weight if bm25_weight is not None else self.config.bm25_weight
        fetch_k = max(top_k, top_k * CANDIDATE_MULTIPLIER)

        if top_k <= 0:
            return []

        vector_task = asyncio.create_task(self._vector_candidates(query, fetch_k))
        lexical_task = asyncio.create_task(self._lexical_candidates(query, fetch_k))
        try:
            vector_hits, lexical_hits = await asyncio.gather(vector_task, lexical_task)
        except RetrievalError:
            for task in (vector_task, lexical_task):
                task.cancel()
            await asyncio.gather(vector_task, lexical_task, return_exceptions=True)
            raise

        if not vector_hits and not lexical_hits:
            logger.info(f"No candidates from either index for query: {query[:50]}")
            return []

        if self.config.fusion == "rrf":
            fused = self._reciprocal_rank_fusion(
                vector_hits, lexical_hits, vector_weight, bm25_weight
            )
        else:
            fused = self._weighted_fusion(
                self._normalize_vector_scores(vector_hits),
                self._normalize_lexical_scores(lexical_hits),
                vector_weight,
                bm25_weight,
            )

        # Total order: score descending, then chunk id ascending
        ranked = sorted(fused.items(), key=lambda item: (-item[1], item[0]))[:top_k]

        method: SearchMethod = "hybrid"
        if not vector_hits:
            method = "bm25"
        elif not lexical_hits:
            method = "vector"

        # Vector metadata wins over lexical metadata for the same id
        stored_metadata: dict[str, dict[str, Any]] = {}
        for hit in [*lexical_hits, *vector_hits]:
            if hit.metadata:
                stored_metadata[hit.id] = hit.metadata

        chunks = await self._hydrate_all(
            [(chunk_id, stored_metadata.get(chunk_id, {})) for chunk_id, _ in ranked]
        )
        results = [
            SearchResult.from_chunk(chunk, score, method)
            for chunk, (_, score) in zip(chunks, ranked)
        ]

        logger.info(
            f"Hybrid search: {len(vector_hits)} vector + {len(lexical_hits)} lexical "
            f"candidates -> {len(fused)} fused -> returning {len(results)} ({method})"
        )
        return results

    async def _with_timeout(self, awaitable: Awaitable[T], timeout: float) -> T:
        return await asyncio.wait_for(awaitable, timeout=timeout)

    async def _vector_candidates(self, query: str, top_k: int) -> list[VectorHit]:
        """Embed the query and query the vector store."""
        try:
            vector = await self._with_timeout(
                self.embedding_provider.embed(query), self.embed_timeout
            )
        except asyncio.TimeoutError as e:
            raise EmbedError(f"Embedding timed out after {self.embed_timeout}s", e) from e
        except EmbedError:
            raise
        except Exception as e:
            raise EmbedError(f"Embedding failed: {describe_error(e)}", e) from e

        if vector is None or len(vector) == 0:
            raise EmbedError("Failed to generate query embedding")

        try:
            return list(
                await self._with_timeout(self.vector_store.query(vector, top_k), self.store_timeout)
            )
        except asyncio.TimeoutError as e:
            raise StoreError(f"Vector search timed out after {self.store_timeout}s", e) from e
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Vector search failed: {describe_error(e)}", e) from e

    async def _lexical_candidates(self, query: str, top_k: int) -> list[LexicalHit]:
        """Query the lexical index."""
        try:
            return list(
                await self._with_timeout(self.lexical_index.query(query, top_k), self.store_timeout)
            )
        except asyncio.TimeoutError as e:
            raise StoreError(f"Lexical search timed out after {self.store_timeout}s", e) from e
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Lexical search failed: {describe_error(e)}", e) from e

    @staticmethod
    def _normalize_vector_scores(hits: list[VectorHit]) -> dict[str, float]:
        """Map distances to (0, 1] with 1 / (1 + distance); first hit per id wins."""
        scores: dict[str, float] = {}
        for hit in hits:
            if hit.id not in scores:
                scores[hit.id] = 1.0 / (1.0 + max(hit.score, 0.0))
        return scores

    @staticmethod
    def _normalize_lexical_scores(hits: list[LexicalHit]) -> dict[str, float]:
        """Scale lexical scores by the best score in the batch."""
        if not hits:
            return {}
        max_score = max(hit.score for hit in hits)
        scores: dict[str, float] = {}
        for hit in hits:
            if hit.id in scores:
                continue
            scores[hit.id] = max(hit.score, 0.0) / max_score if max_score > 0 else 0.0
        return scores

    @staticmethod
    def _weighted_fusion(
        vector_scores: dict[str, float],
        lexical_scores: dict[str, float],
        vector_weight: float,
        bm25_weight: float,
    ) -> dict[str, float]:
        """Weighted sum of normalized scores over the union of ids."""
        fused: dict[str, float] = {}
        for chunk_id in {**vector_scores, **lexical_scores}:
            fused[chunk_id] = (
                vector_weight * vector_scores.get(chunk_id, 0.0)
                + bm25_weight * lexical_scores.get(chunk_id, 0.0)
            )
        return fused

    @staticmethod
    def _reciprocal_rank_fusion(
        vector_hits: list[VectorHit],
        lexical_hits: list[LexicalHit],
        vector_weight: float,
        bm25_weight: float,
        k: int = RRF_K,
    ) -> dict[str, float]:
        """Weighted Reciprocal Rank Fusion.

        Formula: score(chunk) = vector_weight / (k + rank_vector) +
                                bm25_weight / (k + rank_bm25)
        """
        fused: dict[str, float] = {}
        for weight, hits in ((vector_weight, vector_hits), (bm25_weight, lexical_hits)):
            seen: set[str] = set()
            rank = 0
            for hit in hits:
                if hit.id in seen:
                    continue
                seen.add(hit.id)
                rank += 1
                fused[hit.id] = fused.get(hit.id, 0.0) + weight * (1.0 / (k + rank))
        return fused

    async def _hydrate_all(self, items: list[tuple[str, dict[str, Any]]]) -> list[Chunk]:
        """Hydrate all ranked ids concurrently; the first failure cancels the rest."""
        tasks = [asyncio.create_task(self._hydrate(chunk_id, metadata)) for chunk_id, metadata in items]
        try:
            return list(await asyncio.gather(*tasks))
        except RetrievalError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _hydrate(self, chunk_id: str, metadata: dict[str, Any]) -> Chunk:
        """Resolve the full chunk, falling back to the hit's stored metadata."""
        if self.chunk_lookup is not None:
            try:
                chunk = await self._with_timeout(
                    maybe_await(self.chunk_lookup.resolve(chunk_id)), self.lookup_timeout
                )
            except asyncio.TimeoutError as e:
                raise StoreError(
                    f"Chunk lookup timed out after {self.lookup_timeout}s for {chunk_id}", e
                ) from e
            except Exception as e:
                raise StoreError(f"Chunk lookup failed for {chunk_id}: {describe_error(e)}", e) from e
            if chunk is not None:
                return chunk
            logger.debug(f"Chunk {chunk_id} not found by lookup, using stored metadata")

        return _chunk_from_metadata(chunk_id, metadata)


def _safe_str(metadata: dict[str, Any], key: str, default: str) -> str:
    value = metadata.get(key)
    return value if isinstance(value, str) else default


def _safe_int(metadata: dict[str, Any], key: str) -> int:
    value = metadata.get(key)
    return value if isinstance(value, int) and value >= 0 else 0


def _chunk_from_metadata(chunk_id: str, metadata: dict[str, Any]) -> Chunk:
    """Build a chunk from the flat metadata stored next to a vector."""
    chunk_type = _safe_str(metadata, "chunk_type", "function")
    if chunk_type not in CHUNK_TYPES:
        chunk_type = "function"

    start_line = _safe_int(metadata, "start_line")
    end_line = max(start_line, _safe_int(metadata, "end_line"))

    return Chunk(
        id=chunk_id,
        content=_safe_str(metadata, "content", ""),
        nl_summary=_safe_str(metadata, "nl_summary", ""),
        file_path=_safe_str(metadata, "file_path", ""),
        start_line=start_line,
        end_line=end_line,
        language=_safe_str(metadata, "language", "unknown"),
        metadata=ChunkMetadata(
            chunk_type=chunk_type,
            name=_safe_str(metadata, "name", ""),
        ),
    )
