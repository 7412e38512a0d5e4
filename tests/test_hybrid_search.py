"""Tests for hybrid vector + lexical search."""

import asyncio

import pytest

from coderag.errors import EmbedError, StoreError
from coderag.models.config import RetrievalConfig
from coderag.providers.base import LexicalHit, VectorHit
from coderag.retrieval.hybrid_search import HybridSearch
from tests.fakes import (
    AsyncChunkLookup,
    DictChunkLookup,
    FakeEmbeddingProvider,
    FakeLexicalIndex,
    FakeVectorStore,
    make_chunk,
)


def build_search(vector_hits=(), lexical_hits=(), config=None, **kwargs) -> HybridSearch:
    return HybridSearch(
        kwargs.pop("embedder", FakeEmbeddingProvider()),
        kwargs.pop("vector_store", FakeVectorStore(vector_hits)),
        kwargs.pop("lexical_index", FakeLexicalIndex(lexical_hits)),
        config or RetrievalConfig(top_k=10, vector_weight=0.7, bm25_weight=0.3),
        **kwargs,
    )


# =============================================================================
# Fusion and ordering
# =============================================================================


class TestFusion:
    @pytest.mark.asyncio
    async def test_weighted_fusion_example(self):
        """A: vector 1.0 / lexical 0.0 -> 0.7; B: vector 0.0 / lexical 1.0 -> 0.3."""
        search = build_search(
            vector_hits=[VectorHit(id="A", score=0.0)],
            lexical_hits=[LexicalHit(id="B", score=7.5)],
        )

        results = await search.search("parse config")

        assert [r.chunk_id for r in results] == ["A", "B"]
        assert results[0].score == pytest.approx(0.7)
        assert results[1].score == pytest.approx(0.3)
        assert all(r.method == "hybrid" for r in results)

    @pytest.mark.asyncio
    async def test_distance_and_max_normalization(self):
        search = build_search(
            vector_hits=[VectorHit(id="A", score=1.0), VectorHit(id="B", score=3.0)],
            lexical_hits=[LexicalHit(id="A", score=2.0), LexicalHit(id="B", score=4.0)],
        )

        results = await search.search("query")
        scores = {r.chunk_id: r.score for r in results}

        # A: 0.7 * 1/(1+1) + 0.3 * 2/4 = 0.35 + 0.15
        assert scores["A"] == pytest.approx(0.5)
        # B: 0.7 * 1/(1+3) + 0.3 * 4/4 = 0.175 + 0.3
        assert scores["B"] == pytest.approx(0.475)

    @pytest.mark.asyncio
    async def test_ties_broken_by_chunk_id(self):
        search = build_search(
            vector_hits=[VectorHit(id="zeta", score=0.0), VectorHit(id="alpha", score=0.0)],
            lexical_hits=[LexicalHit(id="zeta", score=1.0), LexicalHit(id="alpha", score=1.0)],
        )

        results = await search.search("query")

        assert [r.chunk_id for r in results] == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_non_positive_lexical_max_scores_zero(self):
        search = build_search(
            vector_hits=[VectorHit(id="A", score=1.0)],
            lexical_hits=[LexicalHit(id="B", score=0.0), LexicalHit(id="C", score=-2.0)],
        )

        results = await search.search("query")
        scores = {r.chunk_id: r.score for r in results}

        assert scores["A"] == pytest.approx(0.35)
        assert scores["B"] == 0.0
        assert scores["C"] == 0.0

    @pytest.mark.asyncio
    async def test_weight_overrides(self):
        search = build_search(
            vector_hits=[VectorHit(id="A", score=0.0)],
            lexical_hits=[LexicalHit(id="B", score=1.0)],
        )

        results = await search.search("query", vector_weight=0.2, bm25_weight=0.8)

        assert [r.chunk_id for r in results] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_rrf_fusion(self):
        config = RetrievalConfig(top_k=5, vector_weight=0.7, bm25_weight=0.3, fusion="rrf")
        search = build_search(
            vector_hits=[VectorHit(id="A", score=0.0), VectorHit(id="B", score=0.5)],
            lexical_hits=[LexicalHit(id="B", score=9.0)],
            config=config,
        )

        results = await search.search("query")
        scores = {r.chunk_id: r.score for r in results}

        assert scores["A"] == pytest.approx(0.7 / 61)
        assert scores["B"] == pytest.approx(0.7 / 62 + 0.3 / 61)
        assert [r.chunk_id for r in results] == ["B", "A"]


# =============================================================================
# Candidate counts and method tagging
# =============================================================================


class TestCandidates:
    @pytest.mark.asyncio
    async def test_fetches_twice_top_k_and_truncates(self):
        vector_store = FakeVectorStore([VectorHit(id=f"v{i}", score=float(i)) for i in range(10)])
        lexical_index = FakeLexicalIndex([LexicalHit(id=f"l{i}", score=10.0 - i) for i in range(10)])
        search = build_search(vector_store=vector_store, lexical_index=lexical_index)

        results = await search.search("query", top_k=3)

        assert len(results) == 3
        assert vector_store.requested_top_k == [6]
        assert lexical_index.requested_top_k == [6]

    @pytest.mark.asyncio
    async def test_vector_only_method(self):
        search = build_search(vector_hits=[VectorHit(id="A", score=0.0)])

        results = await search.search("query")

        assert [r.method for r in results] == ["vector"]

    @pytest.mark.asyncio
    async def test_bm25_only_method(self):
        search = build_search(lexical_hits=[LexicalHit(id="B", score=3.0)])

        results = await search.search("query")

        assert [r.method for r in results] == ["bm25"]
        assert results[0].score == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        results = await build_search().search("query")
        assert results == []


# =============================================================================
# Hydration
# =============================================================================


class TestHydration:
    @pytest.mark.asyncio
    async def test_hydrates_through_chunk_lookup(self, sample_chunks, chunk_lookup):
        search = build_search(
            vector_hits=[VectorHit(id="parse-config", score=0.0)], chunk_lookup=chunk_lookup
        )

        results = await search.search("parseConfig")

        assert results[0].chunk == sample_chunks[0]
        assert results[0].content == sample_chunks[0].content
        assert results[0].metadata.name == "parseConfig"

    @pytest.mark.asyncio
    async def test_async_chunk_lookup(self, sample_chunks):
        search = build_search(
            lexical_hits=[LexicalHit(id="read-file", score=1.0)],
            chunk_lookup=AsyncChunkLookup(sample_chunks),
        )

        results = await search.search("readFile")

        assert results[0].chunk.file_path == "src/fs/read.ts"

    @pytest.mark.asyncio
    async def test_falls_back_to_vector_metadata(self):
        metadata = {
            "name": "parseConfig",
            "chunk_type": "function",
            "file_path": "src/config/parse.ts",
            "language": "typescript",
            "content": "export function parseConfig() {}",
            "nl_summary": "Parses the config file",
        }
        search = build_search(vector_hits=[VectorHit(id="pc", score=0.0, metadata=metadata)])

        results = await search.search("parseConfig")

        result = results[0]
        assert result.content == "export function parseConfig() {}"
        assert result.nl_summary == "Parses the config file"
        assert result.metadata.name == "parseConfig"
        assert result.chunk.file_path == "src/config/parse.ts"

    @pytest.mark.asyncio
    async def test_falls_back_to_lexical_metadata(self):
        metadata = {
            "name": "readFile",
            "chunk_type": "function",
            "file_path": "src/fs/read.ts",
            "start_line": 4,
            "end_line": 12,
            "language": "typescript",
            "content": "export function readFile(path: string) {}",
        }
        search = build_search(lexical_hits=[LexicalHit(id="rf", score=1.0, metadata=metadata)])

        results = await search.search("readFile")

        chunk = results[0].chunk
        assert chunk.content == "export function readFile(path: string) {}"
        assert chunk.citation == "src/fs/read.ts:4-12"
        assert results[0].method == "bm25"

    @pytest.mark.asyncio
    async def test_vector_metadata_preferred_over_lexical(self):
        search = build_search(
            vector_hits=[VectorHit(id="A", score=0.0, metadata={"name": "fromVector"})],
            lexical_hits=[LexicalHit(id="A", score=1.0, metadata={"name": "fromLexical"})],
        )

        results = await search.search("query")

        assert results[0].metadata.name == "fromVector"

    @pytest.mark.asyncio
    async def test_metadata_defaults_for_bare_hit(self):
        search = build_search(lexical_hits=[LexicalHit(id="orphan", score=1.0)])

        results = await search.search("query")

        chunk = results[0].chunk
        assert chunk.id == "orphan"
        assert chunk.content == ""
        assert chunk.language == "unknown"
        assert chunk.metadata.chunk_type == "function"

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self, sample_chunks):
        ids = ["parse-config", "config-loader", "read-file"]
        search = build_search(
            vector_hits=[VectorHit(id=chunk_id, score=float(i)) for i, chunk_id in enumerate(ids)],
            chunk_lookup=AsyncChunkLookup(sample_chunks, slow=ids, delay=0.2),
            lookup_timeout=0.5,
        )

        # One lookup after another would need 0.6s
        results = await asyncio.wait_for(search.search("query"), timeout=0.5)

        assert [r.chunk_id for r in results] == ids

    @pytest.mark.asyncio
    async def test_missing_in_lookup_uses_metadata(self):
        search = build_search(
            vector_hits=[VectorHit(id="gone", score=0.0, metadata={"name": "gone"})],
            chunk_lookup=DictChunkLookup([make_chunk("other")]),
        )

        results = await search.search("query")

        assert results[0].metadata.name == "gone"

    @pytest.mark.asyncio
    async def test_lookup_failure_is_store_error(self, sample_chunks):
        search = build_search(
            vector_hits=[VectorHit(id="parse-config", score=0.0)],
            chunk_lookup=AsyncChunkLookup(sample_chunks, failing=["parse-config"]),
        )

        with pytest.raises(StoreError):
            await search.search("query")


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Any collaborator failure fails the whole search."""

    @pytest.mark.asyncio
    async def test_embed_failure(self):
        search = build_search(embedder=FakeEmbeddingProvider(error=RuntimeError("model crashed")))

        with pytest.raises(EmbedError) as exc_info:
            await search.search("query")

        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_embed_timeout(self):
        search = build_search(embedder=FakeEmbeddingProvider(delay=1.0), embed_timeout=0.01)

        with pytest.raises(EmbedError):
            await search.search("query")

    @pytest.mark.asyncio
    async def test_empty_embedding(self):
        search = build_search(embedder=FakeEmbeddingProvider(vector=()))

        with pytest.raises(EmbedError):
            await search.search("query")

    @pytest.mark.asyncio
    async def test_vector_store_failure(self):
        search = build_search(vector_store=FakeVectorStore(error=OSError("index unreadable")))

        with pytest.raises(StoreError):
            await search.search("query")

    @pytest.mark.asyncio
    async def test_vector_store_timeout(self):
        search = build_search(
            vector_store=FakeVectorStore([VectorHit(id="A", score=0.0)], delay=1.0),
            store_timeout=0.01,
        )

        with pytest.raises(StoreError) as exc_info:
            await search.search("query")

        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_lexical_failure_is_store_error(self):
        search = build_search(
            vector_hits=[VectorHit(id="A", score=0.0)],
            lexical_index=FakeLexicalIndex(error=ValueError("corrupt postings")),
        )

        with pytest.raises(StoreError):
            await search.search("query")

    @pytest.mark.asyncio
    async def test_lexical_timeout(self):
        search = build_search(lexical_index=FakeLexicalIndex(delay=1.0), store_timeout=0.01)

        with pytest.raises(StoreError):
            await search.search("query")

    @pytest.mark.asyncio
    async def test_chunk_lookup_timeout(self, sample_chunks):
        search = build_search(
            vector_hits=[VectorHit(id="parse-config", score=0.0), VectorHit(id="read-file", score=1.0)],
            chunk_lookup=AsyncChunkLookup(sample_chunks, slow=["read-file"], delay=3600.0),
            embed_timeout=0.1,
            store_timeout=0.1,
            lookup_timeout=0.1,
        )

        with pytest.raises(StoreError) as exc_info:
            await asyncio.wait_for(search.search("query"), timeout=2.0)

        assert "read-file" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_sibling_cancelled_on_failure(self):
        vector_store = FakeVectorStore([VectorHit(id="A", score=0.0)], delay=5.0)
        search = build_search(
            vector_store=vector_store,
            lexical_index=FakeLexicalIndex(error=ValueError("corrupt postings")),
        )

        with pytest.raises(StoreError):
            await search.search("query")

        assert not vector_store.completed
