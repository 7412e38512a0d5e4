"""End-to-end query-time retrieval pipeline.

Stages:
1. QueryAnalyzer (optional, advisory)
2. HybridSearch (required; errors propagate)
3. ContextExpander (optional; failure degrades to primary-only context)
4. CrossEncoderReRanker (optional; failure keeps the pre-rerank order)
5. TokenBudgetOptimizer (pure)

Every stage's output is a new value built inside ``run``; nothing is shared
between concurrent queries.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field

from coderag.errors import ReRankerError
from coderag.models.config import RetrievalConfig
from coderag.models.query import AnalyzedQuery
from coderag.models.retrieval import AssembledContext, ExpandedContext, SearchResult
from coderag.providers.base import (
    ChunkLookup,
    CrossEncoderModel,
    EmbeddingProvider,
    LexicalIndex,
    ReadonlyGraph,
    VectorStore,
)
from coderag.retrieval.context_expander import ContextExpander
from coderag.retrieval.cross_encoder_reranker import CrossEncoderReRanker
from coderag.retrieval.hybrid_search import HybridSearch
from coderag.retrieval.query_analyzer import QueryAnalyzer
from coderag.retrieval.token_budget import TokenBudgetOptimizer
from coderag.utils.aio import describe_error
from coderag.utils.timing import log_elapsed

logger = logging.getLogger(__name__)

__all__ = ["PipelineResult", "RetrievalPipeline"]


class PipelineResult(BaseModel):
    """Everything one query produced.

    Attributes:
        query: The query as given
        analysis: Query analysis (None when no analyzer is configured)
        primary_results: Hybrid search results, re-ranked when applied
        expanded: Primary results (in the same order as primary_results)
            plus related context
        reranked: Whether the re-ranker's order was applied
        context: Budget-constrained selection handed to the caller
        timings: Seconds spent per stage
    """

    model_config = ConfigDict(frozen=True)

    query: str
    analysis: AnalyzedQuery | None = None
    primary_results: list[SearchResult] = Field(default_factory=list)
    expanded: ExpandedContext = Field(default_factory=ExpandedContext)
    reranked: bool = False
    context: AssembledContext = Field(default_factory=AssembledContext)
    timings: dict[str, float] = Field(default_factory=dict)


class RetrievalPipeline:
    """Compose the retrieval stages for one query at a time.

    Example:
        >>> pipeline = RetrievalPipeline.create(embedder, store, bm25, graph=graph,
        ...                                     chunk_lookup=chunks)
        >>> result = await pipeline.run("where is HybridSearch defined")
        >>> [r.citation for r in result.context.selected_chunks]
    """

    def __init__(
        self,
        search: HybridSearch,
        *,
        config: RetrievalConfig | None = None,
        analyzer: QueryAnalyzer | None = None,
        expander: ContextExpander | None = None,
        reranker: CrossEncoderReRanker | None = None,
        optimizer: TokenBudgetOptimizer | None = None,
    ):
        self.search = search
        self.config = config or search.config
        self.analyzer = analyzer
        self.expander = expander
        self.reranker = reranker
        self.optimizer = optimizer or TokenBudgetOptimizer(self.config.budget_strategy)

    @classmethod
    def create(
        cls,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        lexical_index: LexicalIndex,
        *,
        graph: ReadonlyGraph | None = None,
        chunk_lookup: ChunkLookup | None = None,
        relevance_model: CrossEncoderModel | None = None,
        config: RetrievalConfig | None = None,
    ) -> "RetrievalPipeline":
        """Wire a pipeline from collaborators.

        Expansion is enabled when both graph and chunk_lookup are given;
        re-ranking when a relevance model is given and config enables it.
        """
        config = config or RetrievalConfig.from_settings()

        expander = None
        if graph is not None and chunk_lookup is not None:
            expander = ContextExpander(graph, chunk_lookup)

        reranker = None
        if relevance_model is not None and config.rerank_enabled:
            reranker = CrossEncoderReRanker(relevance_model, config.rerank_top_n)

        return cls(
            HybridSearch(
                embedding_provider, vector_store, lexical_index, config, chunk_lookup=chunk_lookup
            ),
            config=config,
            analyzer=QueryAnalyzer(),
            expander=expander,
            reranker=reranker,
            optimizer=TokenBudgetOptimizer(config.budget_strategy),
        )

    async def aclose(self) -> None:
        """Release the relevance model's resources (e.g. its HTTP client)."""
        if self.reranker is not None:
            close = getattr(self.reranker.model, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "RetrievalPipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def run(self, query: str) -> PipelineResult:
        """Run all configured stages for query.

        Raises:
            EmbedError: Embedding failed (search unavailable)
            StoreError: Vector store, lexical index or chunk lookup failed (search unavailable)
        """
        timings: dict[str, float] = {}

        analysis = None
        if self.analyzer is not None:
            with log_elapsed("query_analysis", timings):
                analysis = self.analyzer.analyze(query)
            logger.debug(f"Query intent: {analysis.intent.value}, entities: {len(analysis.entities)}")

        with log_elapsed("hybrid_search", timings):
            primary = await self.search.search(query, top_k=self.config.top_k)

        expanded = ExpandedContext(primary_results=primary)
        if self.expander is not None and primary:
            try:
                with log_elapsed("context_expansion", timings):
                    expanded = await self.expander.expand(
                        primary, self.config.max_depth, self.config.max_related
                    )
            except Exception as e:
                logger.warning(
                    f"Context expansion failed, using primary results only: {describe_error(e)}"
                )

        ranked_primary = primary
        reranked = False
        if self.reranker is not None and self.config.rerank_enabled and primary:
            try:
                with log_elapsed("rerank", timings):
                    ranked_primary = await self.reranker.rerank(query, primary)
                reranked = True
                expanded = expanded.model_copy(update={"primary_results": ranked_primary})
            except ReRankerError as e:
                logger.warning(f"Re-ranking failed, keeping hybrid order: {e}")

        with log_elapsed("token_budget", timings):
            context = self.optimizer.optimize(
                ranked_primary + expanded.related_as_results(), self.config.token_budget
            )

        logger.info(
            f"Pipeline complete: {len(primary)} primary, {len(expanded.related_chunks)} related, "
            f"{len(context.selected_chunks)} selected ({context.total_tokens} tokens"
            f"{', truncated' if context.truncated else ''})"
        )

        return PipelineResult(
            query=query,
            analysis=analysis,
            primary_results=ranked_primary,
            expanded=expanded,
            reranked=reranked,
            context=context,
            timings=timings,
        )
