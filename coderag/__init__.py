"""Code-aware retrieval core: hybrid search, graph expansion, re-ranking and
token-budgeted context assembly over an already-indexed codebase."""

from coderag.errors import EmbedError, ReRankerError, RetrievalError, StoreError
from coderag.models import (
    AnalyzedQuery,
    AssembledContext,
    Chunk,
    ExpandedContext,
    RetrievalConfig,
    SearchResult,
)
from coderag.retrieval import (
    ContextExpander,
    CrossEncoderReRanker,
    HybridSearch,
    PipelineResult,
    QueryAnalyzer,
    RetrievalPipeline,
    TokenBudgetOptimizer,
)

__version__ = "0.1.0"

__all__ = [
    "RetrievalError",
    "EmbedError",
    "StoreError",
    "ReRankerError",
    "AnalyzedQuery",
    "AssembledContext",
    "Chunk",
    "ExpandedContext",
    "RetrievalConfig",
    "SearchResult",
    "QueryAnalyzer",
    "HybridSearch",
    "ContextExpander",
    "CrossEncoderReRanker",
    "TokenBudgetOptimizer",
    "RetrievalPipeline",
    "PipelineResult",
]
