"""Query-time retrieval stages."""

from coderag.retrieval.context_expander import ContextExpander
from coderag.retrieval.cross_encoder_reranker import CrossEncoderReRanker
from coderag.retrieval.hybrid_search import HybridSearch
from coderag.retrieval.pipeline import PipelineResult, RetrievalPipeline
from coderag.retrieval.query_analyzer import QueryAnalyzer
from coderag.retrieval.token_budget import TokenBudgetOptimizer, estimate_tokens

__all__ = [
    "QueryAnalyzer",
    "HybridSearch",
    "ContextExpander",
    "CrossEncoderReRanker",
    "TokenBudgetOptimizer",
    "estimate_tokens",
    "RetrievalPipeline",
    "PipelineResult",
]
