"""Validated retrieval configuration.

The pipeline treats this as already-sane input; validation happens once,
when the config object is built.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from coderag import settings

__all__ = ["RetrievalConfig"]


class RetrievalConfig(BaseModel):
    """Per-pipeline retrieval configuration.

    Attributes:
        top_k: Number of primary results returned by hybrid search
        vector_weight: Weight of the normalized vector score in fusion
        bm25_weight: Weight of the normalized lexical score in fusion
        fusion: "weighted" (normalized score sum) or "rrf" (reciprocal rank)
        max_depth: BFS hop limit for context expansion
        max_related: Maximum related chunks kept after expansion
        rerank_enabled: Whether the pipeline runs the re-ranker
        rerank_top_n: Prefix of candidates sent to the re-ranker
        token_budget: Token budget for the assembled context
        budget_strategy: "greedy" (skip and keep scanning) or "prefix"
    """

    model_config = ConfigDict(frozen=True)

    top_k: int = Field(default=settings.TOP_K, ge=1)
    vector_weight: float = Field(default=settings.VECTOR_WEIGHT, ge=0.0)
    bm25_weight: float = Field(default=settings.BM25_WEIGHT, ge=0.0)
    fusion: Literal["weighted", "rrf"] = settings.FUSION_STRATEGY
    max_depth: int = Field(default=settings.MAX_DEPTH, ge=0)
    max_related: int = Field(default=settings.MAX_RELATED, ge=0)
    rerank_enabled: bool = settings.RERANK_ENABLED
    rerank_top_n: int = Field(default=settings.RERANK_TOP_N, ge=1)
    token_budget: int = settings.TOKEN_BUDGET
    budget_strategy: Literal["greedy", "prefix"] = settings.BUDGET_STRATEGY

    @model_validator(mode="after")
    def validate_weights(self) -> "RetrievalConfig":
        """At least one retrieval signal must carry weight."""
        if self.vector_weight == 0.0 and self.bm25_weight == 0.0:
            raise ValueError("vector_weight and bm25_weight cannot both be 0")
        return self

    @classmethod
    def from_settings(cls) -> "RetrievalConfig":
        """Build a config from the environment-backed settings module."""
        return cls(
            top_k=settings.TOP_K,
            vector_weight=settings.VECTOR_WEIGHT,
            bm25_weight=settings.BM25_WEIGHT,
            fusion=settings.FUSION_STRATEGY,
            max_depth=settings.MAX_DEPTH,
            max_related=settings.MAX_RELATED,
            rerank_enabled=settings.RERANK_ENABLED,
            rerank_top_n=settings.RERANK_TOP_N,
            token_budget=settings.TOKEN_BUDGET,
            budget_strategy=settings.BUDGET_STRATEGY,
        )
