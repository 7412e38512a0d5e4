"""Custom exceptions for the retrieval pipeline.

Only the collaborator-facing stages raise: HybridSearch (EmbedError,
StoreError) and CrossEncoderReRanker (ReRankerError). QueryAnalyzer,
ContextExpander and TokenBudgetOptimizer absorb bad input instead.
"""

__all__ = ["RetrievalError", "EmbedError", "StoreError", "ReRankerError"]


class RetrievalError(Exception):
    """Base class for retrieval stage failures."""

    def __init__(self, message: str, cause: BaseException | None = None):
        """Initialize retrieval error.

        Args:
            message: Human-readable error message
            cause: Underlying collaborator exception, if any
        """
        super().__init__(message)
        self.cause = cause


class EmbedError(RetrievalError):
    """Raised when the embedding provider fails or times out."""


class StoreError(RetrievalError):
    """Raised when the vector store or lexical index fails or times out."""


class ReRankerError(RetrievalError):
    """Raised when the relevance model fails; callers keep the prior ranking."""
