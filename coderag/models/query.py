"""Query analysis models.

``AnalyzedQuery`` is the output of the pattern-based QueryAnalyzer. It is a
value: two analyses of the same query string compare equal.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["QueryIntent", "QueryEntity", "SearchFilters", "AnalyzedQuery"]


class QueryIntent(str, Enum):
    """Types of code search intents."""

    FIND_DEFINITION = "find_definition"
    """Where a symbol is defined or declared (e.g., 'where is Client defined')"""

    FIND_USAGE = "find_usage"
    """Who calls or references a symbol (e.g., 'callers of parseConfig')"""

    UNDERSTAND_MODULE = "understand_module"
    """How something works (e.g., 'explain the indexer module')"""

    FIND_SIMILAR = "find_similar"
    """Code resembling something else (e.g., 'similar to HybridSearch')"""

    GENERAL = "general"
    """Anything else"""


class QueryEntity(BaseModel):
    """A symbol or path mentioned in the query."""

    model_config = ConfigDict(frozen=True)

    type: Literal["class", "function", "file"]
    value: str


class SearchFilters(BaseModel):
    """Suggested search filters.

    ``None`` means the query expressed no opinion; callers can tell that
    apart from an explicit empty filter.
    """

    model_config = ConfigDict(frozen=True)

    languages: list[str] | None = None
    chunk_types: list[str] | None = None
    file_paths: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        """True when no filter was suggested."""
        return self.languages is None and self.chunk_types is None and self.file_paths is None


class AnalyzedQuery(BaseModel):
    """Structured understanding of a search query.

    Attributes:
        original_query: The query exactly as received
        intent: Detected search intent
        entities: Ordered, deduplicated symbols and paths
        suggested_filters: Language / chunk type / path filters
        expanded_terms: Ordered, deduplicated query tokens plus synonyms
    """

    model_config = ConfigDict(frozen=True)

    original_query: str
    intent: QueryIntent = QueryIntent.GENERAL
    entities: list[QueryEntity] = Field(default_factory=list)
    suggested_filters: SearchFilters = Field(default_factory=SearchFilters)
    expanded_terms: list[str] = Field(default_factory=list)
