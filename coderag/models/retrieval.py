"""Retrieval models for the query-time pipeline.

These are the values passed between pipeline stages. None of them is ever
mutated: later stages re-score by creating new ``SearchResult`` instances.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from coderag.models.chunk import Chunk, ChunkMetadata

__all__ = [
    "SearchMethod",
    "SearchResult",
    "RelationshipType",
    "RelatedChunk",
    "ExcerptEdge",
    "GraphExcerpt",
    "ExpandedContext",
    "AssembledContext",
]

SearchMethod = Literal["vector", "bm25", "hybrid"]


class SearchResult(BaseModel):
    """Retrieved chunk with its stage-specific score.

    Scores are only comparable within the stage that produced them.

    Attributes:
        chunk_id: Id of the embedded chunk
        content: Chunk source text
        nl_summary: Chunk natural-language summary (may be empty)
        score: Stage-specific relevance score
        method: Retrieval path that produced this result
        metadata: Chunk metadata
        chunk: The full chunk
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    content: str
    nl_summary: str = ""
    score: float
    method: SearchMethod
    metadata: ChunkMetadata
    chunk: Chunk

    @classmethod
    def from_chunk(cls, chunk: Chunk, score: float, method: SearchMethod) -> "SearchResult":
        """Wrap a chunk as a search result."""
        return cls(
            chunk_id=chunk.id,
            content=chunk.content,
            nl_summary=chunk.nl_summary,
            score=score,
            method=method,
            metadata=chunk.metadata,
            chunk=chunk,
        )

    def with_score(self, score: float) -> "SearchResult":
        """Return a copy carrying a new score; everything else is kept."""
        return self.model_copy(update={"score": score})

    @property
    def citation(self) -> str:
        """Citation string in format ``file_path:start_line-end_line``."""
        return self.chunk.citation


class RelationshipType(str, Enum):
    """How a related chunk connects to the primary results."""

    IMPORTS = "imports"
    IMPORTED_BY = "imported_by"
    CALLS = "calls"
    CALLED_BY = "called_by"
    EXTENDS = "extends"
    EXTENDED_BY = "extended_by"
    IMPLEMENTS = "implements"
    IMPLEMENTED_BY = "implemented_by"
    REFERENCES = "references"
    REFERENCED_BY = "referenced_by"
    RELATED = "related"


class RelatedChunk(BaseModel):
    """A chunk reached through the dependency graph."""

    model_config = ConfigDict(frozen=True)

    chunk: SearchResult
    relationship: RelationshipType
    distance: int = Field(..., ge=1, description="Hops from the nearest primary node")


class ExcerptEdge(BaseModel):
    """Edge of the graph excerpt (``from`` is a keyword, hence from_node)."""

    model_config = ConfigDict(frozen=True)

    from_node: str
    to_node: str
    type: str


class GraphExcerpt(BaseModel):
    """Subgraph induced over primary and related node ids."""

    model_config = ConfigDict(frozen=True)

    nodes: list[str] = Field(default_factory=list)
    edges: list[ExcerptEdge] = Field(default_factory=list)


class ExpandedContext(BaseModel):
    """Primary results plus graph-related chunks."""

    model_config = ConfigDict(frozen=True)

    primary_results: list[SearchResult] = Field(default_factory=list)
    related_chunks: list[RelatedChunk] = Field(default_factory=list)
    graph_excerpt: GraphExcerpt = Field(default_factory=GraphExcerpt)

    def related_as_results(self) -> list[SearchResult]:
        """Related chunks as plain results, in expansion order."""
        return [related.chunk for related in self.related_chunks]


class AssembledContext(BaseModel):
    """Budget-constrained selection of chunks.

    Attributes:
        selected_chunks: Ordered subset of the ranked input
        total_tokens: Sum of estimated token costs of the selection
        truncated: True if any candidate was left out for budget reasons
        related_chunks: Related chunks kept by ``assemble`` (empty for ``optimize``)
        content: Rendered markdown context (empty for ``optimize``)
    """

    model_config = ConfigDict(frozen=True)

    selected_chunks: list[SearchResult] = Field(default_factory=list)
    total_tokens: int = Field(default=0, ge=0)
    truncated: bool = False
    related_chunks: list[RelatedChunk] = Field(default_factory=list)
    content: str = ""
