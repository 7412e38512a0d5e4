"""Data models for the coderag retrieval core.

This package contains all Pydantic models passed between pipeline stages.
"""

from .chunk import Chunk, ChunkMetadata, ChunkType, create_chunk_from_dict
from .config import RetrievalConfig
from .graph import GraphEdge, GraphNode
from .query import AnalyzedQuery, QueryEntity, QueryIntent, SearchFilters
from .retrieval import (
    AssembledContext,
    ExcerptEdge,
    ExpandedContext,
    GraphExcerpt,
    RelatedChunk,
    RelationshipType,
    SearchMethod,
    SearchResult,
)

__all__ = [
    # Chunks
    "Chunk",
    "ChunkMetadata",
    "ChunkType",
    "create_chunk_from_dict",
    # Config
    "RetrievalConfig",
    # Graph
    "GraphNode",
    "GraphEdge",
    # Query analysis
    "AnalyzedQuery",
    "QueryEntity",
    "QueryIntent",
    "SearchFilters",
    # Retrieval
    "SearchMethod",
    "SearchResult",
    "RelationshipType",
    "RelatedChunk",
    "ExcerptEdge",
    "GraphExcerpt",
    "ExpandedContext",
    "AssembledContext",
]
