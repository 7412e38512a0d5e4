"""Collaborator interfaces consumed by the retrieval core.

Any object with the right methods is accepted (structural typing); concrete
collaborators are injected when the pipeline is constructed.
"""

from typing import Any, Awaitable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from coderag.models.chunk import Chunk
from coderag.models.graph import GraphEdge, GraphNode

__all__ = [
    "VectorHit",
    "LexicalHit",
    "EmbeddingProvider",
    "VectorStore",
    "LexicalIndex",
    "ChunkLookup",
    "ReadonlyGraph",
    "CrossEncoderModel",
]


class VectorHit(BaseModel):
    """Vector store match. ``score`` is a distance: lower is closer."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class LexicalHit(BaseModel):
    """Lexical index match. ``score`` is unbounded: higher is better."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> list[float]: ...


class VectorStore(Protocol):
    async def query(self, vector: list[float], top_k: int) -> list[VectorHit]: ...


class LexicalIndex(Protocol):
    async def query(self, text: str, top_k: int) -> list[LexicalHit]: ...


class ChunkLookup(Protocol):
    """Resolve a chunk id. May be sync or async; absence is not an error."""

    def resolve(self, chunk_id: str) -> Chunk | None | Awaitable[Chunk | None]: ...


class ReadonlyGraph(Protocol):
    def get_node(self, node_id: str) -> GraphNode | None: ...

    def get_edges(self, node_id: str) -> list[GraphEdge]: ...

    def get_incoming_edges(self, node_id: str) -> list[GraphEdge]: ...


class CrossEncoderModel(Protocol):
    async def score(self, query: str, document: str) -> float: ...
