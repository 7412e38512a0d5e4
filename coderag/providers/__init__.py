"""Collaborator interfaces and the adapters that implement them.

Adapters importing heavy libraries (faiss, sentence-transformers) are not
imported here; import them from their modules.
"""

from coderag.providers.base import (
    ChunkLookup,
    CrossEncoderModel,
    EmbeddingProvider,
    LexicalHit,
    LexicalIndex,
    ReadonlyGraph,
    VectorHit,
    VectorStore,
)
from coderag.providers.chunk_store import ChunkStore
from coderag.providers.graph import DependencyGraph

__all__ = [
    "VectorHit",
    "LexicalHit",
    "EmbeddingProvider",
    "VectorStore",
    "LexicalIndex",
    "ChunkLookup",
    "ReadonlyGraph",
    "CrossEncoderModel",
    "ChunkStore",
    "DependencyGraph",
]
