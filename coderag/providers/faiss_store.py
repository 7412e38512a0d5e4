"""FAISS vector store adapter.

Reads an index written by the indexer plus its position -> chunk id mapping
and serves nearest-neighbour queries. The index is never modified here.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import faiss
import numpy as np

from coderag.errors import StoreError
from coderag.providers.base import VectorHit
from coderag.settings import EMBEDDING_DIM

logger = logging.getLogger(__name__)

__all__ = ["FAISSVectorStore"]


class FAISSVectorStore:
    """Nearest-neighbour search over a FAISS index loaded from disk.

    Hit scores are raw L2 distances (lower is closer); normalization to a
    similarity happens during fusion.

    Attributes:
        index: Loaded FAISS index
        position_to_id: FAISS position -> chunk id
        metadata: Optional chunk id -> flat metadata dict returned with hits
    """

    def __init__(
        self,
        index: faiss.Index,
        position_to_id: dict[int, str],
        metadata: dict[str, dict[str, Any]] | None = None,
        dimension: int = EMBEDDING_DIM,
    ):
        if index.d != dimension:
            raise StoreError(
                f"FAISS index dimension {index.d} does not match expected {dimension}"
            )
        self.index = index
        self.position_to_id = position_to_id
        self.metadata = metadata or {}
        self.dimension = dimension

    @classmethod
    def load(
        cls,
        index_path: Path,
        mapping_path: Path,
        metadata_path: Path | None = None,
        dimension: int = EMBEDDING_DIM,
    ) -> "FAISSVectorStore":
        """Load index, id mapping and optional metadata from disk.

        Args:
            index_path: FAISS index file (e.g. data/index/code_faiss.index)
            mapping_path: JSON object of position -> chunk id
            metadata_path: JSON object of chunk id -> metadata dict
            dimension: Expected embedding dimension

        Raises:
            StoreError: A file is missing or unreadable, or the dimension
                does not match
        """
        index_path = Path(index_path)
        mapping_path = Path(mapping_path)

        try:
            logger.info(f"Loading FAISS index from {index_path}")
            index = faiss.read_index(str(index_path))

            with open(mapping_path, encoding="utf-8") as f:
                # JSON keys are strings, convert position keys to int
                position_to_id = {int(pos): chunk_id for pos, chunk_id in json.load(f).items()}

            metadata = None
            if metadata_path is not None:
                with open(metadata_path, encoding="utf-8") as f:
                    metadata = json.load(f)
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Failed to load FAISS store from {index_path}: {e}")
            raise StoreError(f"Failed to load FAISS store from {index_path}: {e}", e) from e

        logger.info(
            f"Loaded {type(index).__name__} index: {index.ntotal} vectors, dim={index.d}, "
            f"{len(position_to_id)} mapped ids"
        )
        return cls(index, position_to_id, metadata, dimension)

    def _search(self, vector: list[float], top_k: int) -> list[VectorHit]:
        query_vector = np.asarray(vector, dtype=np.float32)
        if query_vector.shape != (self.dimension,):
            raise StoreError(
                f"Query vector must be {self.dimension}-dimensional, got {query_vector.shape}"
            )

        k = min(top_k, self.index.ntotal)
        if k <= 0:
            return []

        distances, positions = self.index.search(query_vector.reshape(1, -1), k)

        hits = []
        for dist, pos in zip(distances[0], positions[0]):
            # FAISS pads with -1 when fewer than k vectors are reachable
            if pos < 0:
                continue
            chunk_id = self.position_to_id.get(int(pos))
            if chunk_id:
                hits.append(
                    VectorHit(id=chunk_id, score=float(dist), metadata=self.metadata.get(chunk_id, {}))
                )
        return hits

    async def query(self, vector: list[float], top_k: int) -> list[VectorHit]:
        """Return up to top_k hits ordered by ascending distance.

        Raises:
            StoreError: Dimension mismatch or FAISS failure
        """
        return await asyncio.to_thread(self._search, vector, top_k)
