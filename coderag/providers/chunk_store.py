"""Chunk store for resolving chunk ids to full chunks.

Loads chunks from the indexer's JSON output once and serves lookups from
memory. Lookups accept either a chunk id or a file path (graph nodes for
whole files are keyed by path).
"""

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from coderag.models.chunk import Chunk, create_chunk_from_dict

logger = logging.getLogger(__name__)

__all__ = ["ChunkStore"]


class ChunkStore:
    """Read-only in-memory chunk lookup.

    Attributes:
        chunks: chunk id -> Chunk
        chunks_by_file: file path -> chunks of that file, in load order
    """

    def __init__(self, chunks: Iterable[Chunk] = ()):
        self.chunks: dict[str, Chunk] = {}
        self.chunks_by_file: dict[str, list[Chunk]] = {}
        for chunk in chunks:
            self._add(chunk)

    @classmethod
    def from_json(cls, file_path: Path) -> "ChunkStore":
        """Load chunks from a JSON array file.

        Raises:
            OSError: File cannot be read
            pydantic.ValidationError: An entry is not a valid chunk
        """
        file_path = Path(file_path)
        try:
            with open(file_path, encoding="utf-8") as f:
                chunks_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load chunks from {file_path}: {e}")
            raise

        store = cls(create_chunk_from_dict(chunk_dict) for chunk_dict in chunks_data)
        logger.info(f"Loaded {len(store)} chunks from {file_path.name}")
        return store

    def _add(self, chunk: Chunk) -> None:
        self.chunks[chunk.id] = chunk
        if chunk.file_path:
            self.chunks_by_file.setdefault(chunk.file_path, []).append(chunk)

    def resolve(self, chunk_id: str) -> Chunk | None:
        """Resolve a chunk id, or a file path to that file's leading chunk.

        For a file path the module chunk is preferred, else the first chunk
        of the file. Unknown keys return None.
        """
        chunk = self.chunks.get(chunk_id)
        if chunk is not None:
            return chunk

        file_chunks = self.chunks_by_file.get(chunk_id)
        if not file_chunks:
            return None
        for candidate in file_chunks:
            if candidate.metadata.chunk_type == "module":
                return candidate
        return file_chunks[0]

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks.values())
