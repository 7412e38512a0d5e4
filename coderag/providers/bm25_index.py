"""BM25 lexical index over chunk text.

Code-aware tokenization:
- "HTTPClient" -> ["http", "client"]
- "get_user_by_id" -> ["get", "user", "by", "id"]
"""

import asyncio
import logging
import re
from collections.abc import Iterable
from typing import Any

from rank_bm25 import BM25Okapi

from coderag.models.chunk import Chunk
from coderag.providers.base import LexicalHit
from coderag.settings import BM25_MIN_TOKEN_LENGTH, BM25_SPLIT_CAMELCASE, BM25_SPLIT_SNAKE_CASE

logger = logging.getLogger(__name__)

__all__ = ["BM25LexicalIndex", "tokenize"]

# Pre-compiled regex patterns for tokenization
_CAMEL_CASE_PATTERN_1 = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")  # fooBar -> foo Bar
_CAMEL_CASE_PATTERN_2 = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")  # HTTPClient -> HTTP Client
_UNDERSCORE_PATTERN = re.compile(r"_+")
_NON_ALPHANUM_PATTERN = re.compile(r"[^a-zA-Z0-9_\s]")


def tokenize(text: str, min_length: int = BM25_MIN_TOKEN_LENGTH) -> list[str]:
    """Split identifiers into lower-cased word tokens of at least min_length."""
    text = _NON_ALPHANUM_PATTERN.sub(" ", text)

    if BM25_SPLIT_CAMELCASE:
        text = _CAMEL_CASE_PATTERN_1.sub(" ", text)
        text = _CAMEL_CASE_PATTERN_2.sub(" ", text)

    if BM25_SPLIT_SNAKE_CASE:
        text = _UNDERSCORE_PATTERN.sub(" ", text)

    return [token for token in text.lower().split() if len(token) >= min_length]


def _hit_metadata(chunk: Chunk) -> dict[str, Any]:
    """Flat chunk fields carried on each hit, same keys as vector metadata."""
    return {
        "name": chunk.metadata.name,
        "chunk_type": chunk.metadata.chunk_type,
        "file_path": chunk.file_path,
        "start_line": chunk.start_line,
        "end_line": chunk.end_line,
        "language": chunk.language,
        "content": chunk.content,
        "nl_summary": chunk.nl_summary,
    }


class BM25LexicalIndex:
    """In-memory BM25Okapi index built from already-indexed chunks.

    The corpus for each chunk is its name, summary and content, so a query
    naming a symbol matches the chunk that defines it.
    """

    def __init__(self, chunks: Iterable[Chunk]):
        self.chunk_ids: list[str] = []
        self._metadata: dict[str, dict[str, Any]] = {}
        corpus: list[list[str]] = []
        for chunk in chunks:
            self.chunk_ids.append(chunk.id)
            self._metadata[chunk.id] = _hit_metadata(chunk)
            corpus.append(
                tokenize(f"{chunk.metadata.name} {chunk.nl_summary} {chunk.content}")
            )

        # BM25Okapi divides by corpus size; an empty index answers nothing
        self._bm25 = BM25Okapi(corpus) if corpus else None
        logger.info(f"Built BM25 index over {len(self.chunk_ids)} chunks")

    def _search(self, text: str, top_k: int) -> list[LexicalHit]:
        tokens = tokenize(text)
        if self._bm25 is None or not tokens or top_k <= 0:
            return []

        scores = self._bm25.get_scores(tokens)
        ranked = sorted(
            (
                (chunk_id, float(score))
                for chunk_id, score in zip(self.chunk_ids, scores)
                if score > 0
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        return [
            LexicalHit(id=chunk_id, score=score, metadata=self._metadata[chunk_id])
            for chunk_id, score in ranked[:top_k]
        ]

    async def query(self, text: str, top_k: int) -> list[LexicalHit]:
        """Return up to top_k hits with a positive BM25 score, best first."""
        return await asyncio.to_thread(self._search, text, top_k)
