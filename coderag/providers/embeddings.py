"""Query embeddings with a local sentence-transformers model."""

import asyncio
import logging

import numpy as np

from coderag.errors import EmbedError
from coderag.settings import EMBEDDING_MODEL

logger = logging.getLogger(__name__)

__all__ = ["SentenceTransformerEmbeddingProvider"]


class SentenceTransformerEmbeddingProvider:
    """Embed text with a SentenceTransformer model.

    Models are cached per name at class level so every provider instance
    (and every query) shares one loaded model. Encoding runs in a worker
    thread to keep the event loop free.
    """

    # model name -> loaded SentenceTransformer
    _models: dict = {}

    def __init__(self, model_name: str = EMBEDDING_MODEL):
        self.model_name = model_name

    @classmethod
    def _get_model(cls, model_name: str):
        """Get cached embedding model (lazy-loaded)."""
        if model_name not in cls._models:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {model_name}")
            cls._models[model_name] = SentenceTransformer(model_name)
            logger.info("Embedding model loaded successfully")

        return cls._models[model_name]

    def _encode(self, text: str) -> list[float]:
        model = self._get_model(self.model_name)
        embedding = np.asarray(model.encode(text), dtype=np.float32)
        return embedding.tolist()

    async def embed(self, text: str) -> list[float]:
        """Embed text.

        Raises:
            EmbedError: Model failed to load or encode
        """
        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as e:
            logger.error(f"Embedding failed with {self.model_name}: {e}")
            raise EmbedError(f"Embedding model {self.model_name} failed: {e}", e) from e
