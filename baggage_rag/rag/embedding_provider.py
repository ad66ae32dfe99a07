"""
Embedding provider abstraction with local sentence-transformers backend.

sentence-transformers and all-MiniLM-L6-v2 are core dependencies: the model
is downloaded once and then runs fully on-device.
"""

from __future__ import annotations

import hashlib
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from baggage_rag.errors import EmbeddingError, InitializationError

LOG = logging.getLogger("rag.embedding_provider")


class EmbeddingProvider(ABC):
    """Abstract interface for text → embedding vector conversion."""

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Convert a batch of texts into embedding vectors.

        Returns a list of float vectors, one per input text.
        """
        ...

    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimensionality."""
        ...

    def embed_single(self, text: str) -> list[float]:
        """
        Embed one text.

        Raises:
            EmbeddingError: the backend failed or returned no vector
        """
        try:
            vectors = self.embed([text])
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding failed: {exc}") from exc

        if not vectors:
            raise EmbeddingError("Embedding backend returned no vector")
        return vectors[0]

    def close(self) -> None:
        """Release resources. Override if needed."""
        pass


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Local embedding via sentence-transformers.

    Default model: all-MiniLM-L6-v2 (384 dimensions, fast, small enough for a laptop).
    Output vectors are L2-normalised so cosine and dot product agree.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: str | None = None) -> None:
        from sentence_transformers import SentenceTransformer

        self._model_name = model_name
        LOG.info("Loading embedding model: %s", model_name)
        try:
            self._model = SentenceTransformer(model_name, device=device)
        except Exception as exc:
            raise InitializationError(f"Could not load embedding model {model_name!r}: {exc}") from exc
        self._dim = self._model.get_sentence_embedding_dimension()

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        embeddings = self._model.encode(texts, show_progress_bar=False, normalize_embeddings=True)
        return [e.tolist() for e in embeddings]

    def dimension(self) -> int:
        return self._dim


class MockEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embedding provider for testing and offline development.

    Hashes lower-cased word tokens into a fixed number of buckets and
    normalises the counts, so texts sharing words get similar vectors.
    """

    _TOKEN = re.compile(r"[a-z0-9]+")

    def __init__(self, dim: int = 384) -> None:
        self._dim = dim

    def _bucket(self, token: str) -> int:
        digest = hashlib.md5(token.encode()).digest()
        return int.from_bytes(digest[:4], "little") % self._dim

    def _vector(self, text: str) -> list[float]:
        vec = np.zeros(self._dim, dtype=np.float64)
        for token in self._TOKEN.findall(text.lower()):
            vec[self._bucket(token)] += 1.0
        norm = np.linalg.norm(vec)
        if norm == 0:
            vec[0] = 1.0
            return vec.tolist()
        return (vec / norm).tolist()

    def embed(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def dimension(self) -> int:
        return self._dim


def build_embedding_provider(backend: str = "local", **kwargs: Any) -> EmbeddingProvider:
    """
    Factory: create an EmbeddingProvider of the requested type.

    Args:
        backend: "local" (sentence-transformers) or "mock"
        **kwargs: Backend-specific configuration

    Raises:
        ValueError: Unknown backend
    """
    if backend == "local":
        return LocalEmbeddingProvider(**kwargs)
    if backend == "mock":
        return MockEmbeddingProvider(**kwargs)
    raise ValueError(
        f"Unknown embedding backend: {backend!r}. "
        f"Supported: 'local', 'mock'"
    )
