"""
Abstract vector store interface with Chroma and in-memory backends.

chromadb is a core dependency and runs embedded (PersistentClient): no server
is needed and the index survives process restarts. The in-memory backend does
exact numpy search and is used in tests and for throwaway sessions.

The store is an explicitly opened handle shared by the indexer and the
retriever; there is no module-level singleton.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import numpy as np

from baggage_rag.errors import IndexCreationError, RetrievalError, VectorStoreError
from baggage_rag.rag.chunker import EmbeddedChunk

LOG = logging.getLogger("rag.vector_store")

SUPPORTED_METRICS = ("cosine", "l2")


@dataclass
class SearchResult:
    """A single retrieved chunk. Smaller distance means more similar."""

    text: str
    airline: str
    chunk_index: int
    distance: float


class VectorStore(ABC):
    """
    Abstract interface for chunk storage and similarity search.

    Subclasses implement the ``_put`` / ``_search`` / ``_count`` / ``_clear``
    primitives; this base class enforces the public contract:

    - ``put`` failures propagate as VectorStoreError
    - ``search`` never raises and returns ``[]`` on any internal failure
    - ``count`` returns 0 and ``clear_all`` does nothing on failure
    """

    def __init__(self, distance_metric: str = "cosine") -> None:
        if distance_metric not in SUPPORTED_METRICS:
            raise ValueError(
                f"Unsupported distance metric: {distance_metric!r}. "
                f"Supported: {', '.join(SUPPORTED_METRICS)}"
            )
        self._metric = distance_metric
        self._dimension: Optional[int] = None

    # ── lifecycle ─────────────────────────────────────────────────────────

    def open(self) -> None:
        """Acquire underlying resources. Override if needed."""
        pass

    def close(self) -> None:
        """Release resources. Override if needed."""
        pass

    def __enter__(self) -> "VectorStore":
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimension fixed by ``create_index_if_absent``, or None."""
        return self._dimension

    @property
    def distance_metric(self) -> str:
        return self._metric

    # ── index ─────────────────────────────────────────────────────────────

    @abstractmethod
    def create_index_if_absent(self, dimension: int, centroid_count: int) -> bool:
        """
        Create the similarity index unless it already exists.

        Returns True if the index already existed.

        Raises:
            IndexCreationError: invalid parameters, conflicting dimension,
                or the backend could not create the index
        """

    @staticmethod
    def _validate_index_params(dimension: int, centroid_count: int) -> None:
        if dimension < 1:
            raise IndexCreationError(f"Unsupported embedding dimension: {dimension}")
        if centroid_count < 1:
            raise IndexCreationError(f"Centroid count must be positive, got {centroid_count}")

    # ── records ───────────────────────────────────────────────────────────

    def put(self, chunk: EmbeddedChunk) -> None:
        """
        Upsert one embedded chunk by id.

        Raises:
            VectorStoreError: no index, wrong dimension, or backend failure
        """
        if self._dimension is None:
            raise VectorStoreError("Index has not been created; call create_index_if_absent first")
        if len(chunk.embedding) != self._dimension:
            raise VectorStoreError(
                f"Embedding dimension {len(chunk.embedding)} does not match index dimension {self._dimension}"
            )
        try:
            self._put(chunk)
        except VectorStoreError:
            raise
        except Exception as exc:
            LOG.error("Error storing document %s: %s", chunk.id, exc)
            raise VectorStoreError(f"Failed to store {chunk.id}: {exc}") from exc
        LOG.debug("Document stored: %s", chunk.id)

    def search(self, query_vector: Sequence[float], k: int = 3) -> list[SearchResult]:
        """Return up to k closest chunks, ascending by distance. Never raises."""
        if k < 1:
            return []
        try:
            results = self._search(query_vector, k)
        except Exception as exc:
            LOG.error("Error searching documents: %s", exc)
            return []
        LOG.debug("Found %d similar documents", len(results))
        return results

    def count(self) -> int:
        """Number of stored chunks; 0 if the backend cannot be queried."""
        try:
            return self._count()
        except Exception as exc:
            LOG.error("Error getting document count: %s", exc)
            return 0

    def clear_all(self) -> None:
        """Remove every stored chunk (best-effort)."""
        try:
            self._clear()
            LOG.info("All documents cleared")
        except Exception as exc:
            LOG.error("Error clearing documents: %s", exc)

    @abstractmethod
    def _put(self, chunk: EmbeddedChunk) -> None: ...

    @abstractmethod
    def _search(self, query_vector: Sequence[float], k: int) -> list[SearchResult]: ...

    @abstractmethod
    def _count(self) -> int: ...

    @abstractmethod
    def _clear(self) -> None: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChromaVectorStore(VectorStore):
    """
    Chroma-based vector store (core dependency).

    Uses an embedded PersistentClient when ``persist_directory`` is set,
    otherwise an in-process ephemeral client. The distance metric, embedding
    dimension and centroid count are recorded in the collection metadata;
    Chroma itself builds an HNSW graph, so the centroid count is kept only as
    an index parameter that must stay stable across runs.
    """

    def __init__(
        self,
        collection_name: str = "baggage_policies",
        persist_directory: Optional[str] = None,
        distance_metric: str = "cosine",
    ) -> None:
        super().__init__(distance_metric)
        self._collection_name = collection_name
        self._persist_directory = persist_directory
        self._client = None
        self._collection = None
        self._next_seq = 0

    def open(self) -> None:
        if self._client is not None:
            return

        import chromadb

        if self._persist_directory:
            Path(self._persist_directory).mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(path=self._persist_directory)
            LOG.info("Chroma: persistent at %s", self._persist_directory)
        else:
            self._client = chromadb.Client()
            LOG.info("Chroma: ephemeral (in-memory)")

    def close(self) -> None:
        self._collection = None
        self._client = None
        self._dimension = None
        LOG.debug("Chroma: closed %s", self._collection_name)

    def _require_client(self):
        if self._client is None:
            self.open()
        return self._client

    def _collection_names(self) -> set[str]:
        # list_collections() yields names on some chromadb releases and
        # Collection objects on others
        return {
            c if isinstance(c, str) else c.name
            for c in self._require_client().list_collections()
        }

    def create_index_if_absent(self, dimension: int, centroid_count: int) -> bool:
        self._validate_index_params(dimension, centroid_count)

        try:
            client = self._require_client()
            exists = self._collection_name in self._collection_names()
            if exists:
                collection = client.get_collection(name=self._collection_name)
            else:
                collection = client.create_collection(
                    name=self._collection_name,
                    metadata={
                        "hnsw:space": self._metric,
                        "dimension": dimension,
                        "centroids": centroid_count,
                    },
                )
        except Exception as exc:
            LOG.error("Error creating vector index: %s", exc)
            raise IndexCreationError(f"Could not create index {self._collection_name!r}: {exc}") from exc

        if exists:
            metadata = collection.metadata or {}
            stored_dim = metadata.get("dimension")
            if stored_dim is not None and int(stored_dim) != dimension:
                raise IndexCreationError(
                    f"Index {self._collection_name!r} was built for dimension {stored_dim}, "
                    f"embedding provider produces {dimension}"
                )
            LOG.info("Vector index already exists: %s", self._collection_name)
        else:
            LOG.info(
                "Vector index created: %s (dim=%d, centroids=%d, metric=%s)",
                self._collection_name, dimension, centroid_count, self._metric,
            )

        self._collection = collection
        self._dimension = dimension
        self._next_seq = self._max_seq() + 1
        return exists

    def _max_seq(self) -> int:
        metadatas = self._collection.get(include=["metadatas"])["metadatas"] or []
        return max((int((m or {}).get("seq", -1)) for m in metadatas), default=-1)

    def _put(self, chunk: EmbeddedChunk) -> None:
        existing = self._collection.get(ids=[chunk.id], include=["metadatas"])
        seq = None
        if existing["ids"] and existing["metadatas"]:
            seq = (existing["metadatas"][0] or {}).get("seq")
        if seq is None:
            seq = self._next_seq
            self._next_seq += 1

        self._collection.upsert(
            ids=[chunk.id],
            embeddings=[list(chunk.embedding)],
            documents=[chunk.text],
            metadatas=[
                {
                    "airline": chunk.airline,
                    "chunkIndex": chunk.chunk_index,
                    "timestamp": _now_ms(),
                    "seq": seq,
                }
            ],
        )

    def _search(self, query_vector: Sequence[float], k: int) -> list[SearchResult]:
        if self._collection is None:
            raise RetrievalError("Index has not been created")

        # Pull every record: HNSW picks an arbitrary subset among equal distances
        n = self._collection.count()
        if n == 0:
            return []

        results = self._collection.query(
            query_embeddings=[list(query_vector)],
            n_results=n,
            include=["documents", "metadatas", "distances"],
        )

        ranked: list[tuple[float, int, SearchResult]] = []
        if results and results["ids"]:
            for i, _doc_id in enumerate(results["ids"][0]):
                distance = max(0.0, float(results["distances"][0][i]))
                meta = results["metadatas"][0][i] or {}
                ranked.append(
                    (
                        distance,
                        int(meta.get("seq", 0)),
                        SearchResult(
                            text=results["documents"][0][i] or "",
                            airline=str(meta.get("airline", "")),
                            chunk_index=int(meta.get("chunkIndex", 0)),
                            distance=distance,
                        ),
                    )
                )

        ranked.sort(key=lambda item: (item[0], item[1]))
        return [result for _, _, result in ranked[:k]]

    def _count(self) -> int:
        if self._collection is None:
            return 0
        return self._collection.count()

    def _clear(self) -> None:
        if self._collection is None:
            return
        ids = self._collection.get(include=[])["ids"]
        if ids:
            self._collection.delete(ids=ids)


@dataclass
class _Record:
    chunk: EmbeddedChunk
    vector: np.ndarray
    seq: int
    timestamp: int


class InMemoryVectorStore(VectorStore):
    """
    Exact nearest-neighbour search over numpy arrays.

    Same contract as ChromaVectorStore but nothing is persisted. Distances
    match Chroma's conventions: cosine distance (1 - cos) or squared L2.
    """

    def __init__(self, distance_metric: str = "cosine") -> None:
        super().__init__(distance_metric)
        self._records: dict[str, _Record] = {}
        self._next_seq = 0
        self._centroid_count: Optional[int] = None

    def create_index_if_absent(self, dimension: int, centroid_count: int) -> bool:
        self._validate_index_params(dimension, centroid_count)
        if self._dimension is not None:
            if self._dimension != dimension:
                raise IndexCreationError(
                    f"Index was built for dimension {self._dimension}, got {dimension}"
                )
            return True
        self._dimension = dimension
        self._centroid_count = centroid_count
        LOG.info("In-memory index created (dim=%d, metric=%s)", dimension, self._metric)
        return False

    def _put(self, chunk: EmbeddedChunk) -> None:
        previous = self._records.get(chunk.id)
        if previous is not None:
            seq = previous.seq
        else:
            seq = self._next_seq
            self._next_seq += 1
        self._records[chunk.id] = _Record(
            chunk=chunk,
            vector=np.asarray(chunk.embedding, dtype=np.float64),
            seq=seq,
            timestamp=_now_ms(),
        )

    def _distances(self, matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
        if self._metric == "l2":
            diff = matrix - query
            return np.einsum("ij,ij->i", diff, diff)

        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            raise RetrievalError("Cannot compute cosine distance for a zero query vector")
        row_norms = np.linalg.norm(matrix, axis=1)
        dots = matrix @ query
        cosine = np.divide(dots, row_norms * query_norm, out=np.zeros_like(dots), where=row_norms > 0)
        return np.clip(1.0 - cosine, 0.0, None)

    def _search(self, query_vector: Sequence[float], k: int) -> list[SearchResult]:
        if not self._records:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        if query.shape != (self._dimension,):
            raise RetrievalError(
                f"Query dimension {query.shape[0] if query.ndim else 0} does not match index dimension {self._dimension}"
            )

        records = list(self._records.values())
        matrix = np.vstack([r.vector for r in records])
        distances = self._distances(matrix, query)
        seqs = np.array([r.seq for r in records])

        # lexsort: last key is primary
        order = np.lexsort((seqs, distances))[:k]
        return [
            SearchResult(
                text=records[i].chunk.text,
                airline=records[i].chunk.airline,
                chunk_index=records[i].chunk.chunk_index,
                distance=float(distances[i]),
            )
            for i in order
        ]

    def _count(self) -> int:
        return len(self._records)

    def _clear(self) -> None:
        self._records.clear()


def build_vector_store(
    backend: str = "chroma",
    **kwargs: Any,
) -> VectorStore:
    """
    Factory: create a VectorStore of the requested type.

    Args:
        backend: "chroma" or "memory"
        **kwargs: Backend-specific configuration

    Returns:
        VectorStore instance (not yet opened)

    Raises:
        ValueError: Unknown backend
    """
    if backend == "chroma":
        return ChromaVectorStore(**kwargs)
    if backend == "memory":
        return InMemoryVectorStore(**kwargs)
    raise ValueError(
        f"Unknown vector store backend: {backend!r}. "
        f"Supported: 'chroma', 'memory'"
    )
