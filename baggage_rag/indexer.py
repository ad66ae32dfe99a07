"""
One-time corpus ingestion.

Loads the policy documents, chunks them, embeds each chunk and stores it,
strictly one chunk at a time in emission order. A persisted flag records a
completed pass so later launches skip re-embedding; the flag is only set
after every chunk has been stored.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from baggage_rag.errors import BaggageRagError, InitializationError
from baggage_rag.models import IngestionReport
from baggage_rag.rag.chunker import DEFAULT_CHUNK_SIZE, Chunk, EmbeddedChunk, chunk_document
from baggage_rag.rag.corpus import load_corpus
from baggage_rag.rag.embedding_provider import EmbeddingProvider
from baggage_rag.rag.vector_store import VectorStore
from baggage_rag.storage.index_state import IndexStateStore

LOG = logging.getLogger("indexer")

ProgressCallback = Callable[[str], None]

DEFAULT_CENTROID_COUNT = 20


def _noop_progress(message: str) -> None:
    pass


class CorpusIndexer:
    """
    Build the vector index from the corpus directory, at most once.

    Usage::

        indexer = CorpusIndexer(store, embedder, IndexStateStore(path), "data/baggage_policies")
        report = indexer.index(on_progress=print)
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider,
        state: IndexStateStore,
        corpus_dir: str | Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        centroid_count: int = DEFAULT_CENTROID_COUNT,
        progress_every: int = 5,
    ) -> None:
        self._vs = vector_store
        self._embed = embedding_provider
        self._state = state
        self._corpus_dir = Path(corpus_dir)
        self._chunk_size = chunk_size
        self._centroid_count = centroid_count
        self._progress_every = max(1, progress_every)
        self.last_report: Optional[IngestionReport] = None

    @property
    def corpus_dir(self) -> Path:
        return self._corpus_dir

    def ensure_index(self) -> bool:
        """Create the vector index if needed. Returns True if it already existed."""
        return self._vs.create_index_if_absent(self._embed.dimension(), self._centroid_count)

    def load_chunks(self) -> tuple[int, list[Chunk]]:
        """Load and chunk the corpus. Returns (document count, chunks)."""
        documents = load_corpus(self._corpus_dir)
        chunks: list[Chunk] = []
        for doc in documents:
            doc_chunks = chunk_document(doc.airline, doc.text, self._chunk_size)
            LOG.info("Loaded %s: %d chunks", doc.airline, len(doc_chunks))
            chunks.extend(doc_chunks)
        LOG.info("Total chunks loaded: %d", len(chunks))
        return len(documents), chunks

    def index(self, on_progress: Optional[ProgressCallback] = None) -> IngestionReport:
        """
        Run the ingestion pass unless the persisted flag says it already ran.

        Raises:
            InitializationError: corpus missing/empty, index creation failed,
                or a chunk could not be embedded or stored
        """
        progress = on_progress or _noop_progress
        started = datetime.now(timezone.utc)

        progress("Initializing vector index...")
        already_existed = self.ensure_index()

        if self._state.is_indexed():
            total = self._vs.count()
            progress(f"Database ready with {total} documents")
            LOG.info("Documents already vectorized, skipping ingestion")
            return self._report(started, skipped=True, existed=already_existed, documents=0, stored=0, flag=True)

        progress("Loading baggage policy documents...")
        n_documents, chunks = self.load_chunks()
        if not chunks:
            raise InitializationError(f"Corpus in {self._corpus_dir} produced no chunks")

        progress("Vectorizing documents (this may take a few minutes)...")
        stored = 0
        for chunk in chunks:
            try:
                embedding = self._embed.embed_single(chunk.text)
                self._vs.put(EmbeddedChunk(chunk=chunk, embedding=embedding))
            except BaggageRagError as exc:
                LOG.error("Ingestion halted at %s after %d/%d chunks: %s", chunk.id, stored, len(chunks), exc)
                raise InitializationError(f"Failed to index {chunk.id}: {exc}") from exc
            stored += 1
            if stored % self._progress_every == 0:
                progress(f"Vectorizing documents... ({stored}/{len(chunks)})")

        flag_persisted = True
        try:
            self._state.mark_indexed()
        except OSError as exc:
            # Chunks are stored; the next launch re-ingests idempotently.
            LOG.error("Could not persist index state at %s: %s", self._state.path, exc)
            flag_persisted = False

        progress(f"Vectorization complete! {stored} chunks processed.")
        LOG.info("Documents vectorized and stored successfully (%d chunks)", stored)
        return self._report(
            started, skipped=False, existed=already_existed, documents=n_documents, stored=stored, flag=flag_persisted
        )

    def reset(self) -> None:
        """Clear the persisted flag so the next ``index()`` re-embeds the corpus."""
        self._state.reset()

    def rebuild(self, on_progress: Optional[ProgressCallback] = None) -> IngestionReport:
        """Drop all stored chunks and re-run ingestion from scratch."""
        self._vs.clear_all()
        self.reset()
        return self.index(on_progress=on_progress)

    def _report(
        self, started: datetime, *, skipped: bool, existed: bool, documents: int, stored: int, flag: bool
    ) -> IngestionReport:
        report = IngestionReport(
            skipped=skipped,
            indexAlreadyExisted=existed,
            documents=documents,
            chunksStored=stored,
            totalCount=self._vs.count(),
            flagPersisted=flag,
            startedAt=started,
            finishedAt=datetime.now(timezone.utc),
        )
        self.last_report = report
        return report
