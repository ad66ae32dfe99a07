"""
Application wiring.

Builds every collaborator from an AppConfig and exposes the three things a
front end needs: start (open the store and ingest), answer, close.

Usage::

    async with BaggageAssistant.from_config(AppConfig.from_env()) as assistant:
        await assistant.start(on_progress=print)
        print(await assistant.answer("What is the Ryanair carry-on limit?"))
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from baggage_rag.config import AppConfig
from baggage_rag.generation.llm_client import Generator
from baggage_rag.generation.local_llm import build_generator
from baggage_rag.generation.orchestrator import AnswerResult, GenerationOrchestrator
from baggage_rag.generation.prompt import DEFAULT_AIRLINES
from baggage_rag.indexer import CorpusIndexer, ProgressCallback
from baggage_rag.models import CorpusStatus, IngestionReport
from baggage_rag.rag.corpus import airlines_in
from baggage_rag.rag.embedding_provider import EmbeddingProvider, build_embedding_provider
from baggage_rag.rag.search import Retriever
from baggage_rag.rag.vector_store import VectorStore, build_vector_store
from baggage_rag.storage.index_state import IndexStateStore

LOG = logging.getLogger("app")


class BaggageAssistant:
    """Owns the embedder, vector store, generator and the pipelines built on them."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        generator: Generator,
        state: IndexStateStore,
        corpus_dir: str,
        chunk_size: int = 512,
        centroid_count: int = 20,
        top_k: int = 3,
        max_attempts: int = 4,
    ) -> None:
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.generator = generator
        self.state = state
        self.indexer = CorpusIndexer(
            vector_store,
            embedding_provider,
            state,
            corpus_dir,
            chunk_size=chunk_size,
            centroid_count=centroid_count,
        )
        self.retriever = Retriever(embedding_provider, vector_store, top_k=top_k)
        self.orchestrator = GenerationOrchestrator(
            self.retriever,
            generator,
            max_attempts=max_attempts,
            top_k=top_k,
            airlines=airlines_in(corpus_dir) or DEFAULT_AIRLINES,
        )
        self._opened = False

    @classmethod
    def from_config(cls, config: AppConfig, generator: Optional[Generator] = None) -> "BaggageAssistant":
        """Build every collaborator from ``config``; ``generator`` overrides the configured backend."""
        rag = config.rag
        gen = config.generation

        embed_kwargs: dict[str, Any] = {}
        if rag.embedding_backend == "local":
            embed_kwargs["model_name"] = rag.embedding_model
        embedder = build_embedding_provider(rag.embedding_backend, **embed_kwargs)

        store_kwargs: dict[str, Any] = {"distance_metric": rag.distance_metric}
        if rag.vector_store_backend == "chroma":
            store_kwargs["collection_name"] = rag.collection_name
            store_kwargs["persist_directory"] = rag.chroma_persist_dir
        store = build_vector_store(rag.vector_store_backend, **store_kwargs)

        if generator is None:
            gen_kwargs: dict[str, Any] = {}
            if gen.backend == "ollama":
                gen_kwargs.update(base_url=gen.base_url, model=gen.model, timeout=gen.timeout)
            generator = build_generator(gen.backend, **gen_kwargs)

        LOG.info(
            "Configured assistant: embedding=%s store=%s generator=%s",
            rag.embedding_backend,
            rag.vector_store_backend,
            type(generator).__name__,
        )
        return cls(
            embedder,
            store,
            generator,
            IndexStateStore(rag.state_path),
            rag.corpus_dir,
            chunk_size=rag.chunk_size,
            centroid_count=rag.centroid_count,
            top_k=rag.top_k,
            max_attempts=gen.max_attempts,
        )

    def _ensure_open(self) -> None:
        if not self._opened:
            self.vector_store.open()
            self._opened = True

    async def start(self, on_progress: Optional[ProgressCallback] = None) -> IngestionReport:
        """
        Open the vector store and ingest the corpus unless already done.

        Raises:
            InitializationError: the index could not be built
        """
        self._ensure_open()
        report = await asyncio.to_thread(self.indexer.index, on_progress)
        if not await self.generator.is_available():
            LOG.warning("Generation backend is not available; answers will fall back to apologies")
        return report

    async def rebuild(self, on_progress: Optional[ProgressCallback] = None) -> IngestionReport:
        self._ensure_open()
        return await asyncio.to_thread(self.indexer.rebuild, on_progress)

    async def reset(self) -> None:
        """Drop stored chunks and clear the persisted flag."""
        self._ensure_open()
        await asyncio.to_thread(self.vector_store.clear_all)
        self.indexer.reset()

    async def answer(self, question: str) -> str:
        return await self.orchestrator.answer(question)

    async def run(self, question: str) -> AnswerResult:
        return await self.orchestrator.run(question)

    def status(self) -> CorpusStatus:
        return CorpusStatus(
            corpusDir=str(self.indexer.corpus_dir),
            airlines=airlines_in(self.indexer.corpus_dir),
            indexed=self.state.is_indexed(),
            chunkCount=self.vector_store.count() if self._opened else 0,
            lastIngestion=self.indexer.last_report,
        )

    async def close(self) -> None:
        await self.generator.close()
        self.embedding_provider.close()
        if self._opened:
            self.vector_store.close()
            self._opened = False

    async def __aenter__(self) -> "BaggageAssistant":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
