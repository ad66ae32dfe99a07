"""
Query-time retrieval: embed the question, then nearest-neighbour search.

The blocking embedding and store calls run in worker threads so concurrent
queries do not stall the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from baggage_rag.rag.embedding_provider import EmbeddingProvider
from baggage_rag.rag.vector_store import SearchResult, VectorStore

LOG = logging.getLogger("rag.search")

DEFAULT_TOP_K = 3


class Retriever:
    """
    Stateless composition of an EmbeddingProvider and a VectorStore.

    Embedding failures propagate (no query vector, no query). Search failures
    are already absorbed by the store and surface as an empty list.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._embed = embedding_provider
        self._vs = vector_store
        self._top_k = top_k

    @property
    def top_k(self) -> int:
        return self._top_k

    async def embed(self, question: str) -> list[float]:
        """
        Embed the question.

        Raises:
            EmbeddingError: the embedding backend failed
        """
        query_vec = await asyncio.to_thread(self._embed.embed_single, question)
        LOG.debug("Generated query embedding (%d dims)", len(query_vec))
        return query_vec

    async def search(self, query_vec: list[float], k: Optional[int] = None) -> list[SearchResult]:
        results = await asyncio.to_thread(self._vs.search, query_vec, k or self._top_k)
        LOG.info("Retrieved %d chunks for query", len(results))
        return results

    async def retrieve(self, question: str, k: Optional[int] = None) -> list[SearchResult]:
        return await self.search(await self.embed(question), k)
