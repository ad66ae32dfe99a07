"""Exception hierarchy shared by ingestion, retrieval and generation."""

from __future__ import annotations


class BaggageRagError(Exception):
    """Base exception for baggage-rag errors."""

    pass


class InitializationError(BaggageRagError):
    """Startup cannot continue (corpus missing, model unavailable, index failure)."""

    pass


class IndexCreationError(InitializationError):
    """The vector index could not be created for a reason other than already existing."""

    pass


class VectorStoreError(BaggageRagError):
    """A chunk could not be persisted to the vector store."""

    pass


class RetrievalError(BaggageRagError):
    """Similarity search failed inside the vector store."""

    pass


class EmbeddingError(BaggageRagError):
    """Text could not be converted into an embedding vector."""

    pass


class GenerationError(BaggageRagError):
    """The generation backend signalled a failure instead of returning text."""

    pass
