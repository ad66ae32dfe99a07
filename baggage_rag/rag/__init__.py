"""
Retrieval subsystem: chunking, embedding, vector storage and search.

Provides the vector store abstraction (Chroma or in-memory), embedding
providers (sentence-transformers or deterministic mock) and the Retriever
used at query time.
"""

from __future__ import annotations
