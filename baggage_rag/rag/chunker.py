"""
Paragraph-based document chunking.

Policy documents are split on blank lines and paragraphs are packed into
chunks of roughly ``max_size`` characters. A paragraph is never split: one
that reaches ``max_size`` on its own becomes its own (possibly oversized)
chunk.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

LOG = logging.getLogger("rag.chunker")

DEFAULT_CHUNK_SIZE = 512  # characters
PARAGRAPH_SEPARATOR = "\n\n"

_BLANK_LINE = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class Chunk:
    """A bounded excerpt of one airline's policy document."""

    id: str
    airline: str
    chunk_index: int
    text: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def make_id(airline: str, chunk_index: int) -> str:
        return f"{airline}_chunk_{chunk_index}"

    @classmethod
    def create(cls, airline: str, chunk_index: int, text: str) -> "Chunk":
        if not text:
            raise ValueError("Chunk text must not be empty")
        return cls(
            id=cls.make_id(airline, chunk_index),
            airline=airline,
            chunk_index=chunk_index,
            text=text,
        )


@dataclass(frozen=True)
class EmbeddedChunk:
    """A chunk together with its embedding vector, ready for the vector store."""

    chunk: Chunk
    embedding: list[float]

    @property
    def id(self) -> str:
        return self.chunk.id

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def airline(self) -> str:
        return self.chunk.airline

    @property
    def chunk_index(self) -> int:
        return self.chunk.chunk_index


def split_paragraphs(text: str) -> list[str]:
    """Split text on blank lines, dropping blank paragraphs and trimming the rest."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return [p.strip() for p in _BLANK_LINE.split(normalized) if p.strip()]


def chunk_text(text: str, max_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Pack the paragraphs of ``text`` into ordered chunks.

    Before a paragraph is appended, a non-empty buffer is flushed if the
    paragraph would push it past ``max_size``. After appending, a buffer at
    or above ``max_size`` is flushed immediately. Chunks are never truncated.
    """
    if max_size < 1:
        raise ValueError(f"max_size must be positive, got {max_size}")

    chunks: list[str] = []
    buffer = ""

    for paragraph in split_paragraphs(text):
        if buffer and len(buffer) + len(paragraph) > max_size:
            chunks.append(buffer)
            buffer = ""

        buffer = f"{buffer}{PARAGRAPH_SEPARATOR}{paragraph}" if buffer else paragraph

        if len(buffer) >= max_size:
            chunks.append(buffer)
            buffer = ""

    if buffer:
        chunks.append(buffer)

    return chunks


def chunk_document(airline: str, text: str, max_size: int = DEFAULT_CHUNK_SIZE) -> list[Chunk]:
    """Chunk one airline's document, numbering chunks 0..n-1 in emission order."""
    chunks = [
        Chunk.create(airline, index, piece)
        for index, piece in enumerate(chunk_text(text, max_size))
    ]
    LOG.debug("Chunked %s into %d chunks", airline, len(chunks))
    return chunks
