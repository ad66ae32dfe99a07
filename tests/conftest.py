"""
Shared test fixtures and pytest configuration.

Markers:
    @pytest.mark.integration  — Requires real external services (Ollama, model downloads)
    @pytest.mark.embedding    — Requires sentence-transformers model downloadable

Run stringent tests:
    pytest -m integration             # all integration tests
    pytest -m embedding               # only embedding model tests
    pytest -m "not integration"       # skip all integration tests (fast CI)
"""

from typing import Optional

import httpx
import pytest

from baggage_rag.rag.embedding_provider import MockEmbeddingProvider
from baggage_rag.rag.vector_store import InMemoryVectorStore


def _embedding_model_available() -> bool:
    """Check if all-MiniLM-L6-v2 can be loaded (already cached or downloadable)."""
    try:
        from sentence_transformers import SentenceTransformer
        model = SentenceTransformer("all-MiniLM-L6-v2")
        vec = model.encode(["test"])
        return vec.shape[1] == 384
    except Exception:
        return False


def _ollama_available() -> bool:
    """Check if a local Ollama server answers on the default port."""
    try:
        return httpx.get("http://localhost:11434/api/tags", timeout=2.0).status_code == 200
    except httpx.HTTPError:
        return False


# Cache the checks at module level so they run once per session
_EMBEDDING_OK: Optional[bool] = None
_OLLAMA_OK: Optional[bool] = None


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: requires external services (Ollama, model downloads)")
    config.addinivalue_line("markers", "embedding: requires sentence-transformers model available")


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests whose infrastructure requirements are not met."""
    global _EMBEDDING_OK, _OLLAMA_OK

    needs_embedding = any("embedding" in item.keywords for item in items)
    needs_ollama = any("integration" in item.keywords for item in items)

    # Only evaluate once, and only if something asks for it
    if _EMBEDDING_OK is None and needs_embedding:
        _EMBEDDING_OK = _embedding_model_available()
    if _OLLAMA_OK is None and needs_ollama:
        _OLLAMA_OK = _ollama_available()

    skip_embedding = pytest.mark.skip(reason="Embedding model not available (all-MiniLM-L6-v2)")
    skip_ollama = pytest.mark.skip(reason="Ollama not reachable at localhost:11434")

    for item in items:
        if "embedding" in item.keywords and not _EMBEDDING_OK:
            item.add_marker(skip_embedding)
        if "integration" in item.keywords and not _OLLAMA_OK:
            item.add_marker(skip_ollama)


# ─── Fixtures ─────────────────────────────────────────────────────────────────

RYANAIR_POLICY = """Carry-on bag max 10kg.

Every passenger may bring one small personal bag that fits under the seat in front.
"""

EMIRATES_POLICY = """Emirates Baggage Policy

Economy Saver allows 25 kg of checked baggage, Economy Flex allows 30 kg.

No single piece of checked baggage may weigh more than 32 kg.
"""


@pytest.fixture
def embedder():
    """Deterministic hash-based embedding provider (no model download)."""
    return MockEmbeddingProvider(dim=384)


@pytest.fixture
def memory_store():
    """Fresh in-memory vector store, not yet indexed."""
    with InMemoryVectorStore() as store:
        yield store


@pytest.fixture
def corpus_dir(tmp_path):
    """Two-airline policy corpus on disk."""
    directory = tmp_path / "policies"
    directory.mkdir()
    (directory / "Ryanair.txt").write_text(RYANAIR_POLICY, encoding="utf-8")
    (directory / "Emirates.txt").write_text(EMIRATES_POLICY, encoding="utf-8")
    return directory
