"""Configuration management for baggage-rag.

Loads settings from environment variables with sensible defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class RAGConfig:
    """Corpus, embedding and vector index configuration."""
    corpus_dir: str = "./data/baggage_policies"
    vector_store_backend: str = "chroma"  # "chroma", "memory"
    chroma_persist_dir: str = "./data/chroma"
    collection_name: str = "baggage_policies"
    distance_metric: str = "cosine"  # "cosine", "l2"
    embedding_backend: str = "local"  # "local", "mock"
    embedding_model: str = "all-MiniLM-L6-v2"
    chunk_size: int = 512
    centroid_count: int = 20
    top_k: int = 3
    state_path: str = "./data/index_state.json"

    @classmethod
    def from_env(cls) -> "RAGConfig":
        return cls(
            corpus_dir=os.getenv("CORPUS_DIR", "./data/baggage_policies"),
            vector_store_backend=os.getenv("VECTOR_STORE_BACKEND", "chroma"),
            chroma_persist_dir=os.getenv("CHROMA_PERSIST_DIR", "./data/chroma"),
            collection_name=os.getenv("CHROMA_COLLECTION", "baggage_policies"),
            distance_metric=os.getenv("VECTOR_DISTANCE_METRIC", "cosine"),
            embedding_backend=os.getenv("EMBEDDING_BACKEND", "local"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2"),
            chunk_size=int(os.getenv("CHUNK_SIZE", "512")),
            centroid_count=int(os.getenv("INDEX_CENTROIDS", "20")),
            top_k=int(os.getenv("RAG_TOP_K", "3")),
            state_path=os.getenv("INDEX_STATE_PATH", "./data/index_state.json"),
        )


@dataclass
class GenerationConfig:
    """Local LLM configuration."""
    backend: str = "ollama"  # "ollama", "mock"
    base_url: str = "http://localhost:11434"
    model: str = "qwen2.5:1.5b-instruct"
    timeout: float = 120.0
    max_attempts: int = 4

    @classmethod
    def from_env(cls) -> "GenerationConfig":
        return cls(
            backend=os.getenv("GENERATION_BACKEND", "ollama"),
            base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            model=os.getenv("OLLAMA_MODEL", "qwen2.5:1.5b-instruct"),
            timeout=float(os.getenv("OLLAMA_TIMEOUT", "120")),
            max_attempts=int(os.getenv("GENERATION_MAX_ATTEMPTS", "4")),
        )


@dataclass
class AppConfig:
    """Top-level application configuration."""
    rag: RAGConfig = field(default_factory=RAGConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            rag=RAGConfig.from_env(),
            generation=GenerationConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
