"""Runtime configuration loaded from environment variables."""

from .settings import AppConfig, GenerationConfig, RAGConfig

__all__ = ["AppConfig", "GenerationConfig", "RAGConfig"]
