"""Embedding services."""

from .service import (
    EmbeddingBackend,
    EmbeddingClient,
    EmbeddingConfig,
    GeminiEmbeddingBackend,
    HashEmbeddingBackend,
    build_embedding_backend,
)

__all__ = [
    "EmbeddingBackend",
    "EmbeddingClient",
    "EmbeddingConfig",
    "GeminiEmbeddingBackend",
    "HashEmbeddingBackend",
    "build_embedding_backend",
]
