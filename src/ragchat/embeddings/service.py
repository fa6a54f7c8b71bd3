"""Embedding backends and the query embedding client."""

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass
from typing import Protocol, Tuple

from langchain_core.embeddings import Embeddings as LangChainEmbeddings

from ragchat.config import Settings
from ragchat.errors import EmbeddingServiceError
from ragchat.metrics.observability import PipelineMetrics, TimedSection, get_logger
from ragchat.retry import RetryPolicy, Sleep, call_with_retry

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Configuration for embedding backends."""

    model: str = "models/text-embedding-004"
    dim: int = 768
    normalize: bool = True


class EmbeddingBackend(Protocol):
    """Protocol describing embedding behaviour."""

    def embed_query(self, query: str) -> Tuple[float, ...]:
        """Return embedding vector for a query string."""


class HashEmbeddingBackend:
    """Deterministic lightweight embedding fallback used for testing."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()

    def _hash_to_vector(self, text: str) -> Tuple[float, ...]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        repeat = (self._config.dim + len(digest) - 1) // len(digest)
        raw = (digest * repeat)[: self._config.dim]
        vector = [byte / 255.0 for byte in raw]
        if self._config.normalize:
            norm = math.sqrt(sum(value * value for value in vector)) or 1.0
            vector = [value / norm for value in vector]
        return tuple(vector)

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return self._hash_to_vector(query)


class GeminiEmbeddingBackend:
    """Embedding backend calling the hosted Gemini embedding model via LangChain."""

    def __init__(self, config: EmbeddingConfig, *, api_key: str) -> None:
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        self._config = config
        self._client: LangChainEmbeddings = GoogleGenerativeAIEmbeddings(model=config.model, google_api_key=api_key)
        LOGGER.info("Using hosted embedding model %s", config.model)

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return tuple(float(value) for value in self._client.embed_query(query))


def build_embedding_backend(settings: Settings) -> EmbeddingBackend:
    config = EmbeddingConfig(model=settings.embedding_model, dim=settings.embedding_dim)
    if not settings.use_model_embeddings:
        LOGGER.info("Embedding backend running in hash-only mode.")
        return HashEmbeddingBackend(config)
    api_key = settings.google_api_key_value
    if not api_key:
        LOGGER.warning("RAGCHAT_GOOGLE_API_KEY is not set; falling back to hash embeddings.")
        return HashEmbeddingBackend(config)
    return GeminiEmbeddingBackend(config, api_key=api_key)


class EmbeddingClient:
    """Turns the latest user message into a query vector."""

    def __init__(
        self,
        backend: EmbeddingBackend,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._backend = backend
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._logger = get_logger("embedding")

    def embed(self, text: str) -> Tuple[float, ...]:
        try:
            with TimedSection(PipelineMetrics.observe_embedding):
                vector = call_with_retry(
                    lambda: self._backend.embed_query(text),
                    policy=self._policy,
                    stage="embedding",
                    sleep=self._sleep,
                )
        except Exception as exc:
            raise EmbeddingServiceError(f"Embedding request failed: {exc}") from exc
        if not vector:
            raise EmbeddingServiceError("Embedding service returned an empty vector")
        self._logger.info("embedding.complete", dim=len(vector))
        return tuple(vector)
