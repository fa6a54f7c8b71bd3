from __future__ import annotations

from typing import Callable, Iterator, Sequence

import pytest
from fastapi.testclient import TestClient

from ragchat.api.app import AppDependencies, create_app
from ragchat.config import Settings
from ragchat.embeddings import EmbeddingClient
from ragchat.retrieval import VectorSearchClient
from ragchat.retry import RetryPolicy
from ragchat.services.chat import ChatService
from ragchat.services.generation import GenerationClient


class StubEmbeddingBackend:
    def __init__(self, vector: Sequence[float] = (0.1, 0.2), error: Exception | None = None) -> None:
        self.vector = tuple(vector)
        self.error = error
        self.queries: list[str] = []

    def embed_query(self, query: str) -> tuple[float, ...]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.vector


class StubCollection:
    """Returns canned documents in the given order, shaped like a Chroma result."""

    def __init__(self, texts: Sequence[str] = (), error: Exception | None = None) -> None:
        self.texts = list(texts)
        self.error = error
        self.queries: list[dict] = []

    def query(self, **kwargs) -> dict:
        self.queries.append(kwargs)
        if self.error is not None:
            raise self.error
        texts = self.texts[: kwargs["n_results"]]
        return {
            "ids": [[f"doc-{index}" for index in range(len(texts))]],
            "documents": [texts],
            "distances": [[0.1 * index for index in range(len(texts))]],
        }

    def count(self) -> int:
        return len(self.texts)


class StubGenerator:
    """Streams canned chunks after failing a configurable number of attempts."""

    def __init__(
        self,
        chunks: Sequence[str] = ("Hi", " there"),
        *,
        failures: int = 0,
        error: Exception | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self.failures = failures
        self.error = error or ConnectionError("generation service unavailable")
        self.fail_after = fail_after
        self.prompts: list[str] = []

    def stream(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        return self._generate()

    def _generate(self) -> Iterator[str]:
        if self.failures > 0:
            self.failures -= 1
            raise self.error
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("stream interrupted")
            yield chunk


def build_dependencies(
    embedding_backend: StubEmbeddingBackend,
    collection: StubCollection,
    generator: StubGenerator,
    sleep: Callable[[float], None],
) -> AppDependencies:
    policy = RetryPolicy(attempts=3, delay_seconds=2.0)
    search = VectorSearchClient(collection, policy=policy, sleep=sleep)
    service = ChatService(
        embedder=EmbeddingClient(embedding_backend, policy, sleep=sleep),
        search=search,
        generator=GenerationClient(generator, policy, sleep=sleep),
    )
    return AppDependencies(chat_service=service, search=search)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def embedding_backend() -> StubEmbeddingBackend:
    return StubEmbeddingBackend()


@pytest.fixture
def collection() -> StubCollection:
    return StubCollection(["prior context line"])


@pytest.fixture
def generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def api_client(
    embedding_backend: StubEmbeddingBackend,
    collection: StubCollection,
    generator: StubGenerator,
    sleeps: list[float],
) -> TestClient:
    deps = build_dependencies(embedding_backend, collection, generator, sleeps.append)
    app = create_app(settings=Settings(environment="test"), dependencies=deps)
    return TestClient(app)
