"""Nearest-neighbour retrieval against a Chroma collection."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, Sequence

import chromadb
from chromadb.api import ClientAPI

from ragchat.config import MAX_SEARCH_LIMIT, Settings
from ragchat.errors import SearchServiceError
from ragchat.metrics.observability import PipelineMetrics, TimedSection, get_logger
from ragchat.models import RetrievedDocument
from ragchat.retry import RetryPolicy, Sleep, call_with_retry


class VectorCollection(Protocol):
    """Subset of the Chroma collection API used for retrieval."""

    def query(self, *, query_embeddings: Any, n_results: int, include: Any) -> Mapping[str, Any]:
        """Return the nearest stored records for each query embedding."""

    def count(self) -> int:
        """Return number of stored records."""


class VectorSearch(Protocol):
    """Retrieve the documents closest to a query vector."""

    def search(self, vector: Sequence[float]) -> Sequence[RetrievedDocument]:
        """Return documents ranked by the store's similarity metric."""


def connect_collection(
    collection_name: str,
    *,
    client: ClientAPI | None = None,
    persist_directory: str | Path | None = None,
) -> VectorCollection:
    if client is None:
        if persist_directory is not None:
            client = chromadb.PersistentClient(path=str(persist_directory))
        else:
            client = chromadb.EphemeralClient()
    return client.get_or_create_collection(
        name=collection_name,
        metadata={"hnsw:space": "cosine"},
    )


def collection_from_settings(settings: Settings) -> VectorCollection:
    client = None
    if settings.chroma_host:
        client = chromadb.HttpClient(
            host=settings.chroma_host,
            port=settings.chroma_port or 8000,
            ssl=settings.chroma_ssl,
        )
    return connect_collection(
        settings.chroma_collection,
        client=client,
        persist_directory=None if client else settings.chroma_persist_dir,
    )


class VectorSearchClient:
    """Queries the whole collection with a vector and relays the store's ranking.

    Similarity is computed by the store; results are returned in the order the
    store gives them. No metadata filter is applied.
    """

    def __init__(
        self,
        collection: VectorCollection,
        *,
        limit: int = MAX_SEARCH_LIMIT,
        policy: RetryPolicy | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._collection = collection
        self._limit = max(1, min(limit, MAX_SEARCH_LIMIT))
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._logger = get_logger("retrieval")

    @property
    def limit(self) -> int:
        return self._limit

    def search(self, vector: Sequence[float]) -> Sequence[RetrievedDocument]:
        query_vector = [float(value) for value in vector]
        try:
            with TimedSection(PipelineMetrics.observe_search):
                results = call_with_retry(
                    lambda: self._collection.query(
                        query_embeddings=[query_vector],
                        n_results=self._limit,
                        include=["documents", "distances"],
                    ),
                    policy=self._policy,
                    stage="search",
                    sleep=self._sleep,
                )
        except Exception as exc:
            raise SearchServiceError(f"Vector search failed: {exc}") from exc
        documents = self._deserialize_results(results)[: self._limit]
        PipelineMetrics.observe_retrieved(len(documents))
        self._logger.info("search.complete", document_count=len(documents), limit=self._limit)
        return documents

    def count(self) -> int:
        return int(self._collection.count())

    def _deserialize_results(self, results: Mapping[str, Any]) -> list[RetrievedDocument]:
        ids = list(self._first(results.get("ids")))
        documents = list(self._first(results.get("documents")))
        distances = list(self._first(results.get("distances")))
        retrieved: list[RetrievedDocument] = []
        for index, text in enumerate(documents):
            retrieved.append(
                RetrievedDocument(
                    text=text or "",
                    document_id=str(ids[index]) if index < len(ids) else None,
                    distance=float(distances[index]) if index < len(distances) and distances[index] is not None else None,
                )
            )
        return retrieved

    @staticmethod
    def _first(value: object) -> Iterable:
        if isinstance(value, list) and value:
            return value[0] or []
        return []
