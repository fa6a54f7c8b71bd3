"""Retrieval components."""

from .service import (
    VectorCollection,
    VectorSearch,
    VectorSearchClient,
    collection_from_settings,
    connect_collection,
)

__all__ = [
    "VectorCollection",
    "VectorSearch",
    "VectorSearchClient",
    "collection_from_settings",
    "connect_collection",
]
