"""Error taxonomy for the chat pipeline."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base class for failures while answering a chat message."""


class MalformedRequestError(ChatError):
    """Raised when the request carries no usable latest message."""


class EmbeddingServiceError(ChatError):
    """Raised when the embedding service fails or returns no vector."""


class SearchServiceError(ChatError):
    """Raised when the vector store query fails."""


class GenerationServiceError(ChatError):
    """Raised when the generation service fails on every attempt."""


class StreamRelayError(ChatError):
    """Raised when the generation stream fails after the response has started."""


__all__ = [
    "ChatError",
    "EmbeddingServiceError",
    "GenerationServiceError",
    "MalformedRequestError",
    "SearchServiceError",
    "StreamRelayError",
]
