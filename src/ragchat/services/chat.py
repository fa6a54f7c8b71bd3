"""Chat orchestration combining embedding, retrieval, prompting and generation."""

from __future__ import annotations

from typing import Sequence

from ragchat.embeddings import EmbeddingClient
from ragchat.errors import MalformedRequestError
from ragchat.metrics.observability import get_logger
from ragchat.models import Message
from ragchat.retrieval import VectorSearch
from ragchat.services.generation import GenerationClient, GenerationStream
from ragchat.services.prompt import PromptComposer


class ChatService:
    """Runs every step that must succeed before a reply starts streaming."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        search: VectorSearch,
        generator: GenerationClient,
        composer: PromptComposer | None = None,
    ) -> None:
        self._embedder = embedder
        self._search = search
        self._generator = generator
        self._composer = composer or PromptComposer()
        self._logger = get_logger("chat")

    def open_stream(self, messages: Sequence[Message]) -> GenerationStream:
        """Answer the last message of ``messages`` with a live generation stream.

        Only the latest message is consulted; earlier history is ignored.
        """

        if not messages:
            raise MalformedRequestError("Conversation history is empty")
        latest = messages[-1].content
        if not latest.strip():
            raise MalformedRequestError("Latest message has no content")
        self._logger.info("chat.received", history_length=len(messages), message_chars=len(latest))
        vector = self._embedder.embed(latest)
        documents = self._search.search(vector)
        prompt = self._composer.compose(documents, latest)
        return self._generator.open_stream(prompt)
