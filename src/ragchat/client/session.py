"""Client-side chat session: message list plus the streaming request cycle."""

from __future__ import annotations

import codecs
import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, List, Sequence
from uuid import uuid4

import httpx

from ragchat.models import Message, Role

LOGGER = logging.getLogger(__name__)

CHAT_ENDPOINT = "/api/chat"
ERROR_REPLY = "Sorry, there was an error processing your message."


class ChatClientError(RuntimeError):
    """Raised when the chat endpoint answers with a non-success status."""


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting-response"


def _new_message_id() -> str:
    return uuid4().hex


class ChatSession:
    """Owns the conversation shown to the user and drives one request at a time.

    ``submit`` appends the user's message and an empty assistant placeholder,
    posts the history and fills the placeholder while the reply streams in.
    Submissions made while a reply is pending are ignored; there is no queue
    and no cancellation. ``on_update`` receives the message list after every
    change.
    """

    def __init__(
        self,
        client: httpx.Client,
        *,
        endpoint: str = CHAT_ENDPOINT,
        on_update: Callable[[Sequence[Message]], None] | None = None,
        id_factory: Callable[[], str] = _new_message_id,
    ) -> None:
        self._client = client
        self._endpoint = endpoint
        self._on_update = on_update
        self._id_factory = id_factory
        self._messages: List[Message] = []
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def submit(self, text: str) -> bool:
        """Send ``text`` and stream the reply; return ``False`` if ignored."""

        if not text.strip() or self._state is SessionState.AWAITING_RESPONSE:
            return False
        self._state = SessionState.AWAITING_RESPONSE
        history = list(self._messages)
        user_message = Message(id=self._id_factory(), role=Role.USER, content=text)
        placeholder = Message(id=self._id_factory(), role=Role.ASSISTANT, content="")
        try:
            self._messages.extend([user_message, placeholder])
            self._notify()
            self._stream_reply([*history, user_message], placeholder.id)
        except Exception as exc:
            LOGGER.error("Chat request failed: %s", exc)
            self._set_content(placeholder.id, ERROR_REPLY)
        finally:
            self._state = SessionState.IDLE
            self._notify()
        return True

    def _stream_reply(self, history: Sequence[Message], placeholder_id: str) -> None:
        body = {"messages": [message.to_payload() for message in history]}
        with self._client.stream("POST", self._endpoint, json=body) as response:
            if not response.is_success:
                cid = response.headers.get("X-Correlation-ID", "-")
                raise ChatClientError(f"Chat request failed ({response.status_code}) [cid={cid}]")
            decoder = codecs.getincrementaldecoder("utf-8")()
            accumulated = ""
            for byte_chunk in response.iter_bytes():
                text = decoder.decode(byte_chunk)
                if not text:
                    continue
                accumulated += text
                self._set_content(placeholder_id, accumulated)
            tail = decoder.decode(b"", final=True)
            if tail:
                self._set_content(placeholder_id, accumulated + tail)

    def _set_content(self, message_id: str, content: str) -> None:
        # Full overwrite with the accumulated text, never an append.
        self._messages = [
            replace(message, content=content) if message.id == message_id else message
            for message in self._messages
        ]
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.messages)
