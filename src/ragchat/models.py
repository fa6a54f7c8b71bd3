"""Shared domain models used across the RagChat pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """Single entry of a conversation history."""

    id: str
    role: Role
    content: str

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["role"] = self.role.value
        return payload


@dataclass(frozen=True)
class RetrievedDocument:
    """Document returned by the vector store for a query vector."""

    text: str
    document_id: str | None = None
    distance: float | None = None
