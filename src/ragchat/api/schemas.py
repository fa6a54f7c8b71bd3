"""Pydantic models for the RagChat API."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field

from ragchat.models import Message, Role

CHAT_FAILURE_MESSAGE = "Failed to process message"


class MessageModel(BaseModel):
    id: str = Field(..., description="Client-assigned message identifier")
    role: Literal["user", "assistant"]
    content: str

    def to_domain(self) -> Message:
        return Message(id=self.id, role=Role(self.role), content=self.content)


class ChatRequest(BaseModel):
    messages: List[MessageModel] = Field(
        ...,
        description="Full conversation history; only the last message is answered",
    )


class ChatErrorResponse(BaseModel):
    error: str = CHAT_FAILURE_MESSAGE
