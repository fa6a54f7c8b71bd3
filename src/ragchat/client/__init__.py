"""Chat client for RagChat."""

from .session import CHAT_ENDPOINT, ERROR_REPLY, ChatClientError, ChatSession, SessionState

__all__ = ["CHAT_ENDPOINT", "ERROR_REPLY", "ChatClientError", "ChatSession", "SessionState"]
