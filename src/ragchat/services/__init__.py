"""Service layer orchestrations for RagChat."""

from .chat import ChatService
from .generation import (
    GeminiGenerator,
    GenerationBackend,
    GenerationClient,
    GenerationConfig,
    GenerationStream,
    TemplateGenerator,
    build_generation_backend,
)
from .prompt import PromptComposer, PromptComposerConfig
from .relay import STREAM_MEDIA_TYPE, relay_stream

__all__ = [
    "ChatService",
    "GeminiGenerator",
    "GenerationBackend",
    "GenerationClient",
    "GenerationConfig",
    "GenerationStream",
    "TemplateGenerator",
    "build_generation_backend",
    "PromptComposer",
    "PromptComposerConfig",
    "STREAM_MEDIA_TYPE",
    "relay_stream",
]
