"""Streaming generation backends and the retrying generation client."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Iterator, Protocol

from ragchat.config import Settings
from ragchat.errors import GenerationServiceError
from ragchat.metrics.observability import PipelineMetrics, get_logger
from ragchat.retry import RetryPolicy, Sleep, call_with_retry

LOGGER = logging.getLogger(__name__)

_NO_CHUNK = object()


@dataclass(frozen=True)
class GenerationConfig:
    """Fixed sampling configuration for answer generation."""

    model: str = "gemini-1.5-flash-8b"
    temperature: float = 0.85
    top_p: float = 0.92
    top_k: int = 40
    max_output_tokens: int = 250


class GenerationBackend(Protocol):
    """Protocol describing streamed generation behaviour."""

    def stream(self, prompt: str) -> Iterable[str]:
        """Return the generated text for ``prompt`` as incremental chunks."""


class TemplateGenerator:
    """Simple deterministic generator used for tests and offline environments."""

    def stream(self, prompt: str) -> Iterator[str]:
        reply = (
            "No language model is configured for this deployment. "
            f"The assembled prompt was {len(prompt)} characters long."
        )
        words = reply.split(" ")
        for index, word in enumerate(words):
            yield word if index == len(words) - 1 else f"{word} "


class GeminiGenerator:
    """Generator streaming from the hosted Gemini chat model via LangChain."""

    def __init__(self, config: GenerationConfig, *, api_key: str) -> None:
        from langchain_google_genai import ChatGoogleGenerativeAI

        self._config = config
        # Retries are owned by GenerationClient; a single SDK attempt per call.
        self._client = ChatGoogleGenerativeAI(
            model=config.model,
            google_api_key=api_key,
            temperature=config.temperature,
            top_p=config.top_p,
            top_k=config.top_k,
            max_output_tokens=config.max_output_tokens,
            max_retries=1,
        )
        LOGGER.info("Using hosted generation model %s", config.model)

    def stream(self, prompt: str) -> Iterator[str]:
        for chunk in self._client.stream(prompt):
            text = chunk.content
            if isinstance(text, list):
                text = "".join(part if isinstance(part, str) else str(part.get("text", "")) for part in text)
            if text:
                yield text


def build_generation_backend(settings: Settings) -> GenerationBackend:
    if not settings.use_model_generator:
        LOGGER.info("Generation backend running in template-only mode.")
        return TemplateGenerator()
    api_key = settings.google_api_key_value
    if not api_key:
        LOGGER.warning("RAGCHAT_GOOGLE_API_KEY is not set; falling back to template generator.")
        return TemplateGenerator()
    config = GenerationConfig(
        model=settings.generator_model,
        temperature=settings.generator_temperature,
        top_p=settings.generator_top_p,
        top_k=settings.generator_top_k,
        max_output_tokens=settings.generator_max_output_tokens,
    )
    return GeminiGenerator(config, api_key=api_key)


class GenerationStream:
    """Live, single-pass handle over an upstream chunk iterator.

    The first chunk has already been received from the service when the handle
    is created; iterating yields it followed by the rest of the upstream output.
    """

    def __init__(self, chunks: Iterator[str], first: object = _NO_CHUNK) -> None:
        self._chunks = chunks
        self._first = first
        self._consumed = False

    def __iter__(self) -> Iterator[str]:
        if self._consumed:
            raise RuntimeError("GenerationStream can only be iterated once")
        self._consumed = True
        return self._iterate()

    def _iterate(self) -> Iterator[str]:
        if self._first is not _NO_CHUNK:
            first, self._first = self._first, _NO_CHUNK
            yield first
        yield from self._chunks

    def close(self) -> None:
        _close_quietly(self._chunks)


def _close_quietly(chunks: object) -> None:
    close = getattr(chunks, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception as exc:  # pragma: no cover - upstream cleanup failure
        LOGGER.warning("Failed to close generation stream: %s", exc)


class GenerationClient:
    """Opens a streamed generation with bounded fixed-delay retries."""

    def __init__(
        self,
        backend: GenerationBackend,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._backend = backend
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._logger = get_logger("generation")

    def open_stream(self, prompt: str) -> GenerationStream:
        start = time.perf_counter()
        try:
            stream = call_with_retry(
                lambda: self._attempt(prompt),
                policy=self._policy,
                stage="generation",
                sleep=self._sleep,
            )
        except Exception as exc:
            raise GenerationServiceError(f"Generation request failed: {exc}") from exc
        duration = time.perf_counter() - start
        PipelineMetrics.observe_generation(duration)
        self._logger.info("generation.started", duration_seconds=duration, prompt_chars=len(prompt))
        return stream

    def _attempt(self, prompt: str) -> GenerationStream:
        chunks = iter(self._backend.stream(prompt))
        try:
            first = next(chunks, _NO_CHUNK)
        except Exception:
            _close_quietly(chunks)
            raise
        return GenerationStream(chunks, first)
