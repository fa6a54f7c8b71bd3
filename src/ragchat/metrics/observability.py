"""Observability helpers for RagChat."""

from __future__ import annotations

import logging
import time
from typing import Callable

import structlog
from prometheus_client import Counter, Histogram

_logger_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = "ragchat") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class PipelineMetrics:
    """Prometheus metrics for pipeline stages."""

    embedding_latency = Histogram(
        "ragchat_embedding_duration_seconds",
        "Time spent embedding the latest user message.",
        buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    )
    search_latency = Histogram(
        "ragchat_search_duration_seconds",
        "Time spent querying the vector store.",
        buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0),
    )
    retrieved_document_count = Histogram(
        "ragchat_retrieved_document_count",
        "Number of documents returned by the vector store.",
        buckets=(0, 1, 2, 3, 5, 8),
    )
    generation_latency = Histogram(
        "ragchat_generation_first_chunk_seconds",
        "Time until the generation service produced its first chunk.",
        buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
    )
    retry_attempts = Counter(
        "ragchat_outbound_attempts_total",
        "Outbound call attempts by stage and outcome.",
        ["stage", "outcome"],
    )
    relayed_chunks = Counter(
        "ragchat_relayed_chunks_total",
        "Generation chunks forwarded to clients.",
    )
    relay_outcomes = Counter(
        "ragchat_relay_outcomes_total",
        "Finished relays by outcome.",
        ["outcome"],
    )

    @classmethod
    def observe_embedding(cls, duration_seconds: float) -> None:
        cls.embedding_latency.observe(duration_seconds)

    @classmethod
    def observe_search(cls, duration_seconds: float) -> None:
        cls.search_latency.observe(duration_seconds)

    @classmethod
    def observe_retrieved(cls, document_count: int) -> None:
        cls.retrieved_document_count.observe(document_count)

    @classmethod
    def observe_generation(cls, duration_seconds: float) -> None:
        cls.generation_latency.observe(duration_seconds)

    @classmethod
    def record_attempt(cls, stage: str, outcome: str) -> None:
        cls.retry_attempts.labels(stage=stage, outcome=outcome).inc()

    @classmethod
    def record_relay(cls, outcome: str, chunk_count: int) -> None:
        cls.relayed_chunks.inc(chunk_count)
        cls.relay_outcomes.labels(outcome=outcome).inc()


class TimedSection:
    """Context manager capturing elapsed time for metrics."""

    def __init__(self, callback: Callable[[float], None]) -> None:
        self._callback = callback
        self._start = 0.0

    def __enter__(self) -> "TimedSection":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        duration = time.perf_counter() - self._start
        self._callback(duration)


__all__ = [
    "PipelineMetrics",
    "TimedSection",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_logger",
]
