"""Relay of generation chunks to the HTTP response body."""

from __future__ import annotations

from typing import Iterable, Iterator

from ragchat.errors import StreamRelayError
from ragchat.metrics.observability import PipelineMetrics, get_logger

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def relay_stream(stream: Iterable[str], *, encoding: str = "utf-8") -> Iterator[bytes]:
    """Yield each generated chunk as bytes as soon as it arrives.

    Order is preserved and nothing is buffered beyond the current chunk. A
    failure in the source raises :class:`StreamRelayError`; bytes already
    yielded stay delivered. Closing this iterator early closes the source.
    """

    logger = get_logger("relay")
    chunk_count = 0
    outcome = "cancelled"
    try:
        for chunk in stream:
            if not chunk:
                continue
            chunk_count += 1
            yield chunk.encode(encoding)
        outcome = "completed"
    except Exception as exc:
        outcome = "failed"
        logger.error("relay.failed", chunk_count=chunk_count, error=str(exc))
        raise StreamRelayError(f"Generation stream failed after {chunk_count} chunks: {exc}") from exc
    finally:
        if outcome == "cancelled":
            close = getattr(stream, "close", None)
            if close is not None:
                close()
            logger.warning("relay.cancelled", chunk_count=chunk_count)
        elif outcome == "completed":
            logger.info("relay.complete", chunk_count=chunk_count)
        PipelineMetrics.record_relay(outcome, chunk_count)
