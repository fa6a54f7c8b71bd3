"""Bounded fixed-delay retry shared by every outbound service call."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from ragchat.metrics.observability import PipelineMetrics, get_logger

T = TypeVar("T")

Sleep = Callable[[float], None]

# Bad input or programming errors; another attempt cannot succeed.
TERMINAL_ERRORS: tuple[type[BaseException], ...] = (ValueError, TypeError)


@dataclass(frozen=True)
class RetryPolicy:
    """Number of attempts and the fixed pause between them."""

    attempts: int = 3
    delay_seconds: float = 2.0


def is_retryable(exc: BaseException) -> bool:
    return not isinstance(exc, TERMINAL_ERRORS)


def call_with_retry(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    stage: str,
    retryable: Callable[[BaseException], bool] = is_retryable,
    sleep: Sleep = time.sleep,
) -> T:
    """Run ``operation`` up to ``policy.attempts`` times, sequentially.

    A failed attempt is followed by a pause of ``policy.delay_seconds`` unless it
    was the last one or the error is not retryable, in which case the error
    propagates unchanged. No jitter and no exponential growth.
    """

    logger = get_logger("retry")
    attempts = max(1, policy.attempts)
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
        except Exception as exc:
            remaining = attempts - attempt
            PipelineMetrics.record_attempt(stage, "failure")
            if remaining == 0 or not retryable(exc):
                logger.error(
                    "retry.gave_up",
                    stage=stage,
                    attempt=attempt,
                    retryable=retryable(exc),
                    error=str(exc),
                )
                raise
            logger.warning(
                "retry.attempt_failed",
                stage=stage,
                attempt=attempt,
                remaining=remaining,
                delay_seconds=policy.delay_seconds,
                error=str(exc),
            )
            sleep(policy.delay_seconds)
            continue
        PipelineMetrics.record_attempt(stage, "success")
        return result
    raise AssertionError("unreachable")  # pragma: no cover
