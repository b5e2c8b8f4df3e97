"""Reliable-call wrapper: exponential backoff with jitter for backend calls.

Only transport failures and responses whose status is in the policy's
retryable set are retried. Everything else fails on the first attempt.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .config import DEFAULT_RETRYABLE_STATUS_CODES, ClientConfig
from .exceptions import ApiError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 3
    backoff_seconds: float = 0.3
    jitter_ratio: float = 0.25
    retryable_status_codes: tuple[int, ...] = DEFAULT_RETRYABLE_STATUS_CODES

    @classmethod
    def from_config(cls, config: ClientConfig) -> "RetryPolicy":
        return cls(
            retries=config.retries,
            backoff_seconds=config.retry_backoff_seconds,
            jitter_ratio=config.retry_jitter_ratio,
            retryable_status_codes=tuple(config.retryable_status_codes),
        )

    @property
    def attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, attempt: int, rand: float) -> float:
        """Delay before retry number ``attempt + 1``; ``rand`` is in [0, 1)."""
        base = self.backoff_seconds * (2**attempt)
        factor = (1 - self.jitter_ratio) + rand * 2 * self.jitter_ratio
        return base * factor

    def is_retryable(self, error: Exception) -> bool:
        if isinstance(error, TransportError):
            return error.code != "REQUEST_CANCELLED"
        if isinstance(error, ApiError):
            return error.status_code in self.retryable_status_codes
        return False


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    rand: Callable[[], float] = random.random,
    label: str = "call",
) -> T:
    for attempt in range(policy.attempts):
        try:
            return fn()
        except ApiError as exc:
            if attempt >= policy.attempts - 1 or not policy.is_retryable(exc):
                raise
            delay = policy.delay_for(attempt, rand())
            logger.warning(
                "%s failed with %s (attempt %d/%d), retrying in %.3fs",
                label,
                exc.code,
                attempt + 1,
                policy.attempts,
                delay,
            )
            sleep(delay)
    raise RuntimeError(f"{label} exhausted retries without a result")
