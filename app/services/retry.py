from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from app.core.config import Settings
from app.core.errors import ArticleServiceError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    stage: str,
    attempts: int = 3,
    timeout: float | None = None,
    backoff: float = 1.0,
) -> T:
    """Await ``operation()`` with a deadline, retrying retryable service errors.

    A deadline overrun becomes a retryable :class:`ProviderError` for ``stage``.
    Sleeps ``backoff * 2**(n-1)`` seconds after the n-th failed attempt.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            if timeout:
                return await asyncio.wait_for(operation(), timeout=timeout)
            return await operation()
        except asyncio.TimeoutError:
            err: ArticleServiceError = ProviderError(
                f"{stage} call timed out after {timeout}s", stage=stage, retryable=True
            )
        except ArticleServiceError as e:
            if not e.retryable:
                raise
            err = e

        if attempt == attempts:
            raise err
        delay = backoff * (2 ** (attempt - 1))
        logger.warning("Attempt %d/%d for stage %s failed: %s; retrying in %.1fs", attempt, attempts, stage, err, delay)
        await asyncio.sleep(delay)

    raise AssertionError("unreachable")

@dataclass
class RetryPolicy:
    attempts: int = 3
    timeout: float | None = None
    backoff: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            attempts=settings.retry_attempts,
            timeout=settings.provider_timeout_seconds,
            backoff=settings.retry_backoff_seconds,
        )

    async def run(self, operation: Callable[[], Awaitable[T]], *, stage: str, timeout: float | None = None) -> T:
        return await call_with_retry(
            operation,
            stage=stage,
            attempts=self.attempts,
            timeout=timeout if timeout is not None else self.timeout,
            backoff=self.backoff,
        )
