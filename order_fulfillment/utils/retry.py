"""Retry and backoff utilities for calls to external services.

Only transient failures should be retried here. Broker publishes are never
retried: a failed publish surfaces to the use case, which compensates.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryError(Exception):
    """Exception raised when all retry attempts are exhausted."""

    def __init__(self, last_exception: Exception, attempts: int) -> None:
        self.last_exception = last_exception
        self.attempts = attempts
        super().__init__(f"Failed after {attempts} attempts. Last error: {last_exception}")


class RetryStrategy:
    """Exponential backoff with optional jitter."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        exceptions: tuple[type[Exception], ...] = (Exception,),
    ) -> None:
        """Initialize retry strategy.

        Args:
            max_attempts: Total number of attempts, including the first.
            initial_delay: Delay in seconds before the first retry.
            max_delay: Upper bound for any single delay.
            exponential_base: Base for exponential backoff calculation.
            jitter: Whether to add random jitter to delays.
            exceptions: Exception types that trigger a retry.
        """
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.exceptions = exceptions

    def should_retry(self, exception: Exception) -> bool:
        return isinstance(exception, self.exceptions)

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retrying after ``attempt`` (0-indexed) failed."""
        delay = min(self.initial_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            delay = delay * (0.5 + random.random())  # 50-150% of delay
        return delay


async def call_with_retry(
    strategy: RetryStrategy,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying per ``strategy``.

    Raises:
        RetryError: When every attempt failed with a retryable exception.
        Exception: Non-retryable exceptions propagate unchanged.
    """
    name = getattr(func, "__name__", repr(func))
    for attempt in range(strategy.max_attempts):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not strategy.should_retry(e):
                raise

            if attempt >= strategy.max_attempts - 1:
                logger.error(
                    f"All retry attempts exhausted for {name}",
                    extra={"function": name, "attempts": strategy.max_attempts, "last_exception": str(e)},
                )
                raise RetryError(e, strategy.max_attempts) from e

            delay = strategy.calculate_delay(attempt)
            logger.warning(
                f"Retrying {name} after {delay:.2f}s (attempt {attempt + 1}/{strategy.max_attempts})",
                extra={
                    "function": name,
                    "attempt": attempt + 1,
                    "max_attempts": strategy.max_attempts,
                    "delay": delay,
                    "exception": str(e),
                },
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry logic error: no attempt was made")
