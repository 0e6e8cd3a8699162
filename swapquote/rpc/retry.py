"""Retry with bounded exponential backoff.

The controller takes the operation, a classification function and a policy
as parameters. Business code never retries on its own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from swapquote.config import RetryPolicy
from swapquote.errors import RateLimitError, is_retryable

logger = structlog.get_logger()

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryController:
    """Runs async operations, retrying failures the classifier deems transient."""

    def __init__(self, policy: RetryPolicy | None = None, sleep: Sleep = asyncio.sleep) -> None:
        """Initialize the controller.

        Args:
            policy: Default backoff policy
            sleep: Async sleep function, injectable so tests run instantly
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self.retries = 0

    def delay_for(self, error: BaseException, attempt: int, policy: RetryPolicy) -> float:
        """Backoff before the next attempt; honours a larger Retry-After hint."""
        delay = policy.delay_for(attempt)
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            delay = max(delay, min(error.retry_after, policy.max_delay))
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        classify: Callable[[BaseException], bool] = is_retryable,
        policy: RetryPolicy | None = None,
        name: str = "",
    ) -> T:
        """Await operation(), retrying while classify(error) is True.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt
            classify: Returns True for errors worth retrying
            policy: Overrides the controller's default policy
            name: Label for log events

        Returns:
            The first successful result

        Raises:
            The error of the final attempt, or the first non-retryable error
        """
        policy = policy or self.policy
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not classify(e):
                    raise
                if attempt + 1 >= policy.max_attempts:
                    logger.warning(
                        "retry_exhausted",
                        operation=name,
                        attempts=attempt + 1,
                        error=str(e),
                    )
                    raise
                delay = self.delay_for(e, attempt, policy)
                logger.info(
                    "retry_scheduled",
                    operation=name,
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    delay=delay,
                    error=str(e),
                )
                self.retries += 1
                attempt += 1
                await self._sleep(delay)
