"""Generic async retry driver.

Runs an awaitable-producing operation, classifies each failure through the
policy's predicate and waits according to the backoff schedule before trying
again. Knows nothing about HTTP, crumbs or proxies.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from yfclient.resilience.backoff import BackoffPolicy, next_delay
from yfclient.resilience.classifier import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[BaseException, int, int], Any]


@dataclass(frozen=True)
class RetryPolicy(BackoffPolicy):
    """Retry configuration for one call.

    ``on_retry`` receives ``(error, attempt_number, delay_ms)`` and may be a
    coroutine function; it is awaited before the sleep.
    """

    enabled: bool = True
    max_retries: int = 3
    is_retryable: Callable[[BaseException], bool] = is_retryable
    get_delay_override: Callable[[BaseException], float | None] | None = None
    on_retry: OnRetry | None = None

    def replace(self, **changes: Any) -> RetryPolicy:
        """Return a copy with *changes* applied."""
        return replace(self, **changes)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: random.Random | None = None,
) -> T:
    """Await ``operation()`` until it succeeds or the policy gives up.

    Raises the most recent error once ``max_retries`` retries are spent, or
    immediately when the policy deems an error non-retryable.
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_retries:
                logger.debug("Giving up after %d attempts: %s", attempt + 1, exc)
                raise
            if not policy.is_retryable(exc):
                raise

            override = (
                policy.get_delay_override(exc)
                if policy.get_delay_override is not None
                else None
            )
            delay_ms = next_delay(attempt, policy, override, rng=rng)
            attempt += 1

            if policy.on_retry is not None:
                result = policy.on_retry(exc, attempt, delay_ms)
                if inspect.isawaitable(result):
                    await result

            await sleep(delay_ms / 1000)
