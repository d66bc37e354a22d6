"""
providers/retry.py

Responsibility: The one retry loop used by every adapter: re-runs an async
operation while its DnsProviderError code is retryable, sleeping on an
exponential backoff schedule between attempts.
Does NOT: decide which codes are retryable (callers pass a predicate) or
catch anything other than DnsProviderError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from exceptions import DnsProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def exponential_backoff(base: float = 0.5, cap: float = 8.0) -> Callable[[int], float]:
    """
    Builds a backoff schedule: base, 2*base, 4*base, ... capped at ``cap``.

    Args:
        base: Delay in seconds before the second attempt.
        cap: Upper bound for any single delay.

    Returns:
        A function mapping the 1-based number of the failed attempt to a delay.
    """

    def schedule(failed_attempt: int) -> float:
        return min(cap, base * (2 ** (failed_attempt - 1)))

    return schedule


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    should_retry: Callable[[DnsProviderError], bool],
    backoff: Callable[[int], float],
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Runs ``operation`` until it succeeds or the attempt budget is spent.

    A non-retryable error propagates on its first occurrence. A retryable
    error is retried until ``attempts`` runs have been made; the last error
    is then raised unchanged (never an aggregate).

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        attempts: Total number of runs allowed (values below 1 mean 1).
        should_retry: Predicate deciding whether an error is transient.
        backoff: Maps the 1-based failed attempt number to a delay in seconds.
        sleep: Awaitable sleep, injectable so tests do not wait.
        label: Name used in log lines.

    Returns:
        Whatever ``operation`` returns on its first successful run.

    Raises:
        DnsProviderError: The first non-retryable error, or the last
            retryable one once attempts are exhausted.
    """
    budget = max(1, attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except DnsProviderError as exc:
            if not should_retry(exc) or attempt >= budget:
                raise
            delay = backoff(attempt)
            logger.warning(
                "%s failed with %s (attempt %d/%d); retrying in %.2fs.",
                label,
                exc.code,
                attempt,
                budget,
                delay,
            )
            await sleep(delay)
