"""Bounded retry helper for remote reads that may lag behind store indexing."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed number of attempts with a fixed pause between them."""

    attempts: int = 3
    delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("RetryPolicy.attempts must be at least 1.")
        if self.delay_seconds < 0:
            raise ValueError("RetryPolicy.delay_seconds must be non-negative.")


async def retry_until_present(
    fetch: Callable[[], Awaitable[T | None]],
    *,
    policy: RetryPolicy,
    logger: logging.Logger,
    label: str,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T | None:
    """
    Call `fetch` until it returns a value other than None or attempts run out.

    Exceptions raised by `fetch` propagate immediately; only "not there yet"
    answers are retried.

    Args:
        fetch: Zero-argument coroutine factory.
        policy: Attempt count and pause.
        logger: Logger for retry diagnostics.
        label: Operation label for log messages.
        sleep: Awaitable sleep, injectable for tests.
    Returns:
        First non-None result, or None after the last attempt.
    """
    for attempt in range(1, policy.attempts + 1):
        result = await fetch()
        if result is not None:
            return result
        if attempt < policy.attempts:
            logger.info(
                "%s returned nothing yet; retrying in %.1fs (attempt %d/%d).",
                label,
                policy.delay_seconds,
                attempt + 1,
                policy.attempts,
            )
            await sleep(policy.delay_seconds)
    logger.warning("%s returned nothing after %d attempts.", label, policy.attempts)
    return None
