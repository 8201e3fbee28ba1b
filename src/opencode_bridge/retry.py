"""Fixed-interval retry policy shared by launch polling and reconnection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed delay, fixed budget retry policy.

    Attributes:
        interval_seconds: Sleep between consecutive attempts
        max_attempts: Total number of attempts, including the first
        initial_delay_seconds: Sleep before the first attempt; defaults to
            ``interval_seconds`` so a freshly launched process gets a head start
    """

    interval_seconds: float
    max_attempts: int
    initial_delay_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1 (got {self.max_attempts})")
        if self.interval_seconds < 0:
            raise ValueError(f"interval_seconds must not be negative (got {self.interval_seconds})")

    @property
    def first_delay(self) -> float:
        if self.initial_delay_seconds is None:
            return self.interval_seconds
        return self.initial_delay_seconds


async def retry_until_success(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation`` until it succeeds or the policy's budget is exhausted.

    Exceptions outside ``retry_on`` propagate immediately. When every attempt
    fails, the last exception is re-raised.
    """
    last_error: Optional[BaseException] = None
    for attempt in range(1, policy.max_attempts + 1):
        delay = policy.first_delay if attempt == 1 else policy.interval_seconds
        if delay > 0:
            await sleep(delay)
        try:
            return await operation()
        except retry_on as exc:
            last_error = exc
            logger.debug(
                "%s attempt %d/%d failed: %s", description, attempt, policy.max_attempts, exc
            )

    assert last_error is not None
    raise last_error


__all__ = ["RetryPolicy", "retry_until_success"]
