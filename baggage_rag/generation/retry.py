"""
Bounded retry combinator.

Repeats an async call until its result is accepted or the attempt budget is
spent. Attempts run back to back with no delay. An exception from the call
is a hard failure: the loop stops at once and the error is returned in the
outcome instead of being raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

LOG = logging.getLogger("generation.retry")

T = TypeVar("T")


class RetryStatus(str, Enum):
    """How a bounded retry loop ended."""

    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class RetryOutcome(Generic[T]):
    status: RetryStatus
    attempts: int
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RetryStatus.SUCCEEDED


async def retry_until(
    call: Callable[[], Awaitable[T]],
    accept: Callable[[T], bool],
    max_attempts: int,
    label: str = "call",
) -> RetryOutcome[T]:
    """
    Await ``call()`` until ``accept(result)`` holds, at most ``max_attempts`` times.

    Returns:
        SUCCEEDED with the accepted value, EXHAUSTED with the last rejected
        value, or FAILED with the exception that aborted the loop.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    value: Optional[T] = None
    for attempt in range(1, max_attempts + 1):
        LOG.debug("%s: attempt %d/%d", label, attempt, max_attempts)
        try:
            value = await call()
        except Exception as exc:
            LOG.warning("%s: attempt %d/%d failed: %s", label, attempt, max_attempts, exc)
            return RetryOutcome(status=RetryStatus.FAILED, attempts=attempt, error=exc)

        if accept(value):
            return RetryOutcome(status=RetryStatus.SUCCEEDED, attempts=attempt, value=value)
        LOG.info("%s: attempt %d/%d rejected", label, attempt, max_attempts)

    return RetryOutcome(status=RetryStatus.EXHAUSTED, attempts=max_attempts, value=value)
