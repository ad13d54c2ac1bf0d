"""Retry with exponential backoff and jitter, plus per-attempt deadlines.

This is the single retry utility for the project. The transaction manager
uses it for whole-transaction replays and the read path for connectivity
blips; both supply their own retryable-error predicate.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import logfire

from tally.config import TransactionSettings
from tally.domain.error import OperationTimeoutError
from tally.util.error import RetryExhaustedError

T = TypeVar("T")

# How long timed-out work gets to unwind after being cancelled
CANCEL_GRACE_SECONDS = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry schedule.

    Attributes:
        max_attempts: Total attempts, including the first one
        base_delay: Delay before the second attempt, in seconds
        max_delay: Cap on the exponential delay, before jitter
        jitter_ratio: Up to this fraction of the delay is added at random
        timeout: Deadline for each attempt, None to disable
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    jitter_ratio: float = 0.1
    timeout: Optional[float] = 15.0

    @classmethod
    def from_settings(cls, settings: TransactionSettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay_seconds,
            max_delay=settings.max_delay_seconds,
            jitter_ratio=settings.jitter_ratio,
            timeout=settings.timeout_seconds,
        )

    def backoff(self, attempt: int) -> float:
        """Delay without jitter after the given 1-based failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def delay_for(self, attempt: int) -> float:
        """Delay with jitter after the given 1-based failed attempt."""
        delay = self.backoff(attempt)
        return delay + random.uniform(0, delay * self.jitter_ratio)


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    attempt: Optional[int] = None,
    cancel_grace: float = CANCEL_GRACE_SECONDS,
) -> T:
    """Race an awaitable against a deadline.

    On expiry the awaitable is cancelled and given ``cancel_grace`` seconds to
    unwind, so resources it holds are released before the caller moves on.
    Work that ignores the cancellation is left behind rather than waited for.
    Timeouts raised by the awaitable itself (e.g. a driver's network timeout)
    propagate as they are.

    Raises:
        OperationTimeoutError: If the deadline passed first
    """
    if timeout is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task not in done:
        task.cancel()
        unwound, _ = await asyncio.wait({task}, timeout=cancel_grace)
        if not unwound:
            logfire.warn(
                "Timed-out work ignored cancellation, abandoning it",
                timeout=timeout,
                attempt=attempt,
                cancel_grace=cancel_grace,
            )
        # Whatever the abandoned work ends with is of no further interest
        task.add_done_callback(_discard_outcome)
        raise OperationTimeoutError(timeout, attempt)

    return task.result()


def _discard_outcome(task: "asyncio.Future[object]") -> None:
    if not task.cancelled():
        task.exception()


async def retry_async(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    is_retryable: Callable[[BaseException], bool],
    *,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``operation(attempt)`` until it succeeds or stops being retryable.

    Non-retryable errors propagate unchanged on the attempt that raised them.

    Args:
        operation: Receives the 1-based attempt number
        policy: Retry schedule
        is_retryable: Decides whether an error is worth another attempt
        label: Name used in logs
        sleep: Injectable sleep, for tests

    Raises:
        RetryExhaustedError: The last attempt failed with a retryable error
    """
    attempt = 1
    while True:
        try:
            return await operation(attempt)
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt >= policy.max_attempts:
                logfire.error(
                    "Retries exhausted",
                    label=label,
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise RetryExhaustedError(attempt, e) from e

            delay = policy.delay_for(attempt)
            logfire.warn(
                "Attempt failed, retrying",
                label=label,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_ms=round(delay * 1000),
                error=str(e),
                error_type=type(e).__name__,
            )
            await sleep(delay)
            attempt += 1
