"""Unit tests for the retry utility and per-attempt deadlines."""

import asyncio

import pytest

from tally.config import TransactionSettings
from tally.domain.error import OperationTimeoutError, WriteConflictError
from tally.util.error import RetryExhaustedError
from tally.util.retry import RetryPolicy, retry_async, with_timeout


class RecordingSleep:
    """Sleep stand-in that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def is_conflict(error: BaseException) -> bool:
    return isinstance(error, WriteConflictError)


class TestRetryPolicy:
    """Tests for the backoff schedule."""

    def test_backoff_doubles_until_capped(self):
        """Delay should double per attempt and stop at the cap."""
        policy = RetryPolicy(max_attempts=6, base_delay=1.0, max_delay=8.0)

        assert [policy.backoff(n) for n in range(1, 7)] == [
            1.0,
            2.0,
            4.0,
            8.0,
            8.0,
            8.0,
        ]

    def test_jitter_stays_within_ratio(self):
        """Jitter should add at most jitter_ratio of the delay."""
        policy = RetryPolicy(base_delay=1.0, max_delay=8.0, jitter_ratio=0.1)

        for attempt in (1, 2, 3, 4):
            base = policy.backoff(attempt)
            for _ in range(50):
                delay = policy.delay_for(attempt)
                assert base <= delay <= base * 1.1

    def test_zero_jitter_is_deterministic(self):
        """Without jitter the delay is exactly the backoff."""
        policy = RetryPolicy(base_delay=0.5, max_delay=8.0, jitter_ratio=0.0)

        assert policy.delay_for(3) == 2.0

    def test_from_settings(self):
        """Policy should mirror transaction settings."""
        settings = TransactionSettings(
            max_attempts=5,
            base_delay_seconds=0.2,
            max_delay_seconds=2.0,
            jitter_ratio=0.0,
            timeout_seconds=3.0,
        )

        policy = RetryPolicy.from_settings(settings)

        assert policy == RetryPolicy(
            max_attempts=5, base_delay=0.2, max_delay=2.0, jitter_ratio=0.0, timeout=3.0
        )


class TestRetryAsync:
    """Tests for retry_async."""

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt_after_transient_failures(self):
        """Two transient failures then success should take exactly three calls."""
        # Arrange
        calls: list[int] = []

        async def operation(attempt: int) -> str:
            calls.append(attempt)
            if attempt < 3:
                raise WriteConflictError("conflict")
            return "done"

        sleep = RecordingSleep()
        policy = RetryPolicy(max_attempts=3, base_delay=1.0, jitter_ratio=0.0)

        # Act
        result = await retry_async(operation, policy, is_conflict, sleep=sleep)

        # Assert
        assert result == "done"
        assert calls == [1, 2, 3]
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_immediately(self):
        """A non-retryable error should not be retried."""
        calls = 0

        async def operation(attempt: int) -> None:
            nonlocal calls
            calls += 1
            raise ValueError("bad input")

        sleep = RecordingSleep()

        with pytest.raises(ValueError, match="bad input"):
            await retry_async(operation, RetryPolicy(), is_conflict, sleep=sleep)

        assert calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhaustion_raises_with_attempt_count_and_last_error(self):
        """Running out of attempts should report the count and last error."""
        errors: list[WriteConflictError] = []

        async def operation(attempt: int) -> None:
            error = WriteConflictError(f"conflict {attempt}")
            errors.append(error)
            raise error

        policy = RetryPolicy(max_attempts=3, jitter_ratio=0.0)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_async(operation, policy, is_conflict, sleep=RecordingSleep())

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is errors[-1]
        assert exc_info.value.__cause__ is errors[-1]

    @pytest.mark.asyncio
    async def test_single_attempt_policy_never_sleeps(self):
        """max_attempts=1 means no retry at all."""
        sleep = RecordingSleep()

        async def operation(attempt: int) -> None:
            raise WriteConflictError("conflict")

        with pytest.raises(RetryExhaustedError):
            await retry_async(
                operation, RetryPolicy(max_attempts=1), is_conflict, sleep=sleep
            )

        assert sleep.delays == []


class TestWithTimeout:
    """Tests for with_timeout."""

    @pytest.mark.asyncio
    async def test_never_resolving_operation_times_out_after_deadline(self):
        """A hung operation should fail after ~timeout, not earlier or never."""
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(OperationTimeoutError) as exc_info:
            await with_timeout(asyncio.Event().wait(), 0.05, attempt=2)

        elapsed = loop.time() - started
        assert 0.04 <= elapsed < 1.0
        assert exc_info.value.timeout_seconds == 0.05
        assert exc_info.value.attempt == 2

    @pytest.mark.asyncio
    async def test_abandoned_operation_is_unwound(self):
        """The timed-out operation should be cancelled and its cleanup run."""
        cleaned_up = asyncio.Event()

        async def hang() -> None:
            try:
                await asyncio.Event().wait()
            finally:
                cleaned_up.set()

        with pytest.raises(OperationTimeoutError):
            await with_timeout(hang(), 0.01)

        assert cleaned_up.is_set()

    @pytest.mark.asyncio
    async def test_work_ignoring_cancellation_does_not_stall_the_deadline(self):
        """Work that swallows CancelledError is abandoned after the grace period."""
        # Arrange
        loop = asyncio.get_running_loop()
        release = asyncio.Event()
        cancellations = 0

        async def stubborn() -> None:
            nonlocal cancellations
            while not release.is_set():
                try:
                    await release.wait()
                except asyncio.CancelledError:
                    cancellations += 1

        started = loop.time()

        # Act
        with pytest.raises(OperationTimeoutError):
            await with_timeout(stubborn(), 0.02, cancel_grace=0.05)
        elapsed = loop.time() - started

        # Assert
        assert 0.05 <= elapsed < 1.0
        assert cancellations == 1

        release.set()
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_returns_result_within_deadline(self):
        """A fast operation should return its result."""

        async def fast() -> int:
            return 42

        assert await with_timeout(fast(), 1.0) == 42

    @pytest.mark.asyncio
    async def test_no_deadline_awaits_directly(self):
        """timeout=None disables the deadline."""

        async def fast() -> str:
            await asyncio.sleep(0)
            return "ok"

        assert await with_timeout(fast(), None) == "ok"

    @pytest.mark.asyncio
    async def test_operation_errors_propagate_unchanged(self):
        """Errors raised by the operation itself should not be wrapped."""

        async def fail() -> None:
            raise asyncio.TimeoutError()

        with pytest.raises(asyncio.TimeoutError):
            await with_timeout(fail(), 1.0)
