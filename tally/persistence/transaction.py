"""Transaction manager: runs units of work under a retried datastore transaction.

Each attempt gets its own session from the factory and releases it on every
exit path through ``async with``. Transient failures replay the whole unit
of work on a fresh session after a backoff. A commit whose outcome is
unknown is checked against the datastore before anything is retried.
"""

import asyncio
from typing import Any, AsyncContextManager, Callable, Optional, TypeVar

import logfire
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from tally.domain.error import (
    CommitOutcomeUnknownError,
    DatabaseError,
    OperationTimeoutError,
    TransactionError,
)
from tally.domain.repository import TransactionRunner, UnitOfWork, Verifier, Work
from tally.util.error import RetryExhaustedError
from tally.util.retry import RetryPolicy, retry_async, with_timeout

T = TypeVar("T")

SessionFactory = Callable[[], AsyncContextManager[Any]]
UnitOfWorkFactory = Callable[[Any], UnitOfWork]

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

# admin_shutdown, crash_shutdown, cannot_connect_now
CONNECTION_SQLSTATES = frozenset({"57P01", "57P02", "57P03"})


def _sqlstate(error: BaseException) -> Optional[str]:
    """Extract the SQLSTATE from a driver error, if it carries one."""
    orig = getattr(error, "orig", None)
    for candidate in (error, orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(
            candidate, "pgcode", None
        )
        if isinstance(code, str):
            return code
    return None


def is_connection_error(error: BaseException) -> bool:
    """Whether the error means the connection itself failed."""
    if isinstance(error, (ConnectionError, OSError)):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    code = _sqlstate(error)
    if code is not None:
        return code.startswith("08") or code in CONNECTION_SQLSTATES
    # Driver-level failures without a server response carry no SQLSTATE
    return isinstance(error, (OperationalError, InterfaceError))


def is_retryable_error(error: BaseException) -> bool:
    """Whether replaying the whole transaction may succeed.

    Covers write conflicts (stale version, serialization failure, deadlock,
    lock timeout) and connectivity failures. Deadlines are not retried.
    """
    if isinstance(error, OperationTimeoutError):
        return False
    if isinstance(error, DatabaseError):
        return True
    if is_connection_error(error):
        return True
    return _sqlstate(error) in RETRYABLE_SQLSTATES


def is_uncertain_commit(error: BaseException) -> bool:
    """Whether a commit failure leaves it unknown if the commit landed."""
    if isinstance(error, CommitOutcomeUnknownError):
        return True
    return is_connection_error(error)


class TransactionManager(TransactionRunner):
    """Runs work in a datastore transaction with retries and deadlines.

    Args:
        session_factory: Returns a new session usable as an async context
            manager, e.g. an ``async_sessionmaker``
        unit_of_work_factory: Binds repositories to a session
        policy: Retry schedule and per-attempt deadline
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        unit_of_work_factory: UnitOfWorkFactory,
        policy: RetryPolicy,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._unit_of_work_factory = unit_of_work_factory
        self.policy = policy
        self._sleep = sleep

    async def run(
        self,
        work: Work[T],
        *,
        verify: Optional[Verifier[T]] = None,
        label: str = "transaction",
    ) -> T:
        """Run ``work`` in a transaction, replaying it on transient failures."""
        last_attempt = 0

        async def attempt(number: int) -> T:
            nonlocal last_attempt
            last_attempt = number
            return await self._attempt(work, verify, number, label)

        with logfire.span("transaction.run {label}", label=label):
            try:
                return await retry_async(
                    attempt,
                    self.policy,
                    is_retryable_error,
                    label=label,
                    sleep=self._sleep,
                )
            except RetryExhaustedError as e:
                raise TransactionError(
                    f"Transaction failed after {e.attempts} attempts", e.attempts
                ) from e.last_error
            except (OperationTimeoutError, TransactionError):
                raise
            except Exception as e:
                logfire.error(
                    "Transaction failed",
                    label=label,
                    attempt=last_attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise TransactionError(
                    f"Transaction failed: {e}", last_attempt
                ) from e

    async def read(self, work: Work[T], *, label: str = "read") -> T:
        """Run read-only ``work``; the session is always rolled back."""

        async def attempt(number: int) -> T:
            async with self._session_factory() as session:
                try:
                    return await with_timeout(
                        work(self._unit_of_work_factory(session)),
                        self.policy.timeout,
                        number,
                    )
                finally:
                    await self._rollback(session, label)

        try:
            return await retry_async(
                attempt,
                self.policy,
                is_connection_error,
                label=label,
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            raise DatabaseError(
                f"Read failed after {e.attempts} attempts: {e.last_error}"
            ) from e.last_error
        except DBAPIError as e:
            raise DatabaseError(f"Read failed: {e}") from e

    async def _attempt(
        self,
        work: Work[T],
        verify: Optional[Verifier[T]],
        attempt: int,
        label: str,
    ) -> T:
        logfire.debug("Transaction attempt started", label=label, attempt=attempt)

        async with self._session_factory() as session:
            try:
                result = await with_timeout(
                    work(self._unit_of_work_factory(session)),
                    self.policy.timeout,
                    attempt,
                )
            except BaseException:
                await self._rollback(session, label)
                raise

            try:
                await self._commit(session)
            except Exception as e:
                await self._rollback(session, label)
                if not is_uncertain_commit(e):
                    raise
                commit_error = e
            else:
                logfire.debug(
                    "Transaction committed", label=label, attempt=attempt
                )
                return result

        # The failed session is released before verifying in a fresh one
        return await self._verify_commit(result, commit_error, verify, attempt, label)

    async def _commit(self, session: Any) -> None:
        """Commit, letting it settle even if the caller is cancelled meanwhile."""
        commit = asyncio.ensure_future(session.commit())
        try:
            await asyncio.shield(commit)
        except asyncio.CancelledError:
            await asyncio.wait({commit})
            if not commit.cancelled():
                commit.exception()
            raise

    async def _verify_commit(
        self,
        result: T,
        commit_error: Exception,
        verify: Optional[Verifier[T]],
        attempt: int,
        label: str,
    ) -> T:
        """Decide an uncertain commit by looking at the datastore.

        Landed: the attempt succeeded. Not landed: the commit error is raised
        again and the retry schedule decides. Unverifiable: fatal, since
        replaying could apply the work twice.
        """
        logfire.warn(
            "Commit outcome unknown, verifying",
            label=label,
            attempt=attempt,
            error=str(commit_error),
            error_type=type(commit_error).__name__,
        )
        if verify is None:
            raise TransactionError(
                f"Commit outcome unknown and cannot be verified: {commit_error}",
                attempt,
            ) from commit_error

        try:
            async with self._session_factory() as session:
                try:
                    landed = await with_timeout(
                        verify(self._unit_of_work_factory(session), result),
                        self.policy.timeout,
                        attempt,
                    )
                finally:
                    await self._rollback(session, label)
        except Exception as e:
            logfire.error(
                "Commit verification failed",
                label=label,
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransactionError(
                f"Commit outcome unknown, verification failed: {e}", attempt
            ) from commit_error

        if landed:
            logfire.info(
                "Uncertain commit verified as landed", label=label, attempt=attempt
            )
            return result

        logfire.warn("Uncertain commit did not land", label=label, attempt=attempt)
        raise commit_error

    async def _rollback(self, session: Any, label: str) -> None:
        """Roll back, logging instead of masking the error being handled."""
        try:
            await session.rollback()
        except Exception as e:
            logfire.warn(
                "Rollback failed",
                label=label,
                error=str(e),
                error_type=type(e).__name__,
            )
