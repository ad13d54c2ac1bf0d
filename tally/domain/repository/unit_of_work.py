"""Transactional unit of work and transaction runner interfaces.

A ``UnitOfWork`` exposes repositories bound to one transactional session.
Work handed to a ``TransactionRunner`` must route every read and write of
an attempt through the unit of work it receives, because a failed attempt
is replayed from scratch on a fresh session.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Awaitable, Callable, Optional, TypeVar

from tally.domain.repository.item import ItemRepository
from tally.domain.repository.vote import VoteRepository
from tally.domain.repository.voter import VoterRepository

T = TypeVar("T")


class UnitOfWork(ABC):
    """Repositories sharing one transactional session."""

    voters: VoterRepository
    items: ItemRepository
    votes: VoteRepository

    @abstractmethod
    def savepoint(self) -> AbstractAsyncContextManager[None]:
        """Open a nested transaction.

        An exception inside the block rolls back only the block's writes and
        propagates; the outer transaction stays usable.
        """
        pass


Work = Callable[[UnitOfWork], Awaitable[T]]
Verifier = Callable[[UnitOfWork, T], Awaitable[bool]]


class TransactionRunner(ABC):
    """Runs units of work under a datastore transaction."""

    @abstractmethod
    async def run(
        self,
        work: Work[T],
        *,
        verify: Optional[Verifier[T]] = None,
        label: str = "transaction",
    ) -> T:
        """Run ``work`` in a transaction, retrying transient failures.

        Args:
            work: Closure receiving the unit of work for one attempt
            verify: Checks in a fresh session whether an attempt whose commit
                outcome is unknown actually landed
            label: Name used in logs and spans

        Returns:
            The value returned by the successful attempt

        Raises:
            TransactionError: Fatal failure or retries exhausted
            OperationTimeoutError: An attempt exceeded its deadline
        """
        pass

    @abstractmethod
    async def read(self, work: Work[T], *, label: str = "read") -> T:
        """Run read-only ``work`` in a session that is always rolled back.

        Raises:
            DatabaseError: Connectivity failures persisted past the retries
            OperationTimeoutError: The read exceeded its deadline
        """
        pass
