"""SQL unit of work: the three repositories bound to one AsyncSession."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from tally.domain.repository import UnitOfWork
from tally.persistence.repository import (
    PostgresItemRepository,
    PostgresVoteRepository,
    PostgresVoterRepository,
)


class SqlUnitOfWork(UnitOfWork):
    """Unit of work over a single SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.voters = PostgresVoterRepository(session)
        self.items = PostgresItemRepository(session)
        self.votes = PostgresVoteRepository(session)

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        """SAVEPOINT / ROLLBACK TO SAVEPOINT around the block."""
        async with self.session.begin_nested():
            yield
