"""Persistence slot: PostgreSQL in production, in-memory in unit tests."""

from collections.abc import AsyncIterator

from dishka import Scope, provide
import logfire
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tally.config import Settings
from tally.domain.repository import TransactionRunner
from tally.persistence.database import create_engine, create_session_factory
from tally.persistence.transaction import TransactionManager
from tally.persistence.unit_of_work import SqlUnitOfWork
from tally.util.di.base import ProviderBase
from tally.util.observability import instrument_sqlalchemy
from tally.util.retry import RetryPolicy


class PersistenceProvider(ProviderBase):
    """Provides the ``TransactionRunner`` every service writes through."""

    __mock_component__ = "persistence"


class ProdPersistenceProvider(PersistenceProvider):
    """Transactions against PostgreSQL, one pooled engine per container."""

    __is_mock__ = False

    scope = Scope.APP

    @provide
    async def get_engine(self, settings: Settings) -> AsyncIterator[AsyncEngine]:
        engine = create_engine(settings)
        instrument_sqlalchemy(engine)
        logfire.info(
            "Database engine created",
            isolation_level=settings.database.isolation_level,
            synchronous_commit=settings.database.synchronous_commit,
        )
        yield engine
        await engine.dispose()
        logfire.info("Database engine disposed")

    @provide
    def get_session_factory(
        self, engine: AsyncEngine
    ) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    @provide
    def get_transaction_runner(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: RetryPolicy,
    ) -> TransactionRunner:
        """Transaction manager opening a fresh session per attempt."""
        return TransactionManager(
            session_factory=session_factory,
            unit_of_work_factory=SqlUnitOfWork,
            policy=policy,
        )
