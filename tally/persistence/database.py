"""Engine and session factory for PostgreSQL through asyncpg."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tally.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Engine whose connections all share one isolation level and durability.

    Each transaction attempt therefore reads one consistent snapshot and
    its COMMIT returns only once the configured ``synchronous_commit`` level
    acknowledges it. ``command_timeout`` bounds every statement, COMMIT
    included, so a hung server surfaces as an error rather than a stall.
    """
    db = settings.database
    return create_async_engine(
        db.url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        isolation_level=db.isolation_level,
        connect_args={
            "command_timeout": db.command_timeout_seconds,
            "server_settings": {"synchronous_commit": db.synchronous_commit},
        },
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions for the transaction manager, one per attempt.

    Rows are mapped to domain models before commit, so nothing needs to
    survive expiry; flushes happen explicitly in the repositories.
    """
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
