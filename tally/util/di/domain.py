"""Domain layer DI providers."""

from dishka import Scope, provide

from tally.config import ConsistencySettings, QuerySettings
from tally.domain.repository import TransactionRunner
from tally.domain.service import (
    ConflictResolver,
    ConsistencyService,
    VoteQueryService,
    VoteService,
)
from tally.util.cache import ResultCaches
from tally.util.di.base import ProviderBase


class ProdDomainProvider(ProviderBase):
    """Production domain services provider - concrete, no mocks needed.

    Services are REQUEST-scoped and stateless; each transaction attempt
    opens its own session through the transaction runner.
    """

    scope = Scope.REQUEST

    @provide
    def get_conflict_resolver(self) -> ConflictResolver:
        """Provide conflict resolver."""
        return ConflictResolver()

    @provide
    def get_vote_service(
        self,
        transaction_runner: TransactionRunner,
        conflict_resolver: ConflictResolver,
        caches: ResultCaches,
    ) -> VoteService:
        """Provide vote domain service."""
        return VoteService(
            transaction_runner=transaction_runner,
            conflict_resolver=conflict_resolver,
            caches=caches,
        )

    @provide
    def get_vote_query_service(
        self,
        transaction_runner: TransactionRunner,
        caches: ResultCaches,
        settings: QuerySettings,
    ) -> VoteQueryService:
        """Provide cache-backed query service."""
        return VoteQueryService(
            transaction_runner=transaction_runner, caches=caches, settings=settings
        )

    @provide
    def get_consistency_service(
        self,
        transaction_runner: TransactionRunner,
        caches: ResultCaches,
        settings: ConsistencySettings,
    ) -> ConsistencyService:
        """Provide consistency sweep service."""
        return ConsistencyService(
            transaction_runner=transaction_runner, caches=caches, settings=settings
        )
