"""Core DI providers (non-mockable)."""

from dishka import Scope, provide

from tally.config import (
    CacheSettings,
    ConsistencySettings,
    QuerySettings,
    Settings,
    TransactionSettings,
)
from tally.util.cache import ResultCaches
from tally.util.di.base import ProviderBase
from tally.util.retry import RetryPolicy


class ProdConfigProvider(ProviderBase):
    """Production config provider - concrete, no mocks needed.

    Settings are loaded from environment variables and .env file automatically.
    """

    scope = Scope.APP

    @provide
    def provide_settings(self) -> Settings:
        """Provide application settings from environment."""
        return Settings()

    @provide
    def provide_transaction_settings(self, settings: Settings) -> TransactionSettings:
        return settings.transaction

    @provide
    def provide_cache_settings(self, settings: Settings) -> CacheSettings:
        return settings.cache

    @provide
    def provide_consistency_settings(self, settings: Settings) -> ConsistencySettings:
        return settings.consistency

    @provide
    def provide_query_settings(self, settings: Settings) -> QuerySettings:
        return settings.queries

    @provide
    def provide_retry_policy(self, settings: TransactionSettings) -> RetryPolicy:
        """Provide the retry schedule for datastore transactions."""
        return RetryPolicy.from_settings(settings)

    @provide
    def provide_result_caches(self, settings: CacheSettings) -> ResultCaches:
        """Provide the process-wide result caches.

        Created once per container; tests get a fresh set per container.
        """
        return ResultCaches(settings)
