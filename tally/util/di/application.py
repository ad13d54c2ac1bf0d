"""Application layer DI providers."""

from dishka import Scope, provide

from tally.application.usecase.item import GetAllItemStatsUseCase, GetItemStatsUseCase
from tally.application.usecase.maintenance import RunConsistencyCheckUseCase
from tally.application.usecase.vote import (
    GetUserVotesUseCase,
    GetVoteHistoryUseCase,
    SubmitVoteUseCase,
)
from tally.domain.service import ConsistencyService, VoteQueryService, VoteService
from tally.util.di.base import ProviderBase


class ProdApplicationProvider(ProviderBase):
    """Production application use cases provider - concrete, no mocks needed."""

    # Vote use cases
    @provide(scope=Scope.REQUEST)
    def get_submit_vote_use_case(self, vote_service: VoteService) -> SubmitVoteUseCase:
        """Provide submit vote use case."""
        return SubmitVoteUseCase(vote_service=vote_service)

    @provide(scope=Scope.REQUEST)
    def get_user_votes_use_case(
        self, query_service: VoteQueryService
    ) -> GetUserVotesUseCase:
        """Provide get user votes use case."""
        return GetUserVotesUseCase(query_service=query_service)

    @provide(scope=Scope.REQUEST)
    def get_vote_history_use_case(
        self, query_service: VoteQueryService
    ) -> GetVoteHistoryUseCase:
        """Provide get vote history use case."""
        return GetVoteHistoryUseCase(query_service=query_service)

    # Item use cases
    @provide(scope=Scope.REQUEST)
    def get_all_item_stats_use_case(
        self, query_service: VoteQueryService
    ) -> GetAllItemStatsUseCase:
        """Provide all-items stats use case."""
        return GetAllItemStatsUseCase(query_service=query_service)

    @provide(scope=Scope.REQUEST)
    def get_item_stats_use_case(
        self, query_service: VoteQueryService
    ) -> GetItemStatsUseCase:
        """Provide single item stats use case."""
        return GetItemStatsUseCase(query_service=query_service)

    # Maintenance use cases
    @provide(scope=Scope.REQUEST)
    def get_run_consistency_check_use_case(
        self, consistency_service: ConsistencyService
    ) -> RunConsistencyCheckUseCase:
        """Provide run consistency check use case."""
        return RunConsistencyCheckUseCase(consistency_service=consistency_service)
