"""Get vote history use case."""

from datetime import datetime

from tally.application.usecase.base import BaseUseCase, CamelModel
from tally.domain.service import VoteQueryService


class GetVoteHistoryRequest(CamelModel):
    """Get vote history request. Out-of-range limits are clamped, not refused."""

    limit: int | None = None


class VoteHistoryItem(CamelModel):
    """One confirmed vote in the feed."""

    voter_id: str
    item_id: str
    timestamp: datetime


class GetVoteHistoryResponse(CamelModel):
    """Get vote history response, most recent first."""

    votes: list[VoteHistoryItem]
    limit: int


class GetVoteHistoryUseCase(BaseUseCase):
    """Use case for the recent-votes feed."""

    def __init__(self, query_service: VoteQueryService) -> None:
        self.query_service = query_service

    async def execute(self, request: GetVoteHistoryRequest) -> GetVoteHistoryResponse:
        limit = self.query_service.clamp_limit(request.limit)
        history = await self.query_service.get_vote_history(limit)
        return GetVoteHistoryResponse(
            votes=[
                VoteHistoryItem(
                    voter_id=entry.voter_id,
                    item_id=entry.item_id,
                    timestamp=entry.timestamp,
                )
                for entry in history
            ],
            limit=limit,
        )
