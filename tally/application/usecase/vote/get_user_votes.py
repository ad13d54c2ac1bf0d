"""Get user votes use case."""

from datetime import datetime

from tally.application.usecase.base import BaseUseCase, CamelModel
from tally.domain.service import VoteQueryService


class GetUserVotesRequest(CamelModel):
    """Get user votes request."""

    voter_id: str


class UserVoteItem(CamelModel):
    """One of the voter's confirmed votes."""

    item_id: str
    timestamp: datetime


class GetUserVotesResponse(CamelModel):
    """Get user votes response, most recent first."""

    votes: list[UserVoteItem]


class GetUserVotesUseCase(BaseUseCase):
    """Use case for listing a voter's confirmed votes."""

    def __init__(self, query_service: VoteQueryService) -> None:
        self.query_service = query_service

    async def execute(self, request: GetUserVotesRequest) -> GetUserVotesResponse:
        """Execute the get user votes flow.

        Raises:
            ValidationError: If the voter id is empty or malformed
            DatabaseError: If the datastore stayed unreachable
        """
        votes = await self.query_service.get_user_votes(request.voter_id)
        return GetUserVotesResponse(
            votes=[
                UserVoteItem(item_id=v.item_id, timestamp=v.timestamp) for v in votes
            ]
        )
