"""Vote use cases."""

from .get_user_votes import (
    GetUserVotesRequest,
    GetUserVotesResponse,
    GetUserVotesUseCase,
    UserVoteItem,
)
from .get_vote_history import (
    GetVoteHistoryRequest,
    GetVoteHistoryResponse,
    GetVoteHistoryUseCase,
    VoteHistoryItem,
)
from .submit_vote import SubmitVoteRequest, SubmitVoteResponse, SubmitVoteUseCase

__all__ = [
    "SubmitVoteRequest",
    "SubmitVoteResponse",
    "SubmitVoteUseCase",
    "GetUserVotesRequest",
    "GetUserVotesResponse",
    "GetUserVotesUseCase",
    "UserVoteItem",
    "GetVoteHistoryRequest",
    "GetVoteHistoryResponse",
    "GetVoteHistoryUseCase",
    "VoteHistoryItem",
]
