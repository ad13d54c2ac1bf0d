"""Domain services."""

from .base import Service
from .conflict_resolver import (
    ConflictResolver,
    ConflictVerdict,
    VotesValidation,
    validate_item_votes,
    validate_voter_votes,
)
from .consistency_service import (
    ConsistencyIssue,
    ConsistencyReport,
    ConsistencyService,
    IssueKind,
    summarize,
)
from .stats_service import VoteQueryService
from .vote_service import VoteService

__all__ = [
    "ConflictResolver",
    "ConflictVerdict",
    "ConsistencyIssue",
    "ConsistencyReport",
    "ConsistencyService",
    "IssueKind",
    "Service",
    "VoteQueryService",
    "VoteService",
    "VotesValidation",
    "summarize",
    "validate_item_votes",
    "validate_voter_votes",
]
