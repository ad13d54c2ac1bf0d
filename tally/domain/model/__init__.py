"""Domain model entities for the vote engine."""

from tally.domain.model.item import Item
from tally.domain.model.outcome import (
    VoteConfirmed,
    VoteFailed,
    VoteOutcome,
    VoteRejected,
)
from tally.domain.model.stats import ItemStats, UserVote, VoteHistoryEntry
from tally.domain.model.vote import Vote
from tally.domain.model.voter import Voter

__all__ = [
    "Voter",
    "Item",
    "Vote",
    "ItemStats",
    "UserVote",
    "VoteHistoryEntry",
    "VoteConfirmed",
    "VoteRejected",
    "VoteFailed",
    "VoteOutcome",
]
