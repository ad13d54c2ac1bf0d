"""Read models served by the cache-backed query path."""

from datetime import datetime

from tally.domain.model.common import DomainModel
from tally.domain.value import ItemId, VoterKey


class ItemStats(DomainModel):
    """Confirmed vote count for one item."""

    item_id: ItemId
    vote_count: int


class VoteHistoryEntry(DomainModel):
    """One confirmed vote in the recent-history feed."""

    voter_id: VoterKey
    item_id: ItemId
    timestamp: datetime


class UserVote(DomainModel):
    """One confirmed vote in a voter's own list."""

    item_id: ItemId
    timestamp: datetime
