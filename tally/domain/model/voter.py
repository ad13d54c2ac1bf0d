"""Voter entity.

A voter may cast one vote per item. The voter document carries the set of
items already voted for, which the submission pipeline uses as a fast-path
duplicate check ahead of the conflict resolver.
"""

from datetime import datetime

from pydantic import Field

from tally.domain.model.common import DomainModel
from tally.domain.value import DisplayName, ItemId, VoterKey


class Voter(DomainModel):
    """Voter entity.

    Business rules:
    - ``vote_count == len(voted_items)``
    - Created on the first vote attempt, mutated only by a confirmed vote
    - Never deleted by the engine
    """

    key: VoterKey
    display_name: DisplayName
    voted_items: frozenset[ItemId] = frozenset()
    vote_count: int = Field(default=0, ge=0)
    last_vote_at: datetime | None = None
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

    def has_voted_for(self, item_id: ItemId) -> bool:
        """Whether the in-document state already records a vote for the item."""
        return item_id in self.voted_items

    @property
    def is_consistent(self) -> bool:
        """Whether the counter agrees with the voted set."""
        return self.vote_count == len(self.voted_items)
