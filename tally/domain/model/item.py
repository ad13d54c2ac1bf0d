"""Item entity (the candidate being voted on)."""

from datetime import datetime

from pydantic import Field

from tally.domain.model.common import DomainModel
from tally.domain.value import ItemId, ItemStatus, VoterKey


class Item(DomainModel):
    """Item entity.

    Each confirmed vote contributes exactly one to both ``total_votes`` and
    ``unique_voters``, so the two are equal to the number of confirmed votes
    for the item. The owner may not vote for their own item.
    """

    id: ItemId
    owner_id: VoterKey | None = None
    status: ItemStatus = ItemStatus.ACTIVE
    total_votes: int = Field(default=0, ge=0)
    unique_voters: int = Field(default=0, ge=0)
    last_vote_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        return self.status == ItemStatus.ACTIVE
