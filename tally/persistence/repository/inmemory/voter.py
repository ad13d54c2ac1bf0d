"""In-memory voter repository for testing."""

from datetime import datetime
from typing import Optional

from tally.domain.model.voter import Voter
from tally.domain.repository.voter import VoterRepository
from tally.domain.value import ItemId, VoterKey
from tally.persistence.repository.inmemory.store import InMemorySession


class InMemoryVoterRepository(VoterRepository):
    """In-memory implementation of VoterRepository for testing."""

    def __init__(self, session: InMemorySession) -> None:
        self._session = session

    async def find_by_key(self, key: VoterKey) -> Optional[Voter]:
        """Find a voter by identity key."""
        state = await self._session.state()
        return state.voters.get(key)

    async def find_all(self) -> list[Voter]:
        """Find all voters."""
        state = await self._session.state()
        return sorted(state.voters.values(), key=lambda v: v.key)

    async def create_if_absent(self, voter: Voter) -> Voter:
        """Insert a voter unless the key is taken."""
        state = await self._session.state()
        return state.voters.setdefault(voter.key, voter)

    async def record_vote(
        self, key: VoterKey, item_id: ItemId, voted_at: datetime
    ) -> bool:
        """Add the item to the voted set if absent."""
        state = await self._session.state()
        voter = state.voters.get(key)
        if voter is None or item_id in voter.voted_items:
            return False

        state.voters[key] = voter.model_copy(
            update={
                "voted_items": voter.voted_items | {item_id},
                "vote_count": voter.vote_count + 1,
                "last_vote_at": voted_at,
                "version": voter.version + 1,
            }
        )
        return True

    async def remove_vote(self, key: VoterKey, item_id: ItemId) -> bool:
        """Remove the item from the voted set if present."""
        state = await self._session.state()
        voter = state.voters.get(key)
        if voter is None or item_id not in voter.voted_items:
            return False

        state.voters[key] = voter.model_copy(
            update={
                "voted_items": voter.voted_items - {item_id},
                "vote_count": max(voter.vote_count - 1, 0),
                "version": voter.version + 1,
            }
        )
        return True
