"""In-memory vote repository for testing."""

from collections import Counter
from typing import Optional

from sqlalchemy.exc import IntegrityError

from tally.domain.error import WriteConflictError
from tally.domain.model.vote import Vote
from tally.domain.repository.vote import VoteRepository
from tally.domain.value import ItemId, VoteId, VoterKey, VoteStatus
from tally.persistence.repository.inmemory.store import InMemorySession, StoreState


class InMemoryVoteRepository(VoteRepository):
    """In-memory implementation of VoteRepository for testing.

    Enforces the same rule as the partial unique index: at most one
    confirmed vote per (voter, item).
    """

    def __init__(self, session: InMemorySession) -> None:
        self._session = session

    async def find_by_id(self, vote_id: VoteId) -> Optional[Vote]:
        """Find a vote by ID."""
        state = await self._session.state()
        return state.votes.get(vote_id)

    async def find_confirmed(
        self,
        voter_id: VoterKey,
        item_id: ItemId,
        exclude_id: Optional[VoteId] = None,
    ) -> Optional[Vote]:
        """Find the confirmed vote for a pair."""
        state = await self._session.state()
        return self._confirmed_for(state, voter_id, item_id, exclude_id)

    async def find_by_voter_and_item(
        self, voter_id: VoterKey, item_id: ItemId
    ) -> list[Vote]:
        """Find every attempt for a pair, oldest first."""
        state = await self._session.state()
        return sorted(
            (
                v
                for v in state.votes.values()
                if v.voter_id == voter_id and v.item_id == item_id
            ),
            key=lambda v: v.timestamp,
        )

    async def find_confirmed_by_voter(self, voter_id: VoterKey) -> list[Vote]:
        """Find a voter's confirmed votes, most recent first."""
        votes = await self._all_confirmed()
        return sorted(
            (v for v in votes if v.voter_id == voter_id),
            key=lambda v: v.timestamp,
            reverse=True,
        )

    async def find_recent_confirmed(self, limit: int) -> list[Vote]:
        """Find the most recent confirmed votes."""
        votes = await self._all_confirmed()
        return sorted(votes, key=lambda v: v.timestamp, reverse=True)[:limit]

    async def find_all_confirmed(self) -> list[Vote]:
        """Find every confirmed vote, oldest first."""
        votes = await self._all_confirmed()
        return sorted(votes, key=lambda v: (v.timestamp, str(v.id)))

    async def count_confirmed_by_item(self) -> dict[ItemId, int]:
        """Count confirmed votes per item."""
        return dict(Counter(v.item_id for v in await self._all_confirmed()))

    async def save(self, vote: Vote) -> Vote:
        """Save a vote.

        Raises:
            IntegrityError: If the id exists, or the vote is confirmed and the
                pair already has a confirmed vote
        """
        state = await self._session.state()
        if vote.id in state.votes:
            raise IntegrityError("Duplicate vote id", None, Exception())
        self._check_unique_confirmed(state, vote)
        state.votes[vote.id] = vote
        return vote

    async def update_status(self, vote: Vote, expected_version: int) -> Vote:
        """Compare-and-swap on version."""
        state = await self._session.state()
        stored = state.votes.get(vote.id)
        if stored is None or stored.version != expected_version:
            raise WriteConflictError(
                f"Vote {vote.id} changed concurrently "
                f"(expected version {expected_version})"
            )
        self._check_unique_confirmed(state, vote)
        state.votes[vote.id] = vote
        return vote

    async def _all_confirmed(self) -> list[Vote]:
        state = await self._session.state()
        return [v for v in state.votes.values() if v.is_confirmed]

    @staticmethod
    def _confirmed_for(
        state: StoreState,
        voter_id: VoterKey,
        item_id: ItemId,
        exclude_id: Optional[VoteId] = None,
    ) -> Optional[Vote]:
        matches = sorted(
            (
                v
                for v in state.votes.values()
                if v.voter_id == voter_id
                and v.item_id == item_id
                and v.status == VoteStatus.CONFIRMED
                and v.id != exclude_id
            ),
            key=lambda v: v.timestamp,
        )
        return matches[0] if matches else None

    def _check_unique_confirmed(self, state: StoreState, vote: Vote) -> None:
        if not vote.is_confirmed:
            return
        if self._confirmed_for(state, vote.voter_id, vote.item_id, vote.id):
            raise IntegrityError(
                "Duplicate confirmed vote for pair", None, Exception()
            )
