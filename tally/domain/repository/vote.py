"""Vote repository interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from tally.domain.model.vote import Vote
from tally.domain.value import ItemId, VoteId, VoterKey


class VoteRepository(ABC):
    """Vote attempts and their status history.

    Every attempt is kept, rejected ones included, as an audit trail. At most
    one vote per (voter, item) pair may be confirmed at a time.
    """

    @abstractmethod
    async def find_by_id(self, vote_id: VoteId) -> Optional[Vote]:
        """Load a vote in whatever status it is, or None."""
        pass

    @abstractmethod
    async def find_confirmed(
        self,
        voter_id: VoterKey,
        item_id: ItemId,
        exclude_id: Optional[VoteId] = None,
    ) -> Optional[Vote]:
        """Find the confirmed vote for a (voter, item) pair.

        Args:
            voter_id: The voter's key
            item_id: The item's id
            exclude_id: Vote to ignore, typically the candidate itself

        Returns:
            The confirmed vote if one exists, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_voter_and_item(
        self, voter_id: VoterKey, item_id: ItemId
    ) -> List[Vote]:
        """Find every vote attempt for a pair, including rejected audit records."""
        pass

    @abstractmethod
    async def find_confirmed_by_voter(self, voter_id: VoterKey) -> List[Vote]:
        """Find a voter's confirmed votes, most recent first."""
        pass

    @abstractmethod
    async def find_recent_confirmed(self, limit: int) -> List[Vote]:
        """Find the most recent confirmed votes, most recent first."""
        pass

    @abstractmethod
    async def find_all_confirmed(self) -> List[Vote]:
        """Find every confirmed vote, oldest first."""
        pass

    @abstractmethod
    async def count_confirmed_by_item(self) -> Dict[ItemId, int]:
        """Count confirmed votes per item (items without votes are omitted)."""
        pass

    @abstractmethod
    async def save(self, vote: Vote) -> Vote:
        """Insert a new vote attempt, usually a pending one.

        Raises:
            IntegrityError: If the vote is confirmed and the pair already has
                a confirmed vote
        """
        pass

    @abstractmethod
    async def update_status(self, vote: Vote, expected_version: int) -> Vote:
        """Persist a status transition with a compare-and-swap on version.

        Args:
            vote: The successor vote (status, version and resolution set)
            expected_version: Version the stored row must still have

        Returns:
            The updated vote

        Raises:
            WriteConflictError: If the stored version no longer matches
            IntegrityError: If confirming would create a second confirmed
                vote for the pair
        """
        pass
