"""Voter repository interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from tally.domain.model.voter import Voter
from tally.domain.value import ItemId, VoterKey


class VoterRepository(ABC):
    """Repository for Voter entity.

    Defines the contract for voter persistence operations.
    Implementations live in the infrastructure layer.
    """

    @abstractmethod
    async def find_by_key(self, key: VoterKey) -> Optional[Voter]:
        """Find a voter by identity key.

        Args:
            key: The voter's identity key

        Returns:
            The voter if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_all(self) -> List[Voter]:
        """Find all voters."""
        pass

    @abstractmethod
    async def create_if_absent(self, voter: Voter) -> Voter:
        """Insert a voter unless one with the same key exists.

        Concurrent first votes by the same voter both succeed here and see
        the same stored record.

        Args:
            voter: The voter to create

        Returns:
            The stored voter (the existing one if it was already there)
        """
        pass

    @abstractmethod
    async def record_vote(
        self, key: VoterKey, item_id: ItemId, voted_at: datetime
    ) -> bool:
        """Add the item to the voted set and bump the counter.

        Set-add semantics: if the item is already present nothing changes, so
        replaying this step never double counts.

        Returns:
            True if the item was added, False if it was already present
        """
        pass

    @abstractmethod
    async def remove_vote(self, key: VoterKey, item_id: ItemId) -> bool:
        """Remove the item from the voted set and decrement the counter.

        Returns:
            True if the item was removed, False if it was not present
        """
        pass
