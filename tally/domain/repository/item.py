"""Item repository interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from tally.domain.model.item import Item
from tally.domain.value import ItemId


class ItemRepository(ABC):
    """Repository for Item entity.

    Items are created and deleted outside the engine; the engine only reads
    them and maintains their vote stats.
    """

    @abstractmethod
    async def find_by_id(self, item_id: ItemId) -> Optional[Item]:
        """Find an item by ID.

        Args:
            item_id: The item's stable id

        Returns:
            The item if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_active(self) -> List[Item]:
        """Find all items that accept votes."""
        pass

    @abstractmethod
    async def find_all(self) -> List[Item]:
        """Find all items regardless of status."""
        pass

    @abstractmethod
    async def save(self, item: Item) -> Item:
        """Save an item (create)."""
        pass

    @abstractmethod
    async def record_vote(self, item_id: ItemId, voted_at: datetime) -> bool:
        """Atomically increment total votes and unique voters.

        Returns:
            True if the item exists and was updated
        """
        pass

    @abstractmethod
    async def remove_vote(self, item_id: ItemId) -> bool:
        """Atomically decrement total votes and unique voters (floor 0).

        Returns:
            True if the item exists and was updated
        """
        pass

    @abstractmethod
    async def set_tally(self, item_id: ItemId, confirmed_votes: int) -> bool:
        """Overwrite both counters with a re-derived confirmed vote count.

        Returns:
            True if the item exists and was updated
        """
        pass
