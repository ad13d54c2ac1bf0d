"""In-memory item repository for testing."""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError

from tally.domain.model.item import Item
from tally.domain.repository.item import ItemRepository
from tally.domain.value import ItemId
from tally.persistence.repository.inmemory.store import InMemorySession


class InMemoryItemRepository(ItemRepository):
    """In-memory implementation of ItemRepository for testing."""

    def __init__(self, session: InMemorySession) -> None:
        self._session = session

    async def find_by_id(self, item_id: ItemId) -> Optional[Item]:
        """Find an item by ID."""
        state = await self._session.state()
        return state.items.get(item_id)

    async def find_active(self) -> list[Item]:
        """Find all items that accept votes."""
        return [item for item in await self.find_all() if item.is_active]

    async def find_all(self) -> list[Item]:
        """Find all items regardless of status."""
        state = await self._session.state()
        return sorted(state.items.values(), key=lambda i: i.id)

    async def save(self, item: Item) -> Item:
        """Save an item.

        Raises:
            IntegrityError: If an item with the same id exists
        """
        state = await self._session.state()
        if item.id in state.items:
            raise IntegrityError("Duplicate item", None, Exception())
        state.items[item.id] = item
        return item

    async def record_vote(self, item_id: ItemId, voted_at: datetime) -> bool:
        """Increment both counters."""
        state = await self._session.state()
        item = state.items.get(item_id)
        if item is None:
            return False
        state.items[item_id] = item.model_copy(
            update={
                "total_votes": item.total_votes + 1,
                "unique_voters": item.unique_voters + 1,
                "last_vote_at": voted_at,
            }
        )
        return True

    async def remove_vote(self, item_id: ItemId) -> bool:
        """Decrement both counters, never below zero."""
        state = await self._session.state()
        item = state.items.get(item_id)
        if item is None:
            return False
        state.items[item_id] = item.model_copy(
            update={
                "total_votes": max(item.total_votes - 1, 0),
                "unique_voters": max(item.unique_voters - 1, 0),
            }
        )
        return True

    async def set_tally(self, item_id: ItemId, confirmed_votes: int) -> bool:
        """Overwrite both counters."""
        state = await self._session.state()
        item = state.items.get(item_id)
        if item is None:
            return False
        state.items[item_id] = item.model_copy(
            update={"total_votes": confirmed_votes, "unique_voters": confirmed_votes}
        )
        return True
