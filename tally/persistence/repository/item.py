"""PostgreSQL implementation of Item repository."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tally.domain.model import Item
from tally.domain.repository import ItemRepository
from tally.domain.value import ItemId, ItemStatus
from tally.persistence.mappers import item_to_dict, row_to_item
from tally.persistence.tables import items_table


class PostgresItemRepository(ItemRepository):
    """PostgreSQL implementation of ItemRepository.

    Counter updates are single UPDATE statements, so concurrent confirmed
    votes for the same item never lose an increment.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_id(self, item_id: ItemId) -> Optional[Item]:
        """Find an item by ID."""
        stmt = select(items_table).where(items_table.c.id == item_id)
        result = await self.session.execute(stmt)
        row = result.fetchone()
        return row_to_item(row._asdict()) if row else None

    async def find_active(self) -> List[Item]:
        """Find all items that accept votes."""
        stmt = (
            select(items_table)
            .where(items_table.c.status == ItemStatus.ACTIVE.value)
            .order_by(items_table.c.id)
        )
        result = await self.session.execute(stmt)
        return [row_to_item(row._asdict()) for row in result.fetchall()]

    async def find_all(self) -> List[Item]:
        """Find all items regardless of status."""
        stmt = select(items_table).order_by(items_table.c.id)
        result = await self.session.execute(stmt)
        return [row_to_item(row._asdict()) for row in result.fetchall()]

    async def save(self, item: Item) -> Item:
        """Save an item (create)."""
        stmt = insert(items_table).values(**item_to_dict(item))
        await self.session.execute(stmt)
        await self.session.flush()
        return item

    async def record_vote(self, item_id: ItemId, voted_at: datetime) -> bool:
        """Increment both counters and stamp the last vote time."""
        stmt = (
            update(items_table)
            .where(items_table.c.id == item_id)
            .values(
                total_votes=items_table.c.total_votes + 1,
                unique_voters=items_table.c.unique_voters + 1,
                last_vote_at=voted_at,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def remove_vote(self, item_id: ItemId) -> bool:
        """Decrement both counters, never below zero."""
        stmt = (
            update(items_table)
            .where(items_table.c.id == item_id)
            .values(
                total_votes=func.greatest(items_table.c.total_votes - 1, 0),
                unique_voters=func.greatest(items_table.c.unique_voters - 1, 0),
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def set_tally(self, item_id: ItemId, confirmed_votes: int) -> bool:
        """Overwrite both counters with a re-derived count."""
        stmt = (
            update(items_table)
            .where(items_table.c.id == item_id)
            .values(total_votes=confirmed_votes, unique_voters=confirmed_votes)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]
