"""PostgreSQL implementation of Voter repository."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, not_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from tally.domain.model import Voter
from tally.domain.repository import VoterRepository
from tally.domain.value import ItemId, VoterKey
from tally.persistence.mappers import row_to_voter, voter_to_dict
from tally.persistence.tables import voters_table


class PostgresVoterRepository(VoterRepository):
    """PostgreSQL implementation of VoterRepository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def find_by_key(self, key: VoterKey) -> Optional[Voter]:
        """Find a voter by identity key."""
        stmt = select(voters_table).where(voters_table.c.key == key)
        result = await self.session.execute(stmt)
        row = result.fetchone()
        return row_to_voter(row._asdict()) if row else None

    async def find_all(self) -> List[Voter]:
        """Find all voters."""
        stmt = select(voters_table).order_by(voters_table.c.key)
        result = await self.session.execute(stmt)
        return [row_to_voter(row._asdict()) for row in result.fetchall()]

    async def create_if_absent(self, voter: Voter) -> Voter:
        """Insert a voter unless the key is taken, then return the stored row."""
        stmt = (
            insert(voters_table)
            .values(**voter_to_dict(voter))
            .on_conflict_do_nothing(index_elements=[voters_table.c.key])
        )
        await self.session.execute(stmt)
        await self.session.flush()

        stored = await self.find_by_key(voter.key)
        return stored if stored is not None else voter

    async def record_vote(
        self, key: VoterKey, item_id: ItemId, voted_at: datetime
    ) -> bool:
        """Add the item to the voted set, counting it only if it was absent."""
        stmt = (
            update(voters_table)
            .where(
                and_(
                    voters_table.c.key == key,
                    not_(voters_table.c.voted_items.contains([item_id])),
                )
            )
            .values(
                voted_items=func.array_append(voters_table.c.voted_items, item_id),
                vote_count=voters_table.c.vote_count + 1,
                last_vote_at=voted_at,
                version=voters_table.c.version + 1,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def remove_vote(self, key: VoterKey, item_id: ItemId) -> bool:
        """Remove the item from the voted set, floor the counter at zero."""
        stmt = (
            update(voters_table)
            .where(
                and_(
                    voters_table.c.key == key,
                    voters_table.c.voted_items.contains([item_id]),
                )
            )
            .values(
                voted_items=func.array_remove(voters_table.c.voted_items, item_id),
                vote_count=func.greatest(voters_table.c.vote_count - 1, 0),
                version=voters_table.c.version + 1,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]
