"""PostgreSQL implementation of Vote repository."""

from typing import Dict, List, Optional

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tally.domain.error import WriteConflictError
from tally.domain.model import Vote
from tally.domain.repository import VoteRepository
from tally.domain.value import ItemId, VoteId, VoterKey, VoteStatus
from tally.persistence.mappers import resolution_to_json, row_to_vote, vote_to_dict
from tally.persistence.tables import votes_table

CONFIRMED = VoteStatus.CONFIRMED.value


class PostgresVoteRepository(VoteRepository):
    """PostgreSQL implementation of VoteRepository.

    The partial unique index on confirmed (voter_id, item_id) pairs surfaces
    here as ``IntegrityError`` from ``save`` and ``update_status``.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def find_by_id(self, vote_id: VoteId) -> Optional[Vote]:
        """Find a vote by ID."""
        stmt = select(votes_table).where(votes_table.c.id == vote_id)
        result = await self.session.execute(stmt)
        row = result.fetchone()
        return row_to_vote(row._asdict()) if row else None

    async def find_confirmed(
        self,
        voter_id: VoterKey,
        item_id: ItemId,
        exclude_id: Optional[VoteId] = None,
    ) -> Optional[Vote]:
        """Find the confirmed vote for a pair, ignoring ``exclude_id``."""
        conditions = [
            votes_table.c.voter_id == voter_id,
            votes_table.c.item_id == item_id,
            votes_table.c.status == CONFIRMED,
        ]
        if exclude_id is not None:
            conditions.append(votes_table.c.id != exclude_id)

        stmt = (
            select(votes_table)
            .where(and_(*conditions))
            .order_by(votes_table.c.timestamp)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        row = result.fetchone()
        return row_to_vote(row._asdict()) if row else None

    async def find_by_voter_and_item(
        self, voter_id: VoterKey, item_id: ItemId
    ) -> List[Vote]:
        """Find every attempt for a pair, oldest first."""
        stmt = (
            select(votes_table)
            .where(
                and_(
                    votes_table.c.voter_id == voter_id,
                    votes_table.c.item_id == item_id,
                )
            )
            .order_by(votes_table.c.timestamp)
        )
        result = await self.session.execute(stmt)
        return [row_to_vote(row._asdict()) for row in result.fetchall()]

    async def find_confirmed_by_voter(self, voter_id: VoterKey) -> List[Vote]:
        """Find a voter's confirmed votes, most recent first."""
        stmt = (
            select(votes_table)
            .where(
                and_(
                    votes_table.c.voter_id == voter_id,
                    votes_table.c.status == CONFIRMED,
                )
            )
            .order_by(votes_table.c.timestamp.desc())
        )
        result = await self.session.execute(stmt)
        return [row_to_vote(row._asdict()) for row in result.fetchall()]

    async def find_recent_confirmed(self, limit: int) -> List[Vote]:
        """Find the most recent confirmed votes."""
        stmt = (
            select(votes_table)
            .where(votes_table.c.status == CONFIRMED)
            .order_by(votes_table.c.timestamp.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [row_to_vote(row._asdict()) for row in result.fetchall()]

    async def find_all_confirmed(self) -> List[Vote]:
        """Find every confirmed vote, oldest first."""
        stmt = (
            select(votes_table)
            .where(votes_table.c.status == CONFIRMED)
            .order_by(votes_table.c.timestamp, votes_table.c.id)
        )
        result = await self.session.execute(stmt)
        return [row_to_vote(row._asdict()) for row in result.fetchall()]

    async def count_confirmed_by_item(self) -> Dict[ItemId, int]:
        """Count confirmed votes per item."""
        stmt = (
            select(votes_table.c.item_id, func.count().label("vote_count"))
            .where(votes_table.c.status == CONFIRMED)
            .group_by(votes_table.c.item_id)
        )
        result = await self.session.execute(stmt)
        return {ItemId(row.item_id): row.vote_count for row in result.fetchall()}

    async def save(self, vote: Vote) -> Vote:
        """Save a vote (create)."""
        stmt = insert(votes_table).values(**vote_to_dict(vote))
        await self.session.execute(stmt)
        await self.session.flush()
        return vote

    async def update_status(self, vote: Vote, expected_version: int) -> Vote:
        """Write the successor state if the stored version still matches."""
        stmt = (
            update(votes_table)
            .where(
                and_(
                    votes_table.c.id == vote.id,
                    votes_table.c.version == expected_version,
                )
            )
            .values(
                status=vote.status.value,
                version=vote.version,
                conflict_resolution=resolution_to_json(vote.conflict_resolution),
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise WriteConflictError(
                f"Vote {vote.id} changed concurrently "
                f"(expected version {expected_version})"
            )
        return vote
