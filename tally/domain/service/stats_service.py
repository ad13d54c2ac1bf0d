"""Cache-backed read path for vote aggregates."""

from typing import List

import logfire

from tally.config import QuerySettings
from tally.domain.error import ValidationError
from tally.domain.model import ItemStats, UserVote, VoteHistoryEntry
from tally.domain.repository import TransactionRunner, UnitOfWork
from tally.domain.value import ItemId, derive_voter_key
from tally.util.cache import CacheKeys, ResultCaches

from .base import Service


class VoteQueryService(Service):
    """Serves the aggregate reads, computing them on a cache miss.

    Reads run in their own rolled-back session; the write path keeps the
    cached copies fresh by invalidating the keys it touches. A read that
    overlaps an invalidation does not store its result.
    """

    def __init__(
        self,
        transaction_runner: TransactionRunner,
        caches: ResultCaches,
        settings: QuerySettings,
    ) -> None:
        self.transaction_runner = transaction_runner
        self.caches = caches
        self.settings = settings

    async def get_all_item_stats(self) -> List[ItemStats]:
        """Confirmed vote counts for every active item, zero included."""
        cached = self.caches.item_stats.get(CacheKeys.ALL_ITEM_STATS)
        if cached is not None:
            return cached
        generation = self.caches.item_stats.generation

        async def work(uow: UnitOfWork) -> List[ItemStats]:
            items = await uow.items.find_active()
            counts = await uow.votes.count_confirmed_by_item()
            return [
                ItemStats(item_id=item.id, vote_count=counts.get(item.id, 0))
                for item in items
            ]

        with logfire.span("query.all_item_stats"):
            stats = await self.transaction_runner.read(work, label="all_item_stats")
        self.caches.item_stats.set_if_current(
            CacheKeys.ALL_ITEM_STATS, stats, generation
        )
        return stats

    async def get_item_stats(self, item_id: str) -> ItemStats:
        """Confirmed vote count for one item (zero if it has none)."""
        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationError("itemId", "Item id is required")
        item_key = ItemId(item_id.strip())

        key = CacheKeys.item_stats(item_key)
        cached = self.caches.item_stats.get(key)
        if cached is not None:
            return cached
        generation = self.caches.item_stats.generation

        async def work(uow: UnitOfWork) -> ItemStats:
            counts = await uow.votes.count_confirmed_by_item()
            return ItemStats(item_id=item_key, vote_count=counts.get(item_key, 0))

        stats = await self.transaction_runner.read(work, label="item_stats")
        self.caches.item_stats.set_if_current(key, stats, generation)
        return stats

    async def get_vote_history(
        self, limit: int | None = None
    ) -> List[VoteHistoryEntry]:
        """Most recent confirmed votes, newest first.

        ``limit`` is clamped into ``[1, max_history_limit]``.
        """
        limit = self.clamp_limit(limit)
        key = CacheKeys.vote_history(limit)
        cached = self.caches.history.get(key)
        if cached is not None:
            return cached
        generation = self.caches.history.generation

        async def work(uow: UnitOfWork) -> List[VoteHistoryEntry]:
            votes = await uow.votes.find_recent_confirmed(limit)
            return [
                VoteHistoryEntry(
                    voter_id=v.voter_id, item_id=v.item_id, timestamp=v.timestamp
                )
                for v in votes
            ]

        history = await self.transaction_runner.read(work, label="vote_history")
        self.caches.history.set_if_current(key, history, generation)
        return history

    async def get_user_votes(self, voter_id: str) -> List[UserVote]:
        """A voter's confirmed votes, newest first.

        Raises:
            ValidationError: If the voter id is empty or malformed
        """
        voter_key = derive_voter_key(voter_id)
        key = CacheKeys.voter_votes(voter_key)
        cached = self.caches.voter_votes.get(key)
        if cached is not None:
            return cached
        generation = self.caches.voter_votes.generation

        async def work(uow: UnitOfWork) -> List[UserVote]:
            votes = await uow.votes.find_confirmed_by_voter(voter_key)
            return [UserVote(item_id=v.item_id, timestamp=v.timestamp) for v in votes]

        user_votes = await self.transaction_runner.read(work, label="user_votes")
        self.caches.voter_votes.set_if_current(key, user_votes, generation)
        return user_votes

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.settings.default_history_limit
        return max(1, min(int(limit), self.settings.max_history_limit))
