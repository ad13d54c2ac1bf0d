"""In-memory transactional store for testing.

Stands in for the database behind the transaction manager: sessions are
serialised by a single lock taken on first use, work on a private copy of
the data and publish it on commit. Commit failures can be injected to
exercise retry and uncertain-commit handling.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Tuple

from tally.domain.model import Item, Vote, Voter
from tally.domain.value import DisplayName, ItemId, ItemStatus, VoteId, VoterKey


@dataclass
class StoreState:
    """Tables of the store. Entities are frozen, so a shallow copy isolates."""

    voters: Dict[VoterKey, Voter] = field(default_factory=dict)
    items: Dict[ItemId, Item] = field(default_factory=dict)
    votes: Dict[VoteId, Vote] = field(default_factory=dict)

    def copy(self) -> "StoreState":
        return StoreState(
            voters=dict(self.voters), items=dict(self.items), votes=dict(self.votes)
        )

    def restore(self, other: "StoreState") -> None:
        """Replace contents in place so holders of this object see the rollback."""
        self.voters.clear()
        self.voters.update(other.voters)
        self.items.clear()
        self.items.update(other.items)
        self.votes.clear()
        self.votes.update(other.votes)


class InMemorySession:
    """One transactional session against an ``InMemoryStore``.

    Mirrors the parts of ``AsyncSession`` the transaction manager uses: it
    begins on first use, ``commit``/``rollback`` end the transaction and
    ``async with`` rolls back whatever is left open.
    """

    def __init__(self, store: "InMemoryStore") -> None:
        self._store = store
        self._state: Optional[StoreState] = None
        self.closed = False

    async def __aenter__(self) -> "InMemorySession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def in_transaction(self) -> bool:
        return self._state is not None

    async def state(self) -> StoreState:
        """The working copy, beginning the transaction if needed."""
        if self.closed:
            raise RuntimeError("Session is closed")
        if self._state is None:
            await self._store._lock.acquire()
            self._state = self._store._state.copy()
        return self._state

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        state = await self.state()
        saved = state.copy()
        try:
            yield
        except BaseException:
            state.restore(saved)
            raise

    async def commit(self) -> None:
        if self._state is None:
            return
        failure = self._store._take_commit_failure()
        if failure is not None and not failure[1]:
            self._end()
            raise failure[0]

        self._store._state = self._state
        self._store.commits += 1
        self._end()

        if failure is not None:
            # Landed, but the caller is told otherwise
            raise failure[0]

    async def rollback(self) -> None:
        if self._state is not None:
            self._store.rollbacks += 1
            self._end()

    async def close(self) -> None:
        await self.rollback()
        if not self.closed:
            self.closed = True
            self._store.sessions_closed += 1

    def _end(self) -> None:
        self._state = None
        self._store._lock.release()


class InMemoryStore:
    """Shared data behind in-memory sessions, plus seeding helpers for tests."""

    def __init__(self) -> None:
        self._state = StoreState()
        self._lock = asyncio.Lock()
        self._commit_failures: List[Tuple[BaseException, bool]] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.commits = 0
        self.rollbacks = 0

    def session(self) -> InMemorySession:
        """Open a new session (usable as an async context manager)."""
        self.sessions_opened += 1
        return InMemorySession(self)

    @property
    def open_sessions(self) -> int:
        return self.sessions_opened - self.sessions_closed

    def inject_commit_failure(
        self, error: BaseException, *, after_apply: bool = False
    ) -> None:
        """Make the next commit raise ``error``.

        With ``after_apply`` the changes are published before the error is
        raised, simulating a commit that landed but whose acknowledgement
        was lost. Failures queue up and are consumed one per commit.
        """
        self._commit_failures.append((error, after_apply))

    def _take_commit_failure(self) -> Optional[Tuple[BaseException, bool]]:
        if self._commit_failures:
            return self._commit_failures.pop(0)
        return None

    # Seeding and inspection helpers bypass transactions and constraints

    @property
    def voters(self) -> Dict[VoterKey, Voter]:
        return self._state.voters

    @property
    def items(self) -> Dict[ItemId, Item]:
        return self._state.items

    @property
    def votes(self) -> Dict[VoteId, Vote]:
        return self._state.votes

    def add_item(
        self,
        item_id: str,
        owner_id: Optional[str] = None,
        status: ItemStatus = ItemStatus.ACTIVE,
        total_votes: int = 0,
    ) -> Item:
        item = Item(
            id=ItemId(item_id),
            owner_id=VoterKey(owner_id) if owner_id else None,
            status=status,
            total_votes=total_votes,
            unique_voters=total_votes,
        )
        self._state.items[item.id] = item
        return item

    def add_voter(
        self,
        key: str,
        voted_items: Tuple[str, ...] = (),
        vote_count: Optional[int] = None,
    ) -> Voter:
        voter = Voter(
            key=VoterKey(key),
            display_name=DisplayName(key),
            voted_items=frozenset(ItemId(i) for i in voted_items),
            vote_count=len(voted_items) if vote_count is None else vote_count,
            last_vote_at=datetime.now() if voted_items else None,
        )
        self._state.voters[voter.key] = voter
        return voter

    def add_vote(self, vote: Vote) -> Vote:
        self._state.votes[vote.id] = vote
        return vote

    def remove_voter(self, key: str) -> None:
        del self._state.voters[VoterKey(key)]

    def remove_item(self, item_id: str) -> None:
        del self._state.items[ItemId(item_id)]
