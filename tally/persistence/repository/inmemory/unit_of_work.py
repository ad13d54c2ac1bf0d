"""In-memory unit of work for testing."""

from contextlib import AbstractAsyncContextManager

from tally.domain.repository.unit_of_work import UnitOfWork
from tally.persistence.repository.inmemory.item import InMemoryItemRepository
from tally.persistence.repository.inmemory.store import InMemorySession
from tally.persistence.repository.inmemory.vote import InMemoryVoteRepository
from tally.persistence.repository.inmemory.voter import InMemoryVoterRepository


class InMemoryUnitOfWork(UnitOfWork):
    """The in-memory repositories bound to one ``InMemorySession``."""

    def __init__(self, session: InMemorySession) -> None:
        self.session = session
        self.voters = InMemoryVoterRepository(session)
        self.items = InMemoryItemRepository(session)
        self.votes = InMemoryVoteRepository(session)

    def savepoint(self) -> AbstractAsyncContextManager[None]:
        return self.session.savepoint()
