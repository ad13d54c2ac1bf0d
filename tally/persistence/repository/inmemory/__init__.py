"""In-memory repository implementations for testing."""

from .item import InMemoryItemRepository
from .store import InMemorySession, InMemoryStore, StoreState
from .unit_of_work import InMemoryUnitOfWork
from .vote import InMemoryVoteRepository
from .voter import InMemoryVoterRepository

__all__ = [
    "InMemoryStore",
    "InMemorySession",
    "StoreState",
    "InMemoryUnitOfWork",
    "InMemoryItemRepository",
    "InMemoryVoteRepository",
    "InMemoryVoterRepository",
]
