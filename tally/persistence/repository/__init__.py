"""PostgreSQL repository implementations."""

from tally.persistence.repository.item import PostgresItemRepository
from tally.persistence.repository.vote import PostgresVoteRepository
from tally.persistence.repository.voter import PostgresVoterRepository

__all__ = [
    "PostgresVoterRepository",
    "PostgresItemRepository",
    "PostgresVoteRepository",
]
