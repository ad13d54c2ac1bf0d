"""Repository interfaces for the vote engine.

Repository interfaces are defined in the domain layer (dependency inversion).
Implementations live in the infrastructure layer.
"""

from tally.domain.repository.item import ItemRepository
from tally.domain.repository.unit_of_work import (
    TransactionRunner,
    UnitOfWork,
    Verifier,
    Work,
)
from tally.domain.repository.vote import VoteRepository
from tally.domain.repository.voter import VoterRepository

__all__ = [
    "VoterRepository",
    "ItemRepository",
    "VoteRepository",
    "UnitOfWork",
    "TransactionRunner",
    "Work",
    "Verifier",
]
