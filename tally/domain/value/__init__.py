"""Domain value objects for the vote engine."""

from tally.domain.value.identifiers import ItemId, VoteId, VoterKey
from tally.domain.value.types import (
    ConflictResolution,
    DisplayName,
    ItemStatus,
    RejectionReason,
    ResolutionType,
    VoteStatus,
    derive_voter_key,
)

__all__ = [
    # Identifiers
    "VoterKey",
    "ItemId",
    "VoteId",
    # Types
    "VoteStatus",
    "ItemStatus",
    "ResolutionType",
    "RejectionReason",
    "ConflictResolution",
    "DisplayName",
    "derive_voter_key",
]
