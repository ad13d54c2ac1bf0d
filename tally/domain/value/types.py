"""Domain value objects for the vote engine.

Value objects are immutable and defined by their values, not identity.
They encapsulate validation rules and business logic.
"""

import re
import unicodedata
from datetime import datetime
from enum import Enum

from pydantic import Field, field_validator

from tally.domain.error import ValidationError
from tally.domain.value.common import RootValueObject, ValueObject
from tally.domain.value.identifiers import VoteId, VoterKey

MAX_NAME_LENGTH = 50


class VoteStatus(str, Enum):
    """Lifecycle state of a vote attempt.

    A vote starts PENDING inside a transaction and moves exactly once to
    CONFIRMED or REJECTED.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class ItemStatus(str, Enum):
    """Whether an item accepts votes."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class ResolutionType(str, Enum):
    """How a conflicting vote was resolved."""

    REJECT = "reject"


class RejectionReason(str, Enum):
    """Why a vote attempt ended as rejected."""

    ALREADY_VOTED = "already-voted"


class DisplayName(RootValueObject[str]):
    """Human-readable voter name, 1-50 characters after trimming."""

    @field_validator("root")
    @classmethod
    def validate_display_name(cls, v: str) -> str:
        """Trim and bound the name."""
        v = v.strip()
        if len(v) < 1 or len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name must be 1-{MAX_NAME_LENGTH} characters")
        return v


class ConflictResolution(ValueObject):
    """Audit record attached to a vote that lost a conflict.

    ``original_vote_id`` points at the confirmed vote that won; it is None when
    the sweep rejects an orphaned vote, in which case ``reason`` says why.
    """

    original_vote_id: VoteId | None = None
    resolution_type: ResolutionType = ResolutionType.REJECT
    resolved_at: datetime = Field(default_factory=datetime.now)
    reason: str | None = None


def derive_voter_key(name: str) -> VoterKey:
    """Derive the voter identity key from a human-readable name.

    Lowercases, strips diacritics and collapses whitespace runs to a single
    hyphen. Deriving from an already-derived key returns it unchanged.

    Raises:
        ValidationError: If nothing usable is left of the name
    """
    if not isinstance(name, str):
        raise ValidationError("voterId", "Voter id must be a string")

    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    key = re.sub(r"\s+", "-", stripped.strip().lower())

    if not key:
        raise ValidationError("voterId", "Voter id must not be empty")
    if len(key) > MAX_NAME_LENGTH:
        raise ValidationError(
            "voterId", f"Voter id must be at most {MAX_NAME_LENGTH} characters"
        )
    return VoterKey(key)
