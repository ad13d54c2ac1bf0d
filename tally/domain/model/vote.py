"""Vote entity.

A vote is created PENDING inside a transaction and transitions exactly once,
to CONFIRMED or REJECTED. A corrected vote is a new record, never an
in-place flip back. Rejected and pending attempts are kept as audit records.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import Field

from tally.domain.error import BusinessRuleViolationError
from tally.domain.model.common import DomainModel
from tally.domain.value import ConflictResolution, ItemId, VoteId, VoterKey, VoteStatus


class Vote(DomainModel):
    """Vote entity.

    Business rules:
    - At most one CONFIRMED vote per (voter_id, item_id), enforced by a
      partial unique index on confirmed votes
    - ``version`` increases by one on every persisted transition and is used
      as a compare-and-swap guard
    """

    id: VoteId
    voter_id: VoterKey
    item_id: ItemId
    owner_id: VoterKey | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
    status: VoteStatus = VoteStatus.PENDING
    version: int = 1
    conflict_resolution: ConflictResolution | None = None

    @classmethod
    def pending(
        cls,
        voter_id: VoterKey,
        item_id: ItemId,
        owner_id: VoterKey | None = None,
        timestamp: datetime | None = None,
    ) -> "Vote":
        """Create a fresh pending vote attempt."""
        return cls(
            id=VoteId(uuid4()),
            voter_id=voter_id,
            item_id=item_id,
            owner_id=owner_id,
            timestamp=timestamp or datetime.now(),
        )

    @property
    def is_confirmed(self) -> bool:
        return self.status == VoteStatus.CONFIRMED

    def confirm(self) -> "Vote":
        """Return the confirmed successor of this pending vote."""
        self._require_status(VoteStatus.PENDING, "confirm")
        return self.evolve(status=VoteStatus.CONFIRMED, version=self.version + 1)

    def reject(self, resolution: ConflictResolution) -> "Vote":
        """Return the rejected successor of this pending vote."""
        self._require_status(VoteStatus.PENDING, "reject")
        return self.evolve(
            status=VoteStatus.REJECTED,
            version=self.version + 1,
            conflict_resolution=resolution,
        )

    def revoke(self, resolution: ConflictResolution) -> "Vote":
        """Return the rejected successor of a confirmed vote.

        Only the consistency sweep does this, for votes whose voter or item
        vanished or that duplicate an earlier confirmed vote.
        """
        self._require_status(VoteStatus.CONFIRMED, "revoke")
        return self.evolve(
            status=VoteStatus.REJECTED,
            version=self.version + 1,
            conflict_resolution=resolution,
        )

    def _require_status(self, expected: VoteStatus, action: str) -> None:
        if self.status != expected:
            raise BusinessRuleViolationError(
                f"Cannot {action} vote {self.id} in status {self.status.value}"
            )
