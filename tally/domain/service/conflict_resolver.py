"""Conflict resolution for concurrent or repeated vote attempts."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from tally.domain.model.vote import Vote
from tally.domain.repository import VoteRepository
from tally.domain.value import ConflictResolution, ResolutionType, VoteStatus

from .base import Service


@dataclass(frozen=True)
class ConflictVerdict:
    """Outcome of resolving a candidate vote.

    ``action`` is None when the candidate may be confirmed, REJECT when an
    earlier confirmed vote for the same pair already exists.
    """

    resolved: bool = True
    action: Optional[ResolutionType] = None
    original_vote: Optional[Vote] = None

    @property
    def should_reject(self) -> bool:
        return self.action == ResolutionType.REJECT


@dataclass(frozen=True)
class VotesValidation:
    """Result of checking a group of confirmed votes."""

    valid: bool
    reason: Optional[str] = None


class ConflictResolver(Service):
    """Decides whether a pending vote may be confirmed.

    The decision reads inside the caller's transaction. The unique index on
    confirmed pairs remains the backstop for attempts that race past it.
    """

    def decide(self, candidate: Vote, existing: Optional[Vote]) -> ConflictVerdict:
        """Pure decision given the confirmed vote found for the pair, if any."""
        if existing is None or existing.id == candidate.id:
            return ConflictVerdict()
        if existing.status != VoteStatus.CONFIRMED:
            return ConflictVerdict()
        return ConflictVerdict(action=ResolutionType.REJECT, original_vote=existing)

    async def resolve(self, candidate: Vote, votes: VoteRepository) -> ConflictVerdict:
        """Look up any other confirmed vote for the candidate's pair and decide.

        Args:
            candidate: The pending vote
            votes: Vote repository bound to the current transaction

        Returns:
            The verdict
        """
        existing = await votes.find_confirmed(
            candidate.voter_id, candidate.item_id, exclude_id=candidate.id
        )
        return self.decide(candidate, existing)

    @staticmethod
    def resolution_for(
        original: Optional[Vote],
        reason: Optional[str] = None,
        resolved_at: Optional[datetime] = None,
    ) -> ConflictResolution:
        """Audit record for a vote that loses to ``original``."""
        return ConflictResolution(
            original_vote_id=original.id if original else None,
            resolution_type=ResolutionType.REJECT,
            resolved_at=resolved_at or datetime.now(),
            reason=reason,
        )


def validate_voter_votes(votes: Iterable[Vote]) -> VotesValidation:
    """Check one voter's confirmed votes: one per item, all confirmed."""
    votes = list(votes)
    if not votes:
        return VotesValidation(valid=True)

    if len({v.item_id for v in votes}) != len(votes):
        return VotesValidation(
            valid=False, reason="Voter has duplicate votes for the same item"
        )
    if any(v.status != VoteStatus.CONFIRMED for v in votes):
        return VotesValidation(
            valid=False, reason="Voter has votes with invalid status"
        )
    return VotesValidation(valid=True)


def validate_item_votes(votes: Iterable[Vote]) -> VotesValidation:
    """Check one item's confirmed votes: one per voter, all confirmed."""
    votes = list(votes)
    if not votes:
        return VotesValidation(valid=True)

    seen: set[str] = set()
    for vote in votes:
        if vote.voter_id in seen:
            return VotesValidation(
                valid=False,
                reason=f"Voter {vote.voter_id} has multiple votes for this item",
            )
        seen.add(vote.voter_id)

    if any(v.status != VoteStatus.CONFIRMED for v in votes):
        return VotesValidation(valid=False, reason="Item has votes with invalid status")
    return VotesValidation(valid=True)
