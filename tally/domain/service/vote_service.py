"""Vote domain service: the vote submission pipeline."""

from datetime import datetime
from typing import Optional

import logfire
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from tally.domain.error import ERROR_METADATA, ErrorCode, ValidationError
from tally.domain.model import (
    Item,
    Vote,
    VoteConfirmed,
    VoteFailed,
    VoteOutcome,
    VoteRejected,
    Voter,
)
from tally.domain.repository import TransactionRunner, UnitOfWork
from tally.domain.value import DisplayName, ItemId, VoterKey, derive_voter_key
from tally.util.cache import ResultCaches

from .base import Service
from .conflict_resolver import ConflictResolver

MAX_ITEM_ID_LENGTH = 255


class VoteService(Service):
    """Domain service for submitting votes."""

    def __init__(
        self,
        transaction_runner: TransactionRunner,
        conflict_resolver: ConflictResolver,
        caches: ResultCaches,
    ) -> None:
        """Initialize vote service.

        Args:
            transaction_runner: Runs the pipeline under a retried transaction
            conflict_resolver: Decides confirm vs reject for pending votes
            caches: Result caches invalidated after a confirmed vote
        """
        self.transaction_runner = transaction_runner
        self.conflict_resolver = conflict_resolver
        self.caches = caches

    async def submit_vote(
        self, voter_id: str, item_id: str, owner_id: Optional[str] = None
    ) -> VoteOutcome:
        """Submit one vote for (voter, item).

        Input problems and self-votes come back as ``VoteFailed`` without a
        transaction being opened. Otherwise the pipeline runs in one
        transaction: load or create the voter, write a pending vote, resolve
        conflicts, then either reject it or confirm it and update the voter's
        voted set and the item's tally.

        Args:
            voter_id: Human-readable voter name, normalised into the voter key
            item_id: Item being voted for
            owner_id: The item's submitter, if the caller knows it

        Returns:
            VoteConfirmed, VoteRejected (already voted) or VoteFailed

        Raises:
            TransactionError: Fatal failure or retries exhausted
            OperationTimeoutError: An attempt exceeded its deadline
        """
        with logfire.span(
            "vote_service.submit_vote", voter_id=voter_id, item_id=item_id
        ):
            try:
                voter_key = derive_voter_key(voter_id)
                display_name = self._display_name(voter_id)
                item_key = self._item_id(item_id)
                owner_key = self._owner_key(owner_id)
            except ValidationError as e:
                logfire.info("Vote rejected by validation", field=e.field)
                return VoteFailed(
                    code=ErrorCode.VALIDATION_ERROR, detail=e.message, field=e.field
                )

            if owner_key is not None and owner_key == voter_key:
                logfire.warn("Self-vote attempt", voter_id=voter_key, item_id=item_key)
                return self._self_vote()

            async def work(uow: UnitOfWork) -> VoteOutcome:
                return await self._submit(
                    uow, voter_key, display_name, item_key, owner_key
                )

            outcome = await self.transaction_runner.run(
                work, verify=self._landed, label="submit_vote"
            )

            if isinstance(outcome, VoteConfirmed):
                self.caches.invalidate_vote(voter_key, item_key)
                logfire.info(
                    "Vote confirmed",
                    vote_id=str(outcome.vote.id),
                    voter_id=voter_key,
                    item_id=item_key,
                )
            elif isinstance(outcome, VoteRejected):
                logfire.info(
                    "Duplicate vote rejected",
                    voter_id=voter_key,
                    item_id=item_key,
                    original_vote_id=str(outcome.original_vote_id),
                )
            return outcome

    async def _submit(
        self,
        uow: UnitOfWork,
        voter_key: VoterKey,
        display_name: DisplayName,
        item_id: ItemId,
        owner_key: Optional[VoterKey],
    ) -> VoteOutcome:
        """One attempt of the pipeline. Every read and write goes through ``uow``."""
        item = await uow.items.find_by_id(item_id)
        if item is None or not item.is_active:
            return self._unavailable(item, item_id)

        if item.owner_id is not None and item.owner_id == voter_key:
            logfire.warn("Self-vote attempt", voter_id=voter_key, item_id=item_id)
            return self._self_vote()

        voter = await uow.voters.find_by_key(voter_key)
        if voter is None:
            voter = await uow.voters.create_if_absent(
                Voter(key=voter_key, display_name=display_name)
            )

        # Fast path: the voter document already lists the item
        if voter.has_voted_for(item_id):
            original = await uow.votes.find_confirmed(voter_key, item_id)
            return VoteRejected(original_vote_id=original.id if original else None)

        now = datetime.now()
        vote = await uow.votes.save(
            Vote.pending(voter_key, item_id, owner_key or item.owner_id, now)
        )

        verdict = await self.conflict_resolver.resolve(vote, uow.votes)
        if verdict.should_reject:
            return await self._reject(uow, vote, verdict.original_vote)

        try:
            async with uow.savepoint():
                confirmed = await uow.votes.update_status(vote.confirm(), vote.version)
        except IntegrityError:
            # A concurrent attempt confirmed the same pair first
            logfire.warn(
                "Confirmed vote already exists for pair",
                voter_id=voter_key,
                item_id=item_id,
            )
            original = await uow.votes.find_confirmed(
                voter_key, item_id, exclude_id=vote.id
            )
            return await self._reject(uow, vote, original)

        if not await uow.voters.record_vote(voter_key, item_id, now):
            logfire.warn(
                "Voted set already listed item", voter_id=voter_key, item_id=item_id
            )
        await uow.items.record_vote(item_id, now)
        return VoteConfirmed(vote=confirmed)

    async def _reject(
        self, uow: UnitOfWork, vote: Vote, original: Optional[Vote]
    ) -> VoteRejected:
        """Persist the rejected audit record; the transaction still commits."""
        resolution = self.conflict_resolver.resolution_for(original)
        rejected = await uow.votes.update_status(vote.reject(resolution), vote.version)
        return VoteRejected(
            vote=rejected, original_vote_id=original.id if original else None
        )

    @staticmethod
    async def _landed(uow: UnitOfWork, outcome: VoteOutcome) -> bool:
        """Whether the vote written by an attempt is stored in its final state."""
        vote = getattr(outcome, "vote", None)
        if vote is None:
            # Nothing but possibly a new voter row was written
            return True
        stored = await uow.votes.find_by_id(vote.id)
        return stored is not None and stored.status == vote.status

    @staticmethod
    def _unavailable(item: Optional[Item], item_id: ItemId) -> VoteFailed:
        if item is None:
            logfire.info("Vote for unknown item", item_id=item_id)
            return VoteFailed(
                code=ErrorCode.VALIDATION_ERROR,
                detail=f"Item {item_id} not found",
                field="itemId",
            )
        logfire.info("Vote for inactive item", item_id=item_id)
        return VoteFailed(
            code=ErrorCode.VALIDATION_ERROR,
            detail=f"Item {item_id} is not accepting votes",
            field="itemId",
        )

    @staticmethod
    def _self_vote() -> VoteFailed:
        return VoteFailed(
            code=ErrorCode.SELF_VOTE,
            detail=ERROR_METADATA[ErrorCode.SELF_VOTE].user_message,
            field="ownerId",
        )

    @staticmethod
    def _display_name(voter_id: str) -> DisplayName:
        try:
            return DisplayName(" ".join(voter_id.split()))
        except PydanticValidationError:
            raise ValidationError("voterId", "Voter name must be 1-50 characters")

    @staticmethod
    def _owner_key(owner_id: Optional[str]) -> Optional[VoterKey]:
        if owner_id is None or (isinstance(owner_id, str) and not owner_id.strip()):
            return None
        try:
            return derive_voter_key(owner_id)
        except ValidationError as e:
            raise ValidationError("ownerId", e.message.replace("Voter", "Owner"))

    @staticmethod
    def _item_id(item_id: str) -> ItemId:
        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationError("itemId", "Item id is required")
        item_id = item_id.strip()
        if len(item_id) > MAX_ITEM_ID_LENGTH:
            raise ValidationError(
                "itemId", f"Item id must be at most {MAX_ITEM_ID_LENGTH} characters"
            )
        return ItemId(item_id)
