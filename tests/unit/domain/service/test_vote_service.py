"""Unit tests for VoteService submission pipeline."""

import asyncio

import pytest

from tally.domain.error import (
    CommitOutcomeUnknownError,
    ErrorCode,
    TransactionError,
    WriteConflictError,
)
from tally.domain.model import Vote, VoteConfirmed, VoteFailed, VoteRejected
from tally.domain.repository import TransactionRunner
from tally.domain.service import (
    ConflictResolver,
    ConflictVerdict,
    VoteQueryService,
    VoteService,
)
from tally.domain.value import ItemId, ItemStatus, VoterKey, VoteStatus
from tally.persistence.repository.inmemory import InMemoryStore
from tally.util.cache import ResultCaches
from tests.conftest import make_vote, seed_confirmed
from tests.harness import create_env_fixture

# Unit test fixture
unit_env = create_env_fixture()


def confirmed_votes(store: InMemoryStore) -> list[Vote]:
    return [v for v in store.votes.values() if v.status == VoteStatus.CONFIRMED]


class TestSubmitVote:
    """Tests for the happy path and duplicate handling."""

    @pytest.mark.asyncio
    async def test_first_vote_confirms_and_second_is_rejected(self, unit_env):
        """alice votes for item 1 twice: one confirmation, one rejection."""
        # Arrange
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1", owner_id="owner1")

        # Act
        first = await vote_service.submit_vote("alice", "1")
        second = await vote_service.submit_vote("alice", "1")

        # Assert
        assert isinstance(first, VoteConfirmed)
        assert first.vote.status == VoteStatus.CONFIRMED
        assert first.vote.owner_id == "owner1"

        assert isinstance(second, VoteRejected)
        assert second.original_vote_id == first.vote.id
        assert second.message == "You have already voted for this item."

        item = store.items[ItemId("1")]
        assert item.total_votes == 1
        assert item.unique_voters == 1

        voter = store.voters[VoterKey("alice")]
        assert voter.voted_items == {ItemId("1")}
        assert voter.vote_count == 1
        assert len(confirmed_votes(store)) == 1
        assert store.open_sessions == 0

    @pytest.mark.asyncio
    async def test_voter_is_created_from_name(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")

        outcome = await vote_service.submit_vote("  José   Smith ", "1")

        assert isinstance(outcome, VoteConfirmed)
        assert outcome.vote.voter_id == "jose-smith"
        voter = store.voters[VoterKey("jose-smith")]
        assert str(voter.display_name) == "José Smith"

    @pytest.mark.asyncio
    async def test_same_person_with_different_spelling_is_one_voter(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")

        await vote_service.submit_vote("Jose Smith", "1")
        outcome = await vote_service.submit_vote("josé smith", "1")

        assert isinstance(outcome, VoteRejected)
        assert len(store.voters) == 1

    @pytest.mark.asyncio
    async def test_resolver_rejects_when_voter_document_is_behind(self, unit_env):
        """A confirmed vote the voted set does not list still blocks a second one."""
        # Arrange
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1", total_votes=1)
        store.add_voter("alice")
        original = store.add_vote(make_vote("alice", "1"))

        # Act
        outcome = await vote_service.submit_vote("alice", "1")

        # Assert
        assert isinstance(outcome, VoteRejected)
        assert outcome.original_vote_id == original.id
        assert outcome.vote.status == VoteStatus.REJECTED
        assert outcome.vote.conflict_resolution.original_vote_id == original.id

        stored = store.votes[outcome.vote.id]
        assert stored.status == VoteStatus.REJECTED
        assert store.items[ItemId("1")].total_votes == 1
        assert store.voters[VoterKey("alice")].vote_count == 0

    @pytest.mark.asyncio
    async def test_votes_for_different_items_are_independent(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")
        store.add_item("2")

        first = await vote_service.submit_vote("alice", "1")
        second = await vote_service.submit_vote("alice", "2")

        assert isinstance(first, VoteConfirmed)
        assert isinstance(second, VoteConfirmed)
        voter = store.voters[VoterKey("alice")]
        assert voter.voted_items == {ItemId("1"), ItemId("2")}
        assert voter.vote_count == 2


class TestSubmitVoteRefusals:
    """Tests for validation and self-vote refusals."""

    @pytest.mark.asyncio
    async def test_self_vote_by_owner_id_opens_no_session(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")

        outcome = await vote_service.submit_vote("alice", "1", owner_id="Alice")

        assert isinstance(outcome, VoteFailed)
        assert outcome.code == ErrorCode.SELF_VOTE
        assert outcome.field == "ownerId"
        assert store.sessions_opened == 0

    @pytest.mark.asyncio
    async def test_self_vote_against_stored_owner(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1", owner_id="alice")

        outcome = await vote_service.submit_vote("Alice", "1")

        assert isinstance(outcome, VoteFailed)
        assert outcome.code == ErrorCode.SELF_VOTE
        assert store.votes == {}
        assert store.voters == {}

    @pytest.mark.parametrize(
        "voter_id, item_id, owner_id, field",
        [
            ("", "1", None, "voterId"),
            ("   ", "1", None, "voterId"),
            ("a" * 51, "1", None, "voterId"),
            ("alice", "", None, "itemId"),
            ("alice", "x" * 256, None, "itemId"),
            ("alice", "1", "b" * 51, "ownerId"),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_input_is_reported_per_field(
        self, unit_env, voter_id, item_id, owner_id, field
    ):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")

        outcome = await vote_service.submit_vote(voter_id, item_id, owner_id=owner_id)

        assert isinstance(outcome, VoteFailed)
        assert outcome.code == ErrorCode.VALIDATION_ERROR
        assert outcome.field == field
        assert store.sessions_opened == 0

    @pytest.mark.asyncio
    async def test_blank_owner_id_is_ignored(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")

        outcome = await vote_service.submit_vote("alice", "1", owner_id="  ")

        assert isinstance(outcome, VoteConfirmed)

    @pytest.mark.asyncio
    async def test_unknown_item(self, unit_env):
        vote_service = await unit_env.get(VoteService)

        outcome = await vote_service.submit_vote("alice", "9")

        assert isinstance(outcome, VoteFailed)
        assert outcome.field == "itemId"
        assert outcome.detail == "Item 9 not found"

    @pytest.mark.asyncio
    async def test_inactive_item(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1", status=ItemStatus.INACTIVE)

        outcome = await vote_service.submit_vote("alice", "1")

        assert isinstance(outcome, VoteFailed)
        assert outcome.detail == "Item 1 is not accepting votes"
        assert store.votes == {}


class TestSubmitVoteFailures:
    """Tests for datastore failures during submission."""

    @pytest.mark.asyncio
    async def test_transient_commit_failures_are_retried(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")
        store.inject_commit_failure(WriteConflictError("could not serialize"))
        store.inject_commit_failure(WriteConflictError("could not serialize"))

        # Act
        outcome = await vote_service.submit_vote("alice", "1")

        # Assert
        assert isinstance(outcome, VoteConfirmed)
        assert store.commits == 1
        assert len(store.votes) == 1
        assert store.items[ItemId("1")].total_votes == 1
        assert store.voters[VoterKey("alice")].vote_count == 1

    @pytest.mark.asyncio
    async def test_landed_uncertain_commit_counts_once(self, unit_env):
        """The acknowledgement is lost but the vote is stored: no replay."""
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")
        store.inject_commit_failure(
            CommitOutcomeUnknownError("ack lost"), after_apply=True
        )

        outcome = await vote_service.submit_vote("alice", "1")

        assert isinstance(outcome, VoteConfirmed)
        assert len(store.votes) == 1
        assert store.items[ItemId("1")].total_votes == 1

    @pytest.mark.asyncio
    async def test_lost_uncertain_commit_is_replayed(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")
        store.inject_commit_failure(CommitOutcomeUnknownError("ack lost"))

        outcome = await vote_service.submit_vote("alice", "1")

        assert isinstance(outcome, VoteConfirmed)
        assert len(store.votes) == 1
        assert store.items[ItemId("1")].total_votes == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_leave_nothing_behind(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")
        for _ in range(3):
            store.inject_commit_failure(WriteConflictError("could not serialize"))

        with pytest.raises(TransactionError) as exc_info:
            await vote_service.submit_vote("alice", "1")

        assert exc_info.value.attempts == 3
        assert store.votes == {}
        assert store.voters == {}
        assert store.items[ItemId("1")].total_votes == 0
        assert store.open_sessions == 0


class TestSubmitVoteConcurrency:
    """Tests for concurrent submissions."""

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_confirm_exactly_once(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")

        # Act
        outcomes = await asyncio.gather(
            *(vote_service.submit_vote("alice", "1") for _ in range(5))
        )

        # Assert
        confirmed = [o for o in outcomes if isinstance(o, VoteConfirmed)]
        rejected = [o for o in outcomes if isinstance(o, VoteRejected)]
        assert len(confirmed) == 1
        assert len(rejected) == 4
        assert all(o.original_vote_id == confirmed[0].vote.id for o in rejected)
        assert store.items[ItemId("1")].total_votes == 1
        assert len(confirmed_votes(store)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_voters_all_count(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        store.add_item("1")
        voters = [f"voter {n}" for n in range(5)]

        outcomes = await asyncio.gather(
            *(vote_service.submit_vote(name, "1") for name in voters)
        )

        assert all(isinstance(o, VoteConfirmed) for o in outcomes)
        item = store.items[ItemId("1")]
        assert item.total_votes == 5
        assert item.unique_voters == 5


class AcceptingResolver(ConflictResolver):
    """Resolver that never sees a conflict, leaving only the unique index."""

    async def resolve(self, candidate, votes) -> ConflictVerdict:
        return ConflictVerdict()


class TestUniqueConfirmedBackstop:
    """Tests for the unique index catching what the resolver misses."""

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_rejection(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        runner = await unit_env.get(TransactionRunner)
        caches = await unit_env.get(ResultCaches)
        vote_service = VoteService(runner, AcceptingResolver(), caches)
        store.add_item("1", total_votes=1)
        store.add_voter("alice")
        original = store.add_vote(make_vote("alice", "1"))

        # Act
        outcome = await vote_service.submit_vote("alice", "1")

        # Assert
        assert isinstance(outcome, VoteRejected)
        assert outcome.original_vote_id == original.id
        assert store.votes[outcome.vote.id].status == VoteStatus.REJECTED
        assert confirmed_votes(store) == [original]
        assert store.items[ItemId("1")].total_votes == 1


class TestCacheInvalidation:
    """Tests for cache freshness after a confirmed vote."""

    @pytest.mark.asyncio
    async def test_confirmed_vote_is_visible_before_ttl_expires(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        queries = await unit_env.get(VoteQueryService)
        store.add_item("1")
        seed_confirmed(store, "bob", "2")

        before = await queries.get_item_stats("1")
        before_all = await queries.get_all_item_stats()
        before_votes = await queries.get_user_votes("alice")

        # Act
        await vote_service.submit_vote("alice", "1")

        # Assert
        assert before.vote_count == 0
        assert (await queries.get_item_stats("1")).vote_count == 1
        assert {s.item_id: s.vote_count for s in before_all} == {"1": 0, "2": 1}
        after_all = await queries.get_all_item_stats()
        assert {s.item_id: s.vote_count for s in after_all} == {"1": 1, "2": 1}
        assert before_votes == []
        assert [v.item_id for v in await queries.get_user_votes("alice")] == ["1"]

    @pytest.mark.asyncio
    async def test_rejected_vote_keeps_caches(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        vote_service = await unit_env.get(VoteService)
        caches = await unit_env.get(ResultCaches)
        seed_confirmed(store, "alice", "1")
        caches.item_stats.set("sentinel", 1)

        outcome = await vote_service.submit_vote("alice", "1")

        assert isinstance(outcome, VoteRejected)
        assert caches.item_stats.get("sentinel") == 1
