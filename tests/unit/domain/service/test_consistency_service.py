"""Unit tests for the consistency sweep."""

import pytest

from tally.config import ConsistencySettings
from tally.domain.error import WriteConflictError
from tally.domain.repository import TransactionRunner
from tally.domain.service import ConsistencyService, IssueKind, summarize
from tally.domain.value import ItemId, ItemStatus, VoterKey, VoteStatus
from tally.persistence.repository.inmemory import InMemoryStore
from tally.util.cache import ResultCaches
from tests.conftest import make_vote, seed_confirmed
from tests.harness import create_env_fixture

# Unit test fixture
unit_env = create_env_fixture()


def set_tally(store: InMemoryStore, item_id: str, count: int) -> None:
    item = store.items[ItemId(item_id)]
    store.items[item.id] = item.model_copy(
        update={"total_votes": count, "unique_voters": count}
    )


class TestHealthySweep:
    """Tests for a sweep over consistent data."""

    @pytest.mark.asyncio
    async def test_consistent_data_reports_no_issues(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        caches = await unit_env.get(ResultCaches)
        seed_confirmed(store, "alice", "1")
        seed_confirmed(store, "bob", "1", minutes=1)
        seed_confirmed(store, "alice", "2", minutes=2)
        store.add_item("3")
        store.add_vote(make_vote("carol", "3", status=VoteStatus.REJECTED))
        caches.item_stats.set("sentinel", 1)

        # Act
        report = await sweep.run_sweep()

        # Assert
        assert report.healthy
        assert report.voters_checked == 2
        assert report.items_checked == 3
        assert report.votes_checked == 3
        assert caches.item_stats.get("sentinel") == 1
        assert store.open_sessions == 0


class TestOrphanedVotes:
    """Tests for confirmed votes whose voter or item vanished."""

    @pytest.mark.asyncio
    async def test_vote_of_missing_voter_is_revoked(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        vote = seed_confirmed(store, "alice", "1")
        store.remove_voter("alice")

        # Act
        report = await sweep.run_sweep()

        # Assert
        [issue] = report.issues
        assert issue.kind == IssueKind.ORPHANED_VOTE
        assert issue.repaired
        revoked = store.votes[vote.id]
        assert revoked.status == VoteStatus.REJECTED
        assert revoked.conflict_resolution.reason == "Voter alice no longer exists"
        assert store.items[ItemId("1")].total_votes == 0

    @pytest.mark.asyncio
    async def test_vote_for_missing_item_is_revoked(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        vote = seed_confirmed(store, "alice", "1")
        seed_confirmed(store, "alice", "2", minutes=1)
        store.remove_item("1")

        report = await sweep.run_sweep()

        assert [i.kind for i in report.issues] == [IssueKind.ORPHANED_VOTE]
        assert store.votes[vote.id].status == VoteStatus.REJECTED
        voter = store.voters[VoterKey("alice")]
        assert voter.voted_items == {ItemId("2")}
        assert voter.vote_count == 1

    @pytest.mark.asyncio
    async def test_votes_for_inactive_items_are_kept(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        vote = seed_confirmed(store, "alice", "1")
        item = store.items[ItemId("1")]
        store.items[item.id] = item.model_copy(update={"status": ItemStatus.INACTIVE})

        report = await sweep.run_sweep()

        assert report.healthy
        assert store.votes[vote.id].status == VoteStatus.CONFIRMED


class TestDuplicateVotes:
    """Tests for extra confirmed votes on one pair."""

    @pytest.mark.asyncio
    async def test_later_duplicate_is_revoked(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        original = seed_confirmed(store, "alice", "1", minutes=0)
        duplicate = store.add_vote(make_vote("alice", "1", minutes=5))
        set_tally(store, "1", 2)

        # Act
        report = await sweep.run_sweep()

        # Assert
        [issue] = report.issues
        assert issue.kind == IssueKind.DUPLICATE_VOTE
        assert issue.subject == str(duplicate.id)
        assert issue.repaired
        assert store.votes[original.id].status == VoteStatus.CONFIRMED
        revoked = store.votes[duplicate.id]
        assert revoked.status == VoteStatus.REJECTED
        assert revoked.conflict_resolution.original_vote_id == original.id
        assert store.items[ItemId("1")].total_votes == 1
        assert store.voters[VoterKey("alice")].vote_count == 1


class TestTallies:
    """Tests for item counter drift."""

    @pytest.mark.asyncio
    async def test_drifted_tally_is_rederived(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        caches = await unit_env.get(ResultCaches)
        seed_confirmed(store, "alice", "1")
        store.add_item("2")
        set_tally(store, "1", 7)
        set_tally(store, "2", 3)
        caches.item_stats.set("sentinel", 1)

        # Act
        report = await sweep.run_sweep()

        # Assert
        issues = report.of_kind(IssueKind.TALLY_MISMATCH)
        assert sorted(i.subject for i in issues) == ["1", "2"]
        assert all(i.repaired for i in issues)
        assert store.items[ItemId("1")].total_votes == 1
        assert store.items[ItemId("1")].unique_voters == 1
        assert store.items[ItemId("2")].total_votes == 0
        assert caches.item_stats.get("sentinel") is None

    @pytest.mark.asyncio
    async def test_drift_is_only_flagged_when_repair_is_disabled(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        runner = await unit_env.get(TransactionRunner)
        caches = await unit_env.get(ResultCaches)
        sweep = ConsistencyService(
            runner, caches, ConsistencySettings(repair_tallies=False)
        )
        seed_confirmed(store, "alice", "1")
        set_tally(store, "1", 7)

        report = await sweep.run_sweep()

        [issue] = report.issues
        assert issue.kind == IssueKind.TALLY_MISMATCH
        assert not issue.repaired
        assert store.items[ItemId("1")].total_votes == 7

    @pytest.mark.asyncio
    async def test_failed_repair_is_reported_and_sweep_finishes(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        seed_confirmed(store, "alice", "1")
        set_tally(store, "1", 7)
        for _ in range(3):
            store.inject_commit_failure(WriteConflictError("could not serialize"))

        # Act
        report = await sweep.run_sweep()

        # Assert
        [issue] = report.issues
        assert not issue.repaired
        assert report.failed_repairs == 1
        assert store.items[ItemId("1")].total_votes == 7
        assert store.open_sessions == 0


class TestVoterChecks:
    """Tests for voter documents that disagree with confirmed votes."""

    @pytest.mark.asyncio
    async def test_voted_item_without_confirmed_vote_is_flagged(self, unit_env):
        # Arrange
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        store.add_item("1")
        store.add_voter("alice", voted_items=("1",))

        # Act
        report = await sweep.run_sweep()

        # Assert
        [issue] = report.issues
        assert issue.kind == IssueKind.VOTER_MISMATCH
        assert issue.subject == "alice"
        assert not issue.repaired
        assert "voted items without confirmed vote: ['1']" in issue.detail
        assert report.repairs == 0

    @pytest.mark.asyncio
    async def test_counter_disagreeing_with_voted_set_is_flagged(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        seed_confirmed(store, "alice", "1")
        store.add_voter("alice", voted_items=("1",), vote_count=3)

        report = await sweep.run_sweep()

        [issue] = report.issues
        assert issue.kind == IssueKind.VOTER_MISMATCH
        assert "vote_count 3 != 1 voted items" in issue.detail


class TestSummarize:
    """Tests for the per-kind summary."""

    @pytest.mark.asyncio
    async def test_summary_counts_each_kind(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        sweep = await unit_env.get(ConsistencyService)
        seed_confirmed(store, "alice", "1")
        store.remove_voter("alice")
        store.add_item("2", total_votes=4)

        summary = summarize(await sweep.run_sweep())

        assert summary["orphaned_vote"] == 1
        assert summary["tally_mismatch"] == 1
        assert summary["duplicate_vote"] == 0
        assert summary["repairs"] == 2
        assert summary["failed_repairs"] == 0
