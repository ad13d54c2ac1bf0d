"""Consistency sweep: re-derives invariants from confirmed votes and repairs drift.

Runs out of band on a schedule. Each repair is its own transaction, so one
failed repair never blocks the others; failures are logged and reported.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

import logfire

from tally.config import ConsistencySettings
from tally.domain.error import DomainError
from tally.domain.model import Item, Vote, Voter
from tally.domain.repository import TransactionRunner, UnitOfWork, Work
from tally.domain.value import ItemId, VoteId, VoterKey
from tally.util.cache import ResultCaches

from .base import Service
from .conflict_resolver import (
    ConflictResolver,
    validate_item_votes,
    validate_voter_votes,
)


class IssueKind(str, Enum):
    """Kinds of drift the sweep detects."""

    ORPHANED_VOTE = "orphaned_vote"
    DUPLICATE_VOTE = "duplicate_vote"
    VOTER_MISMATCH = "voter_mismatch"
    ITEM_VOTES_INVALID = "item_votes_invalid"
    TALLY_MISMATCH = "tally_mismatch"


@dataclass
class ConsistencyIssue:
    """One problem found by the sweep."""

    kind: IssueKind
    subject: str
    detail: str
    repaired: bool = False


@dataclass
class ConsistencyReport:
    """Summary of one sweep."""

    voters_checked: int = 0
    items_checked: int = 0
    votes_checked: int = 0
    issues: List[ConsistencyIssue] = field(default_factory=list)
    failed_repairs: int = 0

    @property
    def repairs(self) -> int:
        return sum(1 for issue in self.issues if issue.repaired)

    @property
    def healthy(self) -> bool:
        return not self.issues

    def of_kind(self, kind: IssueKind) -> List[ConsistencyIssue]:
        return [issue for issue in self.issues if issue.kind == kind]


@dataclass
class _Snapshot:
    voters: Dict[VoterKey, Voter]
    items: Dict[ItemId, Item]
    votes: List[Vote]


class ConsistencyService(Service):
    """Detects and repairs drift the submission path cannot prevent.

    - Confirmed votes whose voter or item vanished are revoked and the
      surviving counters decremented
    - Extra confirmed votes for a pair (only possible without the unique
      index) are revoked, keeping the earliest
    - Voters whose voted set disagrees with their confirmed votes are flagged
    - Item tallies are re-derived from confirmed votes
    """

    def __init__(
        self,
        transaction_runner: TransactionRunner,
        caches: ResultCaches,
        settings: ConsistencySettings,
    ) -> None:
        self.transaction_runner = transaction_runner
        self.caches = caches
        self.settings = settings

    async def run_sweep(self) -> ConsistencyReport:
        """Run one full pass and return what it found and fixed."""
        with logfire.span("consistency.sweep") as span:
            report = ConsistencyReport()
            snapshot = await self._load()
            report.voters_checked = len(snapshot.voters)
            report.items_checked = len(snapshot.items)
            report.votes_checked = len(snapshot.votes)

            revoked: set[VoteId] = set()
            for vote, reason in self._find_orphans(snapshot):
                issue = ConsistencyIssue(
                    kind=IssueKind.ORPHANED_VOTE, subject=str(vote.id), detail=reason
                )
                issue.repaired = await self._repair(
                    report, issue, self._revoke_orphan(vote, reason)
                )
                if issue.repaired:
                    revoked.add(vote.id)

            for duplicate, original in self._find_duplicates(snapshot, revoked):
                issue = ConsistencyIssue(
                    kind=IssueKind.DUPLICATE_VOTE,
                    subject=str(duplicate.id),
                    detail=(
                        f"Voter {duplicate.voter_id} already has confirmed vote "
                        f"{original.id} for item {duplicate.item_id}"
                    ),
                )
                issue.repaired = await self._repair(
                    report, issue, self._revoke_duplicate(duplicate, original)
                )
                if issue.repaired:
                    revoked.add(duplicate.id)

            # Voter documents changed with the revocations, so check fresh state
            if revoked:
                snapshot = await self._load()
            self._check_voters(report, snapshot)
            self._check_items(report, snapshot)
            await self._check_tallies(report)

            if report.repairs:
                self.caches.clear()

            span.set_attribute("issues", len(report.issues))
            span.set_attribute("repairs", report.repairs)
            logfire.info(
                "Consistency sweep completed",
                voters=report.voters_checked,
                items=report.items_checked,
                votes=report.votes_checked,
                issues=len(report.issues),
                repairs=report.repairs,
                failed_repairs=report.failed_repairs,
            )
            return report

    async def _load(self) -> _Snapshot:
        async def work(uow: UnitOfWork) -> _Snapshot:
            voters = await uow.voters.find_all()
            items = await uow.items.find_all()
            votes = await uow.votes.find_all_confirmed()
            return _Snapshot(
                voters={v.key: v for v in voters},
                items={i.id: i for i in items},
                votes=votes,
            )

        return await self.transaction_runner.read(work, label="consistency_load")

    @staticmethod
    def _find_orphans(snapshot: _Snapshot) -> List[Tuple[Vote, str]]:
        orphans = []
        for vote in snapshot.votes:
            if vote.voter_id not in snapshot.voters:
                orphans.append((vote, f"Voter {vote.voter_id} no longer exists"))
            elif vote.item_id not in snapshot.items:
                orphans.append((vote, f"Item {vote.item_id} no longer exists"))
        return orphans

    @staticmethod
    def _find_duplicates(
        snapshot: _Snapshot, revoked: set[VoteId]
    ) -> List[Tuple[Vote, Vote]]:
        by_pair: Dict[Tuple[VoterKey, ItemId], List[Vote]] = defaultdict(list)
        # Votes arrive oldest first, so the first of each pair is the original
        for vote in snapshot.votes:
            if vote.id not in revoked:
                by_pair[(vote.voter_id, vote.item_id)].append(vote)
        return [
            (duplicate, votes[0])
            for votes in by_pair.values()
            for duplicate in votes[1:]
        ]

    def _check_voters(self, report: ConsistencyReport, snapshot: _Snapshot) -> None:
        by_voter: Dict[VoterKey, List[Vote]] = defaultdict(list)
        for vote in snapshot.votes:
            by_voter[vote.voter_id].append(vote)

        for voter in snapshot.voters.values():
            voter_votes = by_voter.get(voter.key, [])
            problems = []

            validation = validate_voter_votes(voter_votes)
            if not validation.valid:
                problems.append(validation.reason)
            if not voter.is_consistent:
                problems.append(
                    f"vote_count {voter.vote_count} != "
                    f"{len(voter.voted_items)} voted items"
                )
            confirmed_items = {v.item_id for v in voter_votes}
            if confirmed_items != voter.voted_items:
                missing = sorted(confirmed_items - voter.voted_items)
                extra = sorted(voter.voted_items - confirmed_items)
                problems.append(
                    f"voted items without confirmed vote: {extra}, "
                    f"confirmed votes not in voted items: {missing}"
                )

            if problems:
                issue = ConsistencyIssue(
                    kind=IssueKind.VOTER_MISMATCH,
                    subject=voter.key,
                    detail="; ".join(str(p) for p in problems),
                )
                report.issues.append(issue)
                logfire.warn(
                    "Voter inconsistent with confirmed votes",
                    voter_id=voter.key,
                    detail=issue.detail,
                )

    def _check_items(self, report: ConsistencyReport, snapshot: _Snapshot) -> None:
        by_item: Dict[ItemId, List[Vote]] = defaultdict(list)
        for vote in snapshot.votes:
            by_item[vote.item_id].append(vote)

        for item_id, item_votes in by_item.items():
            validation = validate_item_votes(item_votes)
            if not validation.valid:
                report.issues.append(
                    ConsistencyIssue(
                        kind=IssueKind.ITEM_VOTES_INVALID,
                        subject=item_id,
                        detail=validation.reason or "invalid",
                    )
                )
                logfire.warn(
                    "Item votes invalid", item_id=item_id, reason=validation.reason
                )

    async def _check_tallies(self, report: ConsistencyReport) -> None:
        """Compare counters with confirmed votes as they stand after repairs."""

        async def load(uow: UnitOfWork) -> Tuple[List[Item], Dict[ItemId, int]]:
            items = await uow.items.find_all()
            return items, await uow.votes.count_confirmed_by_item()

        items, counts = await self.transaction_runner.read(
            load, label="consistency_tallies"
        )
        for item in items:
            expected = counts.get(item.id, 0)
            if item.total_votes == expected and item.unique_voters == expected:
                continue

            issue = ConsistencyIssue(
                kind=IssueKind.TALLY_MISMATCH,
                subject=item.id,
                detail=(
                    f"total_votes={item.total_votes} "
                    f"unique_voters={item.unique_voters} confirmed={expected}"
                ),
            )
            if self.settings.repair_tallies:
                issue.repaired = await self._repair(
                    report, issue, self._set_tally(item.id, expected)
                )
            else:
                report.issues.append(issue)
                logfire.warn("Item tally drift", item_id=item.id, detail=issue.detail)

    async def _repair(
        self,
        report: ConsistencyReport,
        issue: ConsistencyIssue,
        work: Work[bool],
    ) -> bool:
        """Record the issue and apply its repair in its own transaction."""
        report.issues.append(issue)
        try:
            applied = await self.transaction_runner.run(
                work, label=f"repair_{issue.kind.value}"
            )
        except DomainError as e:
            report.failed_repairs += 1
            logfire.error(
                "Consistency repair failed",
                kind=issue.kind.value,
                subject=issue.subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        logfire.warn(
            "Consistency repair applied" if applied else "Consistency repair skipped",
            kind=issue.kind.value,
            subject=issue.subject,
            detail=issue.detail,
        )
        return bool(applied)

    @staticmethod
    def _revoke_orphan(vote: Vote, reason: str) -> Work[bool]:
        async def work(uow: UnitOfWork) -> bool:
            current = await uow.votes.find_by_id(vote.id)
            if current is None or not current.is_confirmed:
                return False
            resolution = ConflictResolver.resolution_for(None, reason=reason)
            await uow.votes.update_status(current.revoke(resolution), current.version)
            # Only the side that still exists has a counter to take back
            await uow.voters.remove_vote(current.voter_id, current.item_id)
            await uow.items.remove_vote(current.item_id)
            return True

        return work

    @staticmethod
    def _revoke_duplicate(duplicate: Vote, original: Vote) -> Work[bool]:
        async def work(uow: UnitOfWork) -> bool:
            current = await uow.votes.find_by_id(duplicate.id)
            if current is None or not current.is_confirmed:
                return False
            resolution = ConflictResolver.resolution_for(
                original, reason="Duplicate confirmed vote"
            )
            await uow.votes.update_status(current.revoke(resolution), current.version)
            # The voted set holds the item once, for the original
            await uow.items.remove_vote(current.item_id)
            return True

        return work

    @staticmethod
    def _set_tally(item_id: ItemId, confirmed: int) -> Work[bool]:
        async def work(uow: UnitOfWork) -> bool:
            return await uow.items.set_tally(item_id, confirmed)

        return work


def summarize(report: ConsistencyReport) -> Dict[str, int]:
    """Counts per issue kind, for logs and script output."""
    summary: Dict[str, int] = {
        kind.value: len(report.of_kind(kind)) for kind in IssueKind
    }
    summary["repairs"] = report.repairs
    summary["failed_repairs"] = report.failed_repairs
    return summary
