"""Mappers for converting between database rows and domain models.

Since we're using Pydantic domain models (immutable), we use manual mapping
instead of SQLAlchemy's ORM.
"""

from typing import Any, Dict
from uuid import UUID

from tally.domain.model import Item, Vote, Voter
from tally.domain.value import (
    ConflictResolution,
    DisplayName,
    ItemId,
    ItemStatus,
    VoteId,
    VoterKey,
    VoteStatus,
)


def row_to_voter(row: Dict[str, Any]) -> Voter:
    """Convert database row to Voter domain model.

    Args:
        row: Database row as dict

    Returns:
        Voter domain model
    """
    return Voter(
        key=VoterKey(row["key"]),
        display_name=DisplayName(row["display_name"]),
        voted_items=frozenset(ItemId(i) for i in row["voted_items"] or []),
        vote_count=row["vote_count"],
        last_vote_at=row["last_vote_at"],
        version=row["version"],
        created_at=row["created_at"],
    )


def voter_to_dict(voter: Voter) -> Dict[str, Any]:
    """Convert Voter domain model to database dict.

    The voted set is stored sorted so rows are stable across writes.
    """
    return {
        "key": voter.key,
        "display_name": voter.display_name.root,
        "voted_items": sorted(voter.voted_items),
        "vote_count": voter.vote_count,
        "last_vote_at": voter.last_vote_at,
        "version": voter.version,
        "created_at": voter.created_at,
    }


def row_to_item(row: Dict[str, Any]) -> Item:
    """Convert database row to Item domain model."""
    return Item(
        id=ItemId(row["id"]),
        owner_id=VoterKey(row["owner_id"]) if row["owner_id"] else None,
        status=ItemStatus(row["status"]),
        total_votes=row["total_votes"],
        unique_voters=row["unique_voters"],
        last_vote_at=row["last_vote_at"],
        created_at=row["created_at"],
    )


def item_to_dict(item: Item) -> Dict[str, Any]:
    """Convert Item domain model to database dict."""
    data = item.model_dump()
    data["status"] = item.status.value
    return data


def row_to_vote(row: Dict[str, Any]) -> Vote:
    """Convert database row to Vote domain model.

    Args:
        row: Database row as dict

    Returns:
        Vote domain model
    """
    resolution = row["conflict_resolution"]
    return Vote(
        id=VoteId(UUID(row["id"]) if isinstance(row["id"], str) else row["id"]),
        voter_id=VoterKey(row["voter_id"]),
        item_id=ItemId(row["item_id"]),
        owner_id=VoterKey(row["owner_id"]) if row["owner_id"] else None,
        timestamp=row["timestamp"],
        status=VoteStatus(row["status"]),
        version=row["version"],
        conflict_resolution=(
            ConflictResolution.model_validate(resolution) if resolution else None
        ),
    )


def vote_to_dict(vote: Vote) -> Dict[str, Any]:
    """Convert Vote domain model to database dict.

    Args:
        vote: Vote domain model

    Returns:
        Dict suitable for database insertion/update
    """
    return {
        "id": vote.id,
        "voter_id": vote.voter_id,
        "item_id": vote.item_id,
        "owner_id": vote.owner_id,
        "timestamp": vote.timestamp,
        "status": vote.status.value,
        "version": vote.version,
        "conflict_resolution": resolution_to_json(vote.conflict_resolution),
    }


def resolution_to_json(resolution: ConflictResolution | None) -> Dict[str, Any] | None:
    """Serialise a conflict resolution for the JSONB column."""
    if resolution is None:
        return None
    return resolution.model_dump(mode="json")
