"""Test configuration and fixtures."""

from datetime import datetime, timedelta

from tally.domain.model import Vote
from tally.domain.value import ItemId, VoterKey, VoteStatus
from tally.persistence.repository.inmemory import InMemoryStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def make_vote(
    voter_id: str,
    item_id: str,
    status: VoteStatus = VoteStatus.CONFIRMED,
    minutes: int = 0,
) -> Vote:
    """Build a vote at ``BASE_TIME + minutes`` in the given status.

    Confirmed and rejected votes carry version 2, as if they had gone
    through one transition from pending.
    """
    vote = Vote.pending(
        VoterKey(voter_id),
        ItemId(item_id),
        timestamp=BASE_TIME + timedelta(minutes=minutes),
    )
    if status == VoteStatus.PENDING:
        return vote
    return vote.model_copy(update={"status": status, "version": 2})


def seed_confirmed(
    store: InMemoryStore, voter_id: str, item_id: str, minutes: int = 0
) -> Vote:
    """Seed a confirmed vote with matching voter and item counters.

    Creates the voter and the item when they are missing.
    """
    vote = store.add_vote(make_vote(voter_id, item_id, minutes=minutes))

    voter = store.voters.get(VoterKey(voter_id))
    voted = tuple(voter.voted_items) if voter else ()
    store.add_voter(voter_id, voted_items=voted + (item_id,))

    item = store.items.get(ItemId(item_id))
    if item is None:
        store.add_item(item_id, total_votes=1)
    else:
        store.items[item.id] = item.model_copy(
            update={
                "total_votes": item.total_votes + 1,
                "unique_voters": item.unique_voters + 1,
            }
        )
    return vote
