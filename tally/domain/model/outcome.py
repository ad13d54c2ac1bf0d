"""Tagged results of a vote submission.

Callers switch on ``kind`` instead of inspecting exception types:

    match outcome.kind:
        case "confirmed": ...
        case "rejected": ...
        case "error": ...
"""

from typing import Annotated, Literal, Union

from pydantic import Field

from tally.domain.error import ERROR_METADATA, ErrorCode
from tally.domain.model.common import DomainModel
from tally.domain.model.vote import Vote
from tally.domain.value import RejectionReason, VoteId


class VoteConfirmed(DomainModel):
    """The vote was counted."""

    kind: Literal["confirmed"] = "confirmed"
    vote: Vote


class VoteRejected(DomainModel):
    """The voter already has a confirmed vote for the item.

    ``vote`` is the persisted rejected audit record; it is None when the
    voter's own document already listed the item and nothing was written.
    """

    kind: Literal["rejected"] = "rejected"
    reason: RejectionReason = RejectionReason.ALREADY_VOTED
    vote: Vote | None = None
    original_vote_id: VoteId | None = None

    @property
    def message(self) -> str:
        return ERROR_METADATA[ErrorCode.DUPLICATE_VOTE].user_message


class VoteFailed(DomainModel):
    """The submission was refused before anything was counted."""

    kind: Literal["error"] = "error"
    code: ErrorCode
    detail: str
    field: str | None = None


VoteOutcome = Annotated[
    Union[VoteConfirmed, VoteRejected, VoteFailed], Field(discriminator="kind")
]
