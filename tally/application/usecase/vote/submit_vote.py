"""Submit vote use case."""

from typing import Any, Literal, Mapping, Union

import logfire
from pydantic import ValidationError as PydanticValidationError

from tally.application.usecase.base import BaseUseCase, CamelModel
from tally.domain.error import ERROR_METADATA, DomainError, ErrorCode, error_code_for
from tally.domain.model import VoteConfirmed, VoteFailed, VoteOutcome, VoteRejected
from tally.domain.service import VoteService


class SubmitVoteRequest(CamelModel):
    """Submit vote request."""

    voter_id: str
    item_id: str
    owner_id: str | None = None


class SubmitVoteResponse(CamelModel):
    """Submit vote response.

    ``success`` is True for both confirmed and rejected (already voted)
    outcomes; ``error`` then carries the already-voted notice.
    """

    success: bool
    status: Literal["confirmed", "rejected"] | None = None
    vote_id: str | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    field: str | None = None


class SubmitVoteUseCase(BaseUseCase):
    """Use case for submitting a vote.

    Translates outcomes and failures into the response shape; nothing raised
    below this point escapes it.
    """

    def __init__(self, vote_service: VoteService) -> None:
        """Initialize submit vote use case.

        Args:
            vote_service: Vote domain service
        """
        self.vote_service = vote_service

    async def execute(
        self, request: Union[SubmitVoteRequest, Mapping[str, Any]]
    ) -> SubmitVoteResponse:
        """Execute the submit vote flow.

        Args:
            request: Request model, or the raw payload from the routing layer

        Returns:
            Submit vote response
        """
        if not isinstance(request, SubmitVoteRequest):
            try:
                request = SubmitVoteRequest.model_validate(request)
            except PydanticValidationError as e:
                return self._invalid_payload(e)

        try:
            outcome = await self.vote_service.submit_vote(
                request.voter_id, request.item_id, request.owner_id
            )
        except DomainError as e:
            code = error_code_for(e)
            logfire.error(
                "Vote submission failed",
                voter_id=request.voter_id,
                item_id=request.item_id,
                error_code=code.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SubmitVoteResponse(
                success=False,
                error=ERROR_METADATA[code].user_message,
                error_code=code,
            )

        return self.to_response(outcome)

    @staticmethod
    def to_response(outcome: VoteOutcome) -> SubmitVoteResponse:
        """Map a vote outcome onto the response shape."""
        if isinstance(outcome, VoteConfirmed):
            return SubmitVoteResponse(
                success=True, status="confirmed", vote_id=str(outcome.vote.id)
            )
        if isinstance(outcome, VoteRejected):
            return SubmitVoteResponse(
                success=True,
                status="rejected",
                vote_id=str(outcome.vote.id) if outcome.vote else None,
                error=outcome.message,
                error_code=ErrorCode.DUPLICATE_VOTE,
            )
        if isinstance(outcome, VoteFailed):
            return SubmitVoteResponse(
                success=False,
                error=outcome.detail,
                error_code=outcome.code,
                field=outcome.field,
            )
        raise TypeError(f"Unknown vote outcome: {type(outcome).__name__}")

    @staticmethod
    def _invalid_payload(error: PydanticValidationError) -> SubmitVoteResponse:
        first = error.errors()[0]
        loc = first.get("loc") or ()
        field = str(loc[0]) if loc else None
        if first.get("type") == "missing":
            detail = f"{field} is required"
        else:
            detail = f"{field}: {first.get('msg')}"
        logfire.info("Malformed vote payload", field=field, detail=detail)
        return SubmitVoteResponse(
            success=False,
            error=detail,
            error_code=ErrorCode.VALIDATION_ERROR,
            field=field,
        )
