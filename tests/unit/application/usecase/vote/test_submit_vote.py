"""Unit tests for SubmitVoteUseCase."""

import pytest

from tally.application.usecase.vote.submit_vote import (
    SubmitVoteRequest,
    SubmitVoteUseCase,
)
from tally.domain.error import ErrorCode, WriteConflictError
from tally.domain.model import VoteFailed
from tally.persistence.repository.inmemory import InMemoryStore
from tests.harness import create_env_fixture

# Unit test fixture
unit_env = create_env_fixture()


class TestSubmitVoteUseCase:
    """Tests for SubmitVoteUseCase."""

    @pytest.mark.asyncio
    async def test_confirmed_vote(self, unit_env):
        """A first vote should succeed with status confirmed."""
        # Arrange
        store = await unit_env.get(InMemoryStore)
        use_case = await unit_env.get(SubmitVoteUseCase)
        store.add_item("1", owner_id="owner1")

        # Act
        response = await use_case.execute(
            SubmitVoteRequest(voter_id="alice", item_id="1")
        )

        # Assert
        assert response.success is True
        assert response.status == "confirmed"
        assert response.vote_id is not None
        assert response.error is None

    @pytest.mark.asyncio
    async def test_duplicate_vote_is_a_successful_rejection(self, unit_env):
        """A second vote should succeed with status rejected and a notice."""
        # Arrange
        store = await unit_env.get(InMemoryStore)
        use_case = await unit_env.get(SubmitVoteUseCase)
        store.add_item("1")
        await use_case.execute({"voterId": "alice", "itemId": "1"})

        # Act
        response = await use_case.execute({"voterId": "alice", "itemId": "1"})

        # Assert
        assert response.success is True
        assert response.status == "rejected"
        assert response.error == "You have already voted for this item."
        assert response.error_code == ErrorCode.DUPLICATE_VOTE

    @pytest.mark.asyncio
    async def test_raw_payload_accepts_camel_case(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        use_case = await unit_env.get(SubmitVoteUseCase)
        store.add_item("1", owner_id="owner1")

        response = await use_case.execute(
            {"voterId": "bob", "itemId": "1", "ownerId": "owner1"}
        )

        assert response.status == "confirmed"

    @pytest.mark.asyncio
    async def test_missing_field_is_reported(self, unit_env):
        """A payload without voterId should fail on that field."""
        use_case = await unit_env.get(SubmitVoteUseCase)

        response = await use_case.execute({"itemId": "1"})

        assert response.success is False
        assert response.error_code == ErrorCode.VALIDATION_ERROR
        assert response.field == "voterId"
        assert response.error == "voterId is required"

    @pytest.mark.asyncio
    async def test_wrongly_typed_field_is_reported(self, unit_env):
        use_case = await unit_env.get(SubmitVoteUseCase)

        response = await use_case.execute({"voterId": 42, "itemId": "1"})

        assert response.success is False
        assert response.field == "voterId"

    @pytest.mark.asyncio
    async def test_self_vote(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        use_case = await unit_env.get(SubmitVoteUseCase)
        store.add_item("1", owner_id="alice")

        response = await use_case.execute(
            SubmitVoteRequest(voter_id="alice", item_id="1")
        )

        assert response.success is False
        assert response.error_code == ErrorCode.SELF_VOTE
        assert response.error == "You cannot vote for your own item."

    @pytest.mark.asyncio
    async def test_invalid_name(self, unit_env):
        use_case = await unit_env.get(SubmitVoteUseCase)

        response = await use_case.execute(
            SubmitVoteRequest(voter_id="   ", item_id="1")
        )

        assert response.success is False
        assert response.error_code == ErrorCode.VALIDATION_ERROR
        assert response.field == "voterId"

    @pytest.mark.asyncio
    async def test_exhausted_transaction_becomes_error_response(self, unit_env):
        """Failures below the use case never escape it."""
        # Arrange
        store = await unit_env.get(InMemoryStore)
        use_case = await unit_env.get(SubmitVoteUseCase)
        store.add_item("1")
        for _ in range(3):
            store.inject_commit_failure(WriteConflictError("could not serialize"))

        # Act
        response = await use_case.execute(
            SubmitVoteRequest(voter_id="alice", item_id="1")
        )

        # Assert
        assert response.success is False
        assert response.error_code == ErrorCode.TRANSACTION_ERROR
        assert response.error == "Failed to process your vote. Please try again."

    @pytest.mark.asyncio
    async def test_response_dumps_in_camel_case(self, unit_env):
        store = await unit_env.get(InMemoryStore)
        use_case = await unit_env.get(SubmitVoteUseCase)
        store.add_item("1")

        response = await use_case.execute({"voterId": "alice", "itemId": "1"})
        payload = response.model_dump(by_alias=True, exclude_none=True)

        assert set(payload) == {"success", "status", "voteId"}


class TestToResponse:
    """Tests for mapping outcomes onto the response shape."""

    def test_failed_outcome_keeps_code_and_field(self):
        outcome = VoteFailed(
            code=ErrorCode.SELF_VOTE, detail="Not your own item", field="ownerId"
        )

        response = SubmitVoteUseCase.to_response(outcome)

        assert response.success is False
        assert response.status is None
        assert response.error_code == ErrorCode.SELF_VOTE
        assert response.field == "ownerId"

    def test_unknown_outcome_is_rejected(self):
        with pytest.raises(TypeError, match="Unknown vote outcome"):
            SubmitVoteUseCase.to_response(object())
