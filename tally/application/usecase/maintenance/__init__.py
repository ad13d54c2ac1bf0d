"""Maintenance use cases."""

from .run_consistency_check import (
    ConsistencyIssueItem,
    RunConsistencyCheckResponse,
    RunConsistencyCheckUseCase,
)

__all__ = [
    "ConsistencyIssueItem",
    "RunConsistencyCheckResponse",
    "RunConsistencyCheckUseCase",
]
