"""Run consistency check use case."""

from tally.application.usecase.base import BaseUseCase, CamelModel
from tally.domain.service import ConsistencyService


class ConsistencyIssueItem(CamelModel):
    """One issue found by the sweep."""

    kind: str
    subject: str
    detail: str
    repaired: bool


class RunConsistencyCheckResponse(CamelModel):
    """Run consistency check response."""

    voters_checked: int
    items_checked: int
    votes_checked: int
    repairs: int
    failed_repairs: int
    issues: list[ConsistencyIssueItem]


class RunConsistencyCheckUseCase(BaseUseCase):
    """Use case for running one consistency sweep on demand."""

    def __init__(self, consistency_service: ConsistencyService) -> None:
        self.consistency_service = consistency_service

    async def execute(self, request: None = None) -> RunConsistencyCheckResponse:
        report = await self.consistency_service.run_sweep()
        return RunConsistencyCheckResponse(
            voters_checked=report.voters_checked,
            items_checked=report.items_checked,
            votes_checked=report.votes_checked,
            repairs=report.repairs,
            failed_repairs=report.failed_repairs,
            issues=[
                ConsistencyIssueItem(
                    kind=issue.kind.value,
                    subject=issue.subject,
                    detail=issue.detail,
                    repaired=issue.repaired,
                )
                for issue in report.issues
            ],
        )
