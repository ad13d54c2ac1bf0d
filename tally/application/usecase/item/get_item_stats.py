"""Item stats use cases."""

from tally.application.usecase.base import BaseUseCase, CamelModel
from tally.domain.service import VoteQueryService


class ItemStatsItem(CamelModel):
    """Confirmed vote count for one item."""

    item_id: str
    vote_count: int


class GetAllItemStatsResponse(CamelModel):
    """Stats for every active item."""

    items: list[ItemStatsItem]


class GetItemStatsRequest(CamelModel):
    """Get item stats request."""

    item_id: str


class GetAllItemStatsUseCase(BaseUseCase):
    """Use case for the all-items stats aggregate."""

    def __init__(self, query_service: VoteQueryService) -> None:
        self.query_service = query_service

    async def execute(self, request: None = None) -> GetAllItemStatsResponse:
        stats = await self.query_service.get_all_item_stats()
        return GetAllItemStatsResponse(
            items=[
                ItemStatsItem(item_id=s.item_id, vote_count=s.vote_count) for s in stats
            ]
        )


class GetItemStatsUseCase(BaseUseCase):
    """Use case for a single item's stats."""

    def __init__(self, query_service: VoteQueryService) -> None:
        self.query_service = query_service

    async def execute(self, request: GetItemStatsRequest) -> ItemStatsItem:
        stats = await self.query_service.get_item_stats(request.item_id)
        return ItemStatsItem(item_id=stats.item_id, vote_count=stats.vote_count)
