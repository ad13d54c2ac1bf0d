"""Item use cases."""

from .get_item_stats import (
    GetAllItemStatsResponse,
    GetAllItemStatsUseCase,
    GetItemStatsRequest,
    GetItemStatsUseCase,
    ItemStatsItem,
)

__all__ = [
    "GetAllItemStatsResponse",
    "GetAllItemStatsUseCase",
    "GetItemStatsRequest",
    "GetItemStatsUseCase",
    "ItemStatsItem",
]
