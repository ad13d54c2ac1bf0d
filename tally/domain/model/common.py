"""Shared base for voter, item and vote entities."""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict

M = TypeVar("M", bound="DomainModel")


class DomainModel(BaseModel):
    """Frozen entity; repositories persist successors under a version guard."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def evolve(self: M, **changes: Any) -> M:
        """Copy with ``changes`` applied, leaving this instance untouched."""
        return self.model_copy(update=changes)
