"""Pydantic bases for immutable value objects."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, RootModel

T = TypeVar("T")


class ValueObject(BaseModel):
    """Frozen record compared field by field, e.g. a conflict resolution."""

    model_config = ConfigDict(frozen=True)


class RootValueObject(RootModel[T], Generic[T]):
    """Frozen wrapper around one primitive, e.g. a display name.

    Validators run on construction; ``str()`` and ``model_dump()`` give the
    bare primitive back, which is what the tables store.
    """

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return str(self.root)
