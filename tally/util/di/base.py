"""Provider base shared by every dishka provider in tally."""

from typing import ClassVar, Literal, Type

from dishka import Provider

# Components whose providers have an in-memory twin for tests
Component = Literal["persistence"]


class ProviderBase(Provider):
    """A dishka provider that can declare itself swappable.

    A provider that names a ``__mock_component__`` is an abstract slot:
    its subclasses are the concrete implementations, told apart by
    ``__is_mock__``. Providers without a component are used as they are.
    """

    __mock_component__: ClassVar[Component | None] = None
    __is_mock__: ClassVar[bool] = False

    @classmethod
    def is_swappable(cls) -> bool:
        return cls.__mock_component__ is not None and bool(cls.__subclasses__())

    @classmethod
    def implementation(cls, mocked: bool) -> Type["ProviderBase"]:
        """Pick the subclass matching ``mocked``, or ``cls`` if nothing to pick."""
        if not cls.is_swappable():
            return cls
        for candidate in cls.__subclasses__():
            if candidate.__is_mock__ == mocked:
                return candidate
        kind = "in-memory" if mocked else "production"
        raise ValueError(f"No {kind} provider registered for {cls.__mock_component__}")
