"""Dependency injection wiring for the vote engine."""

from typing import Iterable, Type

from tally.util.di.application import ProdApplicationProvider
from tally.util.di.base import Component, ProviderBase
from tally.util.di.core import ProdConfigProvider
from tally.util.di.domain import ProdDomainProvider
from tally.util.di.infrastructure import PersistenceProvider, ProdPersistenceProvider

# Order matters only for readability; dishka resolves by type
PROVIDERS: list[Type[ProviderBase]] = [
    ProdConfigProvider,
    ProdDomainProvider,
    ProdApplicationProvider,
    PersistenceProvider,
]


def swappable_components() -> set[Component]:
    """Components that have both a production and an in-memory provider."""
    return {p.__mock_component__ for p in PROVIDERS if p.is_swappable()}


def build_providers(mocked: Iterable[Component] = ()) -> list[ProviderBase]:
    """Instantiate one provider per slot, in-memory for the ``mocked`` components.

    Raises:
        ValueError: If a component is unknown or has no matching provider
    """
    mocked = set(mocked)
    unknown = mocked - swappable_components()
    if unknown:
        raise ValueError(f"Unknown components: {sorted(unknown)}")

    return [
        base.implementation(mocked=base.__mock_component__ in mocked)()
        for base in PROVIDERS
    ]


__all__ = [
    "Component",
    "ProviderBase",
    "PROVIDERS",
    "build_providers",
    "swappable_components",
    "ProdConfigProvider",
    "ProdDomainProvider",
    "ProdApplicationProvider",
    "PersistenceProvider",
    "ProdPersistenceProvider",
]
