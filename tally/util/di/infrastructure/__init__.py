"""Infrastructure providers.

The production subclass is imported here so ``PersistenceProvider`` can
find it through ``__subclasses__()``; the in-memory one registers itself
when the test package imports it.
"""

from .persistence import PersistenceProvider, ProdPersistenceProvider

__all__ = ["PersistenceProvider", "ProdPersistenceProvider"]
