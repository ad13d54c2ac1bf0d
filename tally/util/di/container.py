"""Production container for the reconciler and migration scripts."""

from dishka import AsyncContainer, make_async_container

from tally.util.di import build_providers


def create_container() -> AsyncContainer:
    """Container backed by PostgreSQL, configured from the environment."""
    return make_async_container(*build_providers())
