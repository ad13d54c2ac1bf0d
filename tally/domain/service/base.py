"""Marker base for domain services."""


class Service:
    """Business logic spanning voters, items and votes.

    Services never hold a session. They hand work to a ``TransactionRunner``,
    which gives each attempt a fresh ``UnitOfWork``.
    """
