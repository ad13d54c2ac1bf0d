"""Process-local TTL cache for aggregate reads.

Entries are derived, disposable copies: losing one costs a recomputation,
never correctness. The write path invalidates the keys it affects; TTL only
bounds staleness for changes it cannot see (e.g. consistency sweep repairs).
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import logfire

from tally.config import CacheSettings

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """Cached value with its absolute expiry on the cache clock."""

    value: V
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResultCache(Generic[V]):
    """Bounded TTL cache with insertion-order eviction.

    When the bound is exceeded the oldest inserted entry goes first; re-setting
    a key counts as a fresh insertion. Expiry is checked lazily on read, there
    is no background sweep. A lock guards the map so the cache is safe to
    share across threads as well as tasks.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 500,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Lifetime of an entry
            max_entries: Bound on the number of entries
            name: Pool name used in logs
            clock: Monotonic clock, injectable for tests
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()
        # Bumped by every delete and clear
        self._generation = 0

    def get(self, key: str) -> Optional[V]:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logfire.debug("Cache entry expired", cache=self.name, key=key)
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Store a value, evicting the oldest entries past the bound."""
        with self._lock:
            self._store(key, value)

    @property
    def generation(self) -> int:
        """Invalidation counter; capture it before computing a value to store."""
        with self._lock:
            return self._generation

    def set_if_current(self, key: str, value: V, generation: int) -> bool:
        """Store a value only if nothing was invalidated since ``generation``.

        A read that started before an invalidation may have computed its value
        from the state the invalidation retired; storing it would undo the
        invalidation until the TTL runs out.
        """
        with self._lock:
            if generation != self._generation:
                logfire.debug(
                    "Stale cache fill dropped",
                    cache=self.name,
                    key=key,
                    generation=generation,
                    current=self._generation,
                )
                return False
            self._store(key, value)
            return True

    def delete(self, key: str) -> None:
        """Drop a key if present."""
        with self._lock:
            self._generation += 1
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._generation += 1
            count = len(self._entries)
            self._entries.clear()
        logfire.debug("Cache cleared", cache=self.name, entries_cleared=count)

    def _store(self, key: str, value: V) -> None:
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            value=value, expires_at=self._clock() + self.ttl_seconds
        )
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logfire.debug("Cache entry evicted", cache=self.name, key=evicted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheKeys:
    """Cache key builders."""

    ALL_ITEM_STATS = "all_item_stats"

    @staticmethod
    def item_stats(item_id: str) -> str:
        return f"item_stats_{item_id}"

    @staticmethod
    def voter_votes(voter_id: str) -> str:
        return f"voter_votes_{voter_id}"

    @staticmethod
    def vote_history(limit: int) -> str:
        return f"vote_history_{limit}"


class ResultCaches:
    """The three cache pools shared by the read and write paths.

    Created once per process and handed to services explicitly; the only
    reset is ``clear()``.

    - ``item_stats``: per-item and all-items stats (default 30s)
    - ``voter_votes``: per-voter vote lists (default 60s)
    - ``history``: recent-history feed, keyed by limit (default 15s)
    """

    def __init__(self, settings: CacheSettings) -> None:
        self.item_stats: ResultCache[Any] = ResultCache(
            settings.item_stats_ttl_seconds, settings.max_entries, name="item_stats"
        )
        self.voter_votes: ResultCache[Any] = ResultCache(
            settings.voter_votes_ttl_seconds, settings.max_entries, name="voter_votes"
        )
        self.history: ResultCache[Any] = ResultCache(
            settings.history_ttl_seconds, settings.max_entries, name="history"
        )

    def invalidate_vote(self, voter_id: str, item_id: str) -> None:
        """Drop every entry a confirmed vote for (voter, item) makes stale."""
        self.voter_votes.delete(CacheKeys.voter_votes(voter_id))
        self.item_stats.delete(CacheKeys.item_stats(item_id))
        self.item_stats.delete(CacheKeys.ALL_ITEM_STATS)
        # The history pool only holds feed pages, one per limit
        self.history.clear()
        logfire.debug("Caches invalidated", voter_id=voter_id, item_id=item_id)

    def clear(self) -> None:
        """Drop every entry in every pool."""
        self.item_stats.clear()
        self.voter_votes.clear()
        self.history.clear()
