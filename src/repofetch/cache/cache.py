"""Bounded in-memory response cache with per-entry TTL and LRU eviction.

Entries live in an :class:`~collections.OrderedDict` whose order doubles as
recency order: a successful :meth:`TTLCache.get` moves the entry to the
most-recently-used end and every :meth:`TTLCache.set` writes there.  Two
independent limits apply:

* **Freshness** -- each entry carries an absolute ``expires_at``.  Expired
  entries are invisible to ``get``/``has`` and are deleted lazily when one of
  those touches them, or in bulk by :meth:`TTLCache.prune_expired`.
* **Memory** -- when a write pushes the entry count past ``max_entries``,
  exactly one entry, the least recently used, is evicted.

All operations are synchronous and never suspend, so a single instance can
be shared by every coroutine of an event loop without locking.  Nothing is
persisted; a restart starts from an empty cache.

See Also:
    :class:`~repofetch.models.CacheConfig` -- the settings consumed by
    :func:`create_cache`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel

from repofetch.models import CacheConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_SECONDS = 300.0


@dataclass
class CacheEntry:
    """A cached value and the clock times bounding its lifetime."""

    value: Any
    expires_at: float
    created_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class CacheStats(BaseModel):
    """Snapshot returned by :meth:`TTLCache.stats`.

    ``size`` counts every physically stored entry, including expired ones
    that have not been swept yet.
    """

    size: int
    max_entries: int
    hits: int = 0
    misses: int = 0
    evictions: int = 0


class TTLCache:
    """LRU cache whose entries expire after a time-to-live.

    Args:
        max_entries: Hard cap on stored entries.  Must be at least 1.
        default_ttl: TTL in seconds used by :meth:`set` when none is given.
        clock: Monotonic time source.  Tests pass a fake clock to move time
            forward without sleeping.

    Example::

        cache = TTLCache(max_entries=2)
        cache.set("a", {"id": 1}, ttl=60)
        cache.get("a")        # {"id": 1}
        cache.get("missing")  # None
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for *key*, or ``None``.

        A hit promotes the entry to most-recently-used.  An expired entry is
        deleted and reported as a miss.
        """
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store *value* under *key* for *ttl* seconds.

        Overwrites any existing entry.  A zero or negative TTL is accepted
        and produces an entry that is already stale.  If the write takes
        the cache over capacity, the least-recently-used entry is evicted.
        """
        now = self._clock()
        effective_ttl = self._default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(
            value=value,
            expires_at=now + effective_ttl,
            created_at=now,
        )
        self._entries.move_to_end(key)

        if len(self._entries) > self._max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted least recently used cache entry %s", evicted_key)

    def has(self, key: str) -> bool:
        """Return whether *key* holds a live entry, without touching recency."""
        return self._live_entry(key) is not None

    def delete(self, key: str) -> None:
        """Remove *key* if present.  Missing keys are ignored."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries and reset the hit/miss/eviction counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def stats(self) -> CacheStats:
        """Return current size, capacity and counters."""
        return CacheStats(
            size=len(self._entries),
            max_entries=self._max_entries,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )

    def prune_expired(self) -> int:
        """Delete every expired entry and return how many were removed.

        ``get`` and ``set`` never sweep; call this (or run
        :func:`periodic_sweep`) when capacity should only count live entries.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Pruned %d expired cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry


def create_cache(config: CacheConfig) -> TTLCache:
    """Build a :class:`TTLCache` from a :class:`~repofetch.models.CacheConfig`."""
    return TTLCache(
        max_entries=config.max_entries,
        default_ttl=config.default_ttl_seconds,
    )


async def periodic_sweep(cache: TTLCache, interval: float) -> None:
    """Call :meth:`TTLCache.prune_expired` every *interval* seconds.

    Runs until cancelled; schedule it with :func:`asyncio.create_task` and
    cancel the task on shutdown.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    while True:
        await asyncio.sleep(interval)
        cache.prune_expired()
