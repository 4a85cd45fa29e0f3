"""In-memory response caching for repofetch.

This package provides :class:`TTLCache`, a bounded key/value store with
per-entry expiry and least-recently-used eviction, and :data:`api_cache`,
the process-wide instance that :func:`~repofetch.client.cached_fetch` uses
unless it is handed another one.

Build isolated instances with :class:`TTLCache` directly or with
:func:`create_cache` from a :class:`~repofetch.models.CacheConfig`.
"""

from repofetch.cache.cache import (
    CacheEntry,
    CacheStats,
    TTLCache,
    create_cache,
    periodic_sweep,
)

api_cache = TTLCache()
"""Process-wide cache shared by every caller that does not inject its own."""

__all__ = [
    "CacheEntry",
    "CacheStats",
    "TTLCache",
    "api_cache",
    "create_cache",
    "periodic_sweep",
]
