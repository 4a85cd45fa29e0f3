"""HTTP client module for repofetch.

Wraps :mod:`httpx` with transparent response caching:

* :func:`cached_fetch` -- one-shot cached GET returning a :class:`FetchResult`.
* :class:`CachedFetcher` -- the same behaviour bound to an injectable cache
  and client, with optional single-flight deduplication.
* :func:`generate_cache_key` -- the credential-free cache key derivation.

Example::

    from repofetch.client import cached_fetch

    result = await cached_fetch("https://api.github.com/gists/abc", token=token)
    result.data, result.from_cache
"""

from repofetch.client.fetch import (
    CachedFetcher,
    FetchResult,
    build_request_headers,
    cached_fetch,
    create_http_client,
    generate_cache_key,
)
from repofetch.client.response import create_api_error, extract_response_data

__all__ = [
    "CachedFetcher",
    "FetchResult",
    "build_request_headers",
    "cached_fetch",
    "create_api_error",
    "create_http_client",
    "extract_response_data",
    "generate_cache_key",
]
