"""Caching GET wrapper in front of outbound API calls.

:func:`cached_fetch` is the call site used throughout repofetch.  It

1. derives a cache key from the URL and whether a credential was supplied
   (:func:`generate_cache_key`; the credential itself never enters the key),
2. returns a live cached body immediately, without any network traffic,
3. otherwise issues the GET through :class:`httpx.AsyncClient`, raising
   :class:`~repofetch.exceptions.ApiError` on a non-2xx status, and
4. stores the decoded JSON body only on success, so a failure is retried by
   the very next call instead of being remembered.

Transport errors (:class:`httpx.TransportError`) propagate unchanged and
nothing is retried here; callers decide, usually with
:func:`~repofetch.exceptions.is_rate_limit_error`.

Two overlapping calls for the same key may both miss and both hit the
network.  :class:`CachedFetcher` can collapse them into one request with
``single_flight=True``; it is off by default.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from repofetch.cache import TTLCache, api_cache
from repofetch.client.response import create_api_error
from repofetch.models import RequestConfig

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class FetchResult:
    """A decoded response body and whether it was served from the cache."""

    data: Any
    from_cache: bool


def generate_cache_key(url: str, token: Optional[str] = None) -> str:
    """Return ``"<url>:auth"`` when *token* is set, ``"<url>:public"`` otherwise.

    Authenticated and anonymous responses for the same URL can differ (a
    private repository is a 404 without a token), so they are cached apart.
    """
    access_class = "auth" if token else "public"
    return f"{url}:{access_class}"


def build_request_headers(
    token: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
    user_agent: Optional[str] = None,
) -> dict[str, str]:
    """Merge default, caller and credential headers.

    Caller-supplied headers win over the defaults.  A bearer
    ``Authorization`` header is added for *token* unless the caller already
    set one.
    """
    merged: dict[str, str] = {"Accept": "application/json"}
    if user_agent:
        merged["User-Agent"] = user_agent
    merged.update(headers or {})
    if token and not any(name.lower() == "authorization" for name in merged):
        merged["Authorization"] = f"Bearer {token}"
    return merged


def create_http_client(
    config: Optional[RequestConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the :class:`httpx.AsyncClient` used for upstream calls."""
    config = config or RequestConfig()
    return httpx.AsyncClient(
        timeout=config.timeout,
        verify=config.verify_ssl,
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
        transport=transport,
    )


class CachedFetcher:
    """Caching GET client bound to one cache and one HTTP client.

    Args:
        cache: Cache to read and populate.  Defaults to the process-wide
            :data:`~repofetch.cache.api_cache`.
        client: HTTP client to send requests with.  When ``None``, one is
            created on first use from *request_config* and closed by
            :meth:`aclose`.
        default_ttl: TTL in seconds for calls that pass no ``cache_ttl``.
        single_flight: Share one in-flight request between concurrent
            calls for the same key.
        request_config: Settings for the client created when *client* is
            ``None``.

    Example::

        async with CachedFetcher(cache=TTLCache(max_entries=10)) as fetcher:
            result = await fetcher.fetch("https://api.github.com/gists/abc")
            result.from_cache   # False on the first call, True afterwards
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        single_flight: bool = False,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self._cache = cache if cache is not None else api_cache
        self._client = client
        self._owns_client = client is None
        self._default_ttl = default_ttl
        self._single_flight = single_flight
        self._request_config = request_config
        self._pending: dict[str, asyncio.Task[Any]] = {}

    @property
    def cache(self) -> TTLCache:
        return self._cache

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> CachedFetcher:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def fetch(
        self,
        url: str,
        token: Optional[str] = None,
        cache_ttl: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> FetchResult:
        """GET *url* as JSON, serving it from the cache when possible.

        Args:
            url: Absolute URL to request.
            token: Optional bearer credential.  Only its presence affects
                the cache key.
            cache_ttl: TTL in seconds for the stored body.  Defaults to the
                fetcher's ``default_ttl``.
            headers: Extra request headers.

        Returns:
            A :class:`FetchResult` with the decoded body.

        Raises:
            ApiError: On a non-2xx response.  Nothing is cached.
            httpx.TransportError: On network failures, unchanged.
            ValueError: When a 2xx body is not decodable JSON.
        """
        key = generate_cache_key(url, token)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return FetchResult(data=cached, from_cache=True)
        logger.debug("Cache miss: %s", key)

        if not self._single_flight:
            data = await self._fetch_and_store(key, url, token, cache_ttl, headers)
            return FetchResult(data=data, from_cache=False)

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._fetch_and_store(key, url, token, cache_ttl, headers)
            )
            self._pending[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            logger.debug("Joining in-flight request: %s", key)
        # A cancelled waiter must not cancel the request other waiters share.
        data = await asyncio.shield(task)
        return FetchResult(data=data, from_cache=False)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_http_client(self._request_config)
        return self._client

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark a failure as retrieved even when every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(
        self,
        key: str,
        url: str,
        token: Optional[str],
        cache_ttl: Optional[float],
        headers: Optional[dict[str, str]],
    ) -> Any:
        client = self._get_client()
        response = await client.get(url, headers=build_request_headers(token, headers))

        if not response.is_success:
            logger.debug("Upstream returned HTTP %d for %s", response.status_code, key)
            raise create_api_error(response)

        data = response.json()
        ttl = self._default_ttl if cache_ttl is None else cache_ttl
        self._cache.set(key, data, ttl)
        return data


async def cached_fetch(
    url: str,
    *,
    token: Optional[str] = None,
    cache_ttl: Optional[float] = None,
    headers: Optional[dict[str, str]] = None,
    client: Optional[httpx.AsyncClient] = None,
    cache: Optional[TTLCache] = None,
) -> FetchResult:
    """Fetch *url* through the cache.  See :meth:`CachedFetcher.fetch`.

    Uses the process-wide :data:`~repofetch.cache.api_cache` unless *cache*
    is given.  Without *client*, a short-lived :class:`httpx.AsyncClient` is
    opened for the call and closed afterwards.
    """
    async with CachedFetcher(cache=cache, client=client) as fetcher:
        return await fetcher.fetch(url, token=token, cache_ttl=cache_ttl, headers=headers)
