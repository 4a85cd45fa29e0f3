"""Tests for the caching fetch wrapper."""

from __future__ import annotations

import asyncio
import gc
from typing import Any, Callable

import httpx
import pytest

from repofetch.cache import TTLCache, api_cache
from repofetch.client import (
    CachedFetcher,
    build_request_headers,
    cached_fetch,
    create_http_client,
    generate_cache_key,
)
from repofetch.exceptions import ApiError, get_error_message, is_rate_limit_error
from repofetch.models import RequestConfig

URL = "https://api.example.com/repos/acme/presets"


def run_async(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


def _json(data: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, json=data)


def _client(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _fetch_twice(fetcher: CachedFetcher, **kwargs: Any):
    async def scenario():
        first = await fetcher.fetch(URL, **kwargs)
        second = await fetcher.fetch(URL, **kwargs)
        return first, second

    return run_async(scenario())


@pytest.fixture()
def cache(clock) -> TTLCache:
    return TTLCache(max_entries=10, default_ttl=300, clock=clock)


# ---------------------------------------------------------------------------
# Cache keys and headers
# ---------------------------------------------------------------------------


class TestCacheKey:
    def test_public_key(self) -> None:
        assert generate_cache_key(URL) == f"{URL}:public"

    def test_auth_key_does_not_contain_token(self) -> None:
        key = generate_cache_key(URL, "ghp_secret")
        assert key == f"{URL}:auth"
        assert "ghp_secret" not in key

    def test_empty_token_is_public(self) -> None:
        assert generate_cache_key(URL, "") == f"{URL}:public"


class TestRequestHeaders:
    def test_defaults_to_json_accept(self) -> None:
        assert build_request_headers() == {"Accept": "application/json"}

    def test_bearer_token(self) -> None:
        headers = build_request_headers("abc")
        assert headers["Authorization"] == "Bearer abc"

    def test_caller_headers_override_defaults(self) -> None:
        headers = build_request_headers(headers={"Accept": "application/vnd.github.v3+json"})
        assert headers["Accept"] == "application/vnd.github.v3+json"

    def test_caller_authorization_wins(self) -> None:
        headers = build_request_headers("abc", headers={"authorization": "token xyz"})
        assert headers["authorization"] == "token xyz"
        assert "Authorization" not in headers

    def test_user_agent(self) -> None:
        assert build_request_headers(user_agent="ua/1")["User-Agent"] == "ua/1"


class TestCreateHttpClient:
    def test_applies_request_config(self) -> None:
        config = RequestConfig(timeout=5, user_agent="repofetch-test")
        client = create_http_client(config)
        try:
            assert client.timeout.read == 5
            assert client.headers["User-Agent"] == "repofetch-test"
            assert client.follow_redirects is True
        finally:
            run_async(client.aclose())


# ---------------------------------------------------------------------------
# Cached fetch
# ---------------------------------------------------------------------------


class TestCachedFetch:
    def test_second_call_served_from_cache(self, cache: TTLCache) -> None:
        recorder = Recorder(_json({"name": "presets"}))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        first, second = _fetch_twice(fetcher)

        assert recorder.calls == 1
        assert first.data == {"name": "presets"}
        assert first.from_cache is False
        assert second.data == {"name": "presets"}
        assert second.from_cache is True

    def test_refetches_after_ttl(self, cache: TTLCache, clock) -> None:
        recorder = Recorder(_json([1, 2]))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        async def scenario():
            await fetcher.fetch(URL, cache_ttl=10)
            clock.advance(10)
            return await fetcher.fetch(URL, cache_ttl=10)

        result = run_async(scenario())
        assert recorder.calls == 2
        assert result.from_cache is False

    def test_default_ttl_used_without_cache_ttl(self, cache: TTLCache, clock) -> None:
        recorder = Recorder(_json({}))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder), default_ttl=30)

        async def scenario():
            await fetcher.fetch(URL)
            clock.advance(29)
            hit = await fetcher.fetch(URL)
            clock.advance(1)
            miss = await fetcher.fetch(URL)
            return hit, miss

        hit, miss = run_async(scenario())
        assert hit.from_cache is True
        assert miss.from_cache is False
        assert recorder.calls == 2

    def test_token_sent_as_bearer_and_cached_separately(self, cache: TTLCache) -> None:
        recorder = Recorder(_json({"ok": True}))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        async def scenario():
            await fetcher.fetch(URL)
            return await fetcher.fetch(URL, token="ghp_abc")

        result = run_async(scenario())
        assert result.from_cache is False
        assert recorder.calls == 2
        assert "Authorization" not in recorder.requests[0].headers
        assert recorder.requests[1].headers["Authorization"] == "Bearer ghp_abc"
        assert cache.has(f"{URL}:auth")
        assert cache.has(f"{URL}:public")

    def test_tokens_share_the_auth_entry(self, cache: TTLCache) -> None:
        recorder = Recorder(_json({"ok": True}))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        async def scenario():
            await fetcher.fetch(URL, token="first")
            return await fetcher.fetch(URL, token="second")

        assert run_async(scenario()).from_cache is True
        assert recorder.calls == 1

    def test_extra_headers_are_sent(self, cache: TTLCache) -> None:
        recorder = Recorder(_json({}))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        run_async(fetcher.fetch(URL, headers={"Accept": "application/vnd.github.v3+json"}))

        assert recorder.requests[0].headers["Accept"] == "application/vnd.github.v3+json"

    def test_json_null_body_is_refetched(self, cache: TTLCache) -> None:
        recorder = Recorder(lambda request: httpx.Response(200, content=b"null"))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        first, second = _fetch_twice(fetcher)

        assert first.data is None
        assert second.from_cache is False
        assert recorder.calls == 2


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_non_2xx_raises_api_error(self, cache: TTLCache) -> None:
        recorder = Recorder(_json({"message": "Not Found"}, status_code=404))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        with pytest.raises(ApiError) as exc_info:
            run_async(fetcher.fetch(URL))

        assert exc_info.value.status == 404
        assert exc_info.value.status_text == "Not Found"
        assert exc_info.value.api_message == "Not Found"
        assert exc_info.value.message == "Resource not found. Please check the URL and try again."

    def test_failures_are_not_cached(self, cache: TTLCache) -> None:
        responses = iter(
            [
                httpx.Response(500, json={"message": "boom"}),
                httpx.Response(200, json={"ok": True}),
            ]
        )
        recorder = Recorder(lambda request: next(responses))
        fetcher = CachedFetcher(cache=cache, client=_client(recorder))

        with pytest.raises(ApiError):
            run_async(fetcher.fetch(URL))
        assert len(cache) == 0

        result = run_async(fetcher.fetch(URL))
        assert result.data == {"ok": True}
        assert recorder.calls == 2

    def test_rate_limit_response(self, cache: TTLCache) -> None:
        body = {
            "message": "API rate limit exceeded for 203.0.113.5. "
            "(But here's the good news: Authenticated requests get a higher rate limit.)",
            "documentation_url": "https://docs.github.com/rest/rate-limit",
        }
        fetcher = CachedFetcher(cache=cache, client=_client(_json(body, status_code=403)))

        with pytest.raises(ApiError) as exc_info:
            run_async(fetcher.fetch(URL))

        error = exc_info.value
        assert is_rate_limit_error(error)
        assert error.documentation_url == "https://docs.github.com/rest/rate-limit"
        assert "203.0.113.5" not in get_error_message(error)

    def test_transport_error_propagates_unchanged(self, cache: TTLCache) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = CachedFetcher(cache=cache, client=_client(handler))

        with pytest.raises(httpx.ConnectError):
            run_async(fetcher.fetch(URL))
        assert len(cache) == 0

    def test_non_json_success_body_raises(self, cache: TTLCache) -> None:
        fetcher = CachedFetcher(
            cache=cache, client=_client(lambda request: httpx.Response(200, text="<html>"))
        )

        with pytest.raises(ValueError):
            run_async(fetcher.fetch(URL))
        assert len(cache) == 0


# ---------------------------------------------------------------------------
# Single flight
# ---------------------------------------------------------------------------


class TestSingleFlight:
    @staticmethod
    def _slow_handler(counter: list[int]):
        async def handler(request: httpx.Request) -> httpx.Response:
            counter.append(1)
            await asyncio.sleep(0.01)
            return httpx.Response(200, json={"n": len(counter)})

        return handler

    def test_concurrent_calls_share_one_request(self, cache: TTLCache) -> None:
        counter: list[int] = []
        fetcher = CachedFetcher(
            cache=cache, client=_client(self._slow_handler(counter)), single_flight=True
        )

        async def scenario():
            return await asyncio.gather(*(fetcher.fetch(URL) for _ in range(5)))

        results = run_async(scenario())
        assert len(counter) == 1
        assert all(r.data == {"n": 1} for r in results)

    def test_without_single_flight_each_call_hits_network(self, cache: TTLCache) -> None:
        counter: list[int] = []
        fetcher = CachedFetcher(cache=cache, client=_client(self._slow_handler(counter)))

        async def scenario():
            return await asyncio.gather(*(fetcher.fetch(URL) for _ in range(3)))

        run_async(scenario())
        assert len(counter) == 3

    def test_shared_failure_reaches_every_waiter(self, cache: TTLCache) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.01)
            return httpx.Response(404)

        fetcher = CachedFetcher(cache=cache, client=_client(handler), single_flight=True)

        async def scenario():
            return await asyncio.gather(
                fetcher.fetch(URL), fetcher.fetch(URL), return_exceptions=True
            )

        results = run_async(scenario())
        assert all(isinstance(r, ApiError) and r.status == 404 for r in results)

    def test_failure_after_cancelled_waiter_is_not_reported_unretrieved(
        self, cache: TTLCache
    ) -> None:
        reported: list[dict[str, Any]] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.02)
            return httpx.Response(500)

        fetcher = CachedFetcher(cache=cache, client=_client(handler), single_flight=True)

        async def scenario() -> None:
            loop = asyncio.get_running_loop()
            loop.set_exception_handler(lambda _loop, context: reported.append(context))
            waiter = asyncio.create_task(fetcher.fetch(URL))
            await asyncio.sleep(0.005)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
            await asyncio.sleep(0.05)
            gc.collect()

        run_async(scenario())
        assert reported == []
        assert not cache.has(f"{URL}:public")


# ---------------------------------------------------------------------------
# Module-level helper
# ---------------------------------------------------------------------------


class TestModuleLevelCachedFetch:
    def test_uses_process_wide_cache(self) -> None:
        recorder = Recorder(_json({"a": 1}))

        async def scenario():
            async with _client(recorder) as client:
                first = await cached_fetch(URL, client=client)
                second = await cached_fetch(URL, client=client)
            return first, second

        first, second = run_async(scenario())
        assert (first.from_cache, second.from_cache) == (False, True)
        assert recorder.calls == 1
        assert api_cache.has(f"{URL}:public")

    def test_injected_cache(self, cache: TTLCache) -> None:
        recorder = Recorder(_json({"a": 1}))

        async def scenario():
            async with _client(recorder) as client:
                await cached_fetch(URL, client=client, cache=cache, cache_ttl=5)

        run_async(scenario())
        assert cache.has(f"{URL}:public")
        assert not api_cache.has(f"{URL}:public")

    def test_fetcher_keeps_injected_client_open(self, cache: TTLCache) -> None:
        client = _client(Recorder(_json({})))

        async def scenario():
            async with CachedFetcher(cache=cache, client=client) as fetcher:
                await fetcher.fetch(URL)
            return client.is_closed

        assert run_async(scenario()) is False
        run_async(client.aclose())
