"""Tests for the retrying, caching API client."""

import json
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import httpx
import pytest

from webmon_report.client.api import ApiClient, retry_delay
from webmon_report.client.cache import ResponseCache
from webmon_report.errors import ApiError, ParseError, RequestError

BASE_URL = "https://api.example.org"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
async def cache(tmp_path: Path) -> AsyncIterator[ResponseCache]:
    cache = ResponseCache(tmp_path / "cache.json", flush_delay=60)
    yield cache
    await cache.delete()


def make_client(cache: ResponseCache, handler: Handler, *, max_retries: int = 3) -> ApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ApiClient(
        cache,
        base_url=BASE_URL,
        max_retries=max_retries,
        retry_base_delay=0,
        http_client=http,
    )


def counting(*responses: httpx.Response | Exception) -> tuple[Handler, list[httpx.Request]]:
    """Handler replaying ``responses`` in order, recording each request."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        outcome = responses[min(len(requests), len(responses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return handler, requests


def ok(body: object) -> httpx.Response:
    return httpx.Response(200, json=body)


# -- retry_delay --


def test_retry_delay_first_retry_is_immediate() -> None:
    assert retry_delay(1, 1.0) == 0.0


def test_retry_delay_doubles() -> None:
    assert [retry_delay(n, 1.0) for n in (2, 3, 4)] == [1.0, 2.0, 4.0]
    assert retry_delay(3, 0.5) == 1.0


# -- canonical_url --


async def test_canonical_url_sorts_query_keys(cache: ResponseCache) -> None:
    client = make_client(cache, counting(ok({}))[0])
    url = client.canonical_url(
        "/api/v0/pages",
        {"sort": "capture_time:desc", "active": True, "chunk_size": 100},
    )
    assert url == f"{BASE_URL}/api/v0/pages?active=true&chunk_size=100&sort=capture_time%3Adesc"


async def test_canonical_url_ignores_insertion_order(cache: ResponseCache) -> None:
    client = make_client(cache, counting(ok({}))[0])
    a = client.canonical_url("/api/v0/versions", {"different": True, "capture_time": "x..y"})
    b = client.canonical_url("/api/v0/versions", {"capture_time": "x..y", "different": True})
    assert a == b


async def test_canonical_url_omits_none_values(cache: ResponseCache) -> None:
    client = make_client(cache, counting(ok({}))[0])
    url = client.canonical_url("/api/v0/pages", {"source_type": None, "active": False})
    assert url == f"{BASE_URL}/api/v0/pages?active=false"


async def test_canonical_url_keeps_absolute_next_links(cache: ResponseCache) -> None:
    client = make_client(cache, counting(ok({}))[0])
    next_link = "https://api.example.org/api/v0/pages?chunk=2&chunk_size=100"
    assert client.canonical_url(next_link) == next_link


# -- fetch --


async def test_fetch_returns_body_and_caches_it(cache: ResponseCache) -> None:
    handler, requests = counting(ok({"data": [1, 2]}))
    client = make_client(cache, handler)

    body = await client.fetch("/api/v0/pages", {"chunk_size": 10})
    again = await client.fetch("/api/v0/pages", {"chunk_size": 10})

    assert body == {"data": [1, 2]}
    assert again == body
    assert len(requests) == 1
    assert str(requests[0].url) == f"{BASE_URL}/api/v0/pages?chunk_size=10"
    assert json.loads(cache.get(f"{BASE_URL}/api/v0/pages?chunk_size=10")) == body


async def test_fetch_uses_entries_from_earlier_process(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    key = f"{BASE_URL}/api/v0/pages?active=true"
    path.write_text(json.dumps({key: '{"data": ["cached"]}'}))
    cache = ResponseCache(path)
    cache.load()

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("network should not be used")

    client = make_client(cache, handler)

    assert await client.fetch("/api/v0/pages", {"active": True}) == {"data": ["cached"]}


async def test_fetch_retries_server_errors(cache: ResponseCache) -> None:
    handler, requests = counting(
        httpx.Response(503, json={"errors": [{"title": "Unavailable"}]}),
        ok({"data": []}),
    )
    client = make_client(cache, handler)

    body = await client.fetch("/api/v0/versions", {"b": 2, "a": 1})

    assert body == {"data": []}
    assert len(requests) == 2
    assert len(cache) == 1
    assert client.canonical_url("/api/v0/versions", {"a": 1, "b": 2}) in cache


async def test_fetch_retries_transport_errors(cache: ResponseCache) -> None:
    handler, requests = counting(httpx.ConnectError("connection reset"), ok({"data": []}))
    client = make_client(cache, handler)

    assert await client.fetch("/api/v0/pages") == {"data": []}
    assert len(requests) == 2


async def test_fetch_gives_up_after_max_retries(cache: ResponseCache) -> None:
    handler, requests = counting(httpx.Response(500, json={"errors": [{"title": "Boom"}]}))
    client = make_client(cache, handler, max_retries=2)

    with pytest.raises(RequestError) as exc_info:
        await client.fetch("/api/v0/pages")

    assert len(requests) == 3
    assert isinstance(exc_info.value.last_error, ApiError)
    assert exc_info.value.last_error.status_code == 500
    assert len(cache) == 0


async def test_fetch_transport_errors_exhausted(cache: ResponseCache) -> None:
    handler, requests = counting(httpx.ReadTimeout("too slow"))
    client = make_client(cache, handler, max_retries=1)

    with pytest.raises(RequestError) as exc_info:
        await client.fetch("/api/v0/pages")

    assert len(requests) == 2
    assert isinstance(exc_info.value.last_error, httpx.ReadTimeout)


async def test_fetch_does_not_retry_client_errors(cache: ResponseCache) -> None:
    handler, requests = counting(
        httpx.Response(
            422,
            json={"errors": [{"status": 422, "title": "Bad range"}, {"title": "Second"}]},
        )
    )
    client = make_client(cache, handler)

    with pytest.raises(ApiError) as exc_info:
        await client.fetch("/api/v0/pages", {"capture_time": "bad"})

    assert len(requests) == 1
    assert exc_info.value.status_code == 422
    assert exc_info.value.error == {"status": 422, "title": "Bad range"}
    assert len(cache) == 0


async def test_fetch_rejects_other_success_statuses(cache: ResponseCache) -> None:
    handler, requests = counting(httpx.Response(204))
    client = make_client(cache, handler)

    with pytest.raises(ApiError) as exc_info:
        await client.fetch("/api/v0/pages")

    assert exc_info.value.status_code == 204
    assert len(requests) == 1


async def test_fetch_invalid_json_raises_parse_error(cache: ResponseCache) -> None:
    handler, _ = counting(httpx.Response(200, text="<html>maintenance</html>"))
    client = make_client(cache, handler)

    with pytest.raises(ParseError):
        await client.fetch("/api/v0/pages")

    assert len(cache) == 0


async def test_fetch_corrupt_cache_entry_raises_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    key = f"{BASE_URL}/api/v0/pages"
    path.write_text(json.dumps({key: "{not json"}))
    cache = ResponseCache(path)
    cache.load()
    handler, requests = counting(ok({"data": []}))
    client = make_client(cache, handler)

    with pytest.raises(ParseError) as exc_info:
        await client.fetch("/api/v0/pages")

    assert exc_info.value.url == key
    assert "corrupt cache entry" in str(exc_info.value)
    assert requests == []


async def test_fetch_with_zero_retries_makes_one_attempt(cache: ResponseCache) -> None:
    handler, requests = counting(httpx.Response(503, json={"errors": []}))
    client = make_client(cache, handler, max_retries=0)

    with pytest.raises(RequestError):
        await client.fetch("/api/v0/pages")

    assert len(requests) == 1


async def test_client_rejects_negative_max_retries(cache: ResponseCache) -> None:
    with pytest.raises(ValueError, match="max_retries"):
        make_client(cache, counting(ok({}))[0], max_retries=-1)


async def test_client_context_manager_closes_own_http_client(cache: ResponseCache) -> None:
    async with ApiClient(cache, base_url=BASE_URL) as client:
        assert client.cache is cache
    assert client._http.is_closed
