"""Retrying, response-caching client for the web-monitoring API."""

import asyncio
import json
import logging
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import httpx

from webmon_report.client.cache import ResponseCache
from webmon_report.errors import ApiError, ParseError, RequestError

logger = logging.getLogger(__name__)

QueryValue = str | int | float | bool | None

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0


def retry_delay(retry: int, base_delay: float = DEFAULT_RETRY_BASE_DELAY) -> float:
    """Seconds to wait before the ``retry``-th retry (1-based).

    The first retry goes out immediately; after that the wait starts at
    ``base_delay`` and doubles each time.
    """
    if retry <= 1:
        return 0.0
    return base_delay * 2 ** (retry - 2)


def _query_value(value: QueryValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _api_error(response: httpx.Response) -> ApiError:
    """Build an ApiError from the ``errors`` array of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return ApiError(response.status_code, response.text)
    if isinstance(body, dict) and body.get("errors"):
        return ApiError(response.status_code, body["errors"][0])
    return ApiError(response.status_code, body)


class ApiClient:
    """GET JSON from the API, retrying transient failures and caching successes.

    Only transport errors and 5xx responses are retried. Successful bodies are
    stored in ``cache`` under the request's canonical URL, so repeating a
    request (in this process or a restarted one) never hits the network again.

    Args:
        cache: Response cache shared across the run.
        base_url: Root that relative request paths are resolved against.
        user: API user for basic auth (defaults to WEBMON_API_USER env var).
        password: API password (defaults to WEBMON_API_PASSWORD env var).
        timeout: Per-request timeout in seconds.
        max_retries: Extra attempts after the first one.
        retry_base_delay: Backoff unit in seconds (see ``retry_delay``).
        http_client: Preconfigured client to use instead of creating one.
    """

    def __init__(
        self,
        cache: ResponseCache,
        *,
        base_url: str = "",
        user: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._cache = cache
        self._base_url = base_url
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay

        if http_client is not None:
            self._http = http_client
            self._owns_http = False
        else:
            user = user or os.environ.get("WEBMON_API_USER")
            password = password or os.environ.get("WEBMON_API_PASSWORD")
            auth = httpx.BasicAuth(user, password) if user and password else None
            self._http = httpx.AsyncClient(timeout=timeout, auth=auth)
            self._owns_http = True

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def canonical_url(self, url: str, query: Mapping[str, QueryValue] | None = None) -> str:
        """Absolute request URL with query parameters sorted by key.

        ``None`` values are left out, so callers can pass optional filters
        without checking them first.
        """
        absolute = str(httpx.URL(self._base_url).join(url)) if self._base_url else url
        params = sorted(
            (key, _query_value(value)) for key, value in (query or {}).items() if value is not None
        )
        if not params:
            return absolute
        separator = "&" if "?" in absolute else "?"
        return f"{absolute}{separator}{urlencode(params)}"

    async def fetch(self, url: str, query: Mapping[str, QueryValue] | None = None) -> Any:
        """GET ``url`` with ``query`` and return the decoded JSON body.

        Raises:
            RequestError: Transport errors or 5xx responses outlasted the retries.
            ApiError: The API answered with any other non-200 status.
            ParseError: The body of a 200 response, or its cached copy, was not JSON.
        """
        key = self.canonical_url(url, query)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            try:
                return json.loads(cached)
            except ValueError as e:
                raise ParseError(key, f"corrupt cache entry ({e})") from e

        response = await self._get_with_retries(key)
        if response.status_code != 200:
            raise _api_error(response)

        try:
            body = response.json()
        except ValueError as e:
            raise ParseError(key, str(e)) from e

        self._cache.set(key, response.text)
        return body

    async def _get_with_retries(self, url: str) -> httpx.Response:
        last_error: BaseException | None = None
        for attempt in range(self._max_retries + 1):
            if attempt:
                delay = retry_delay(attempt, self._retry_base_delay)
                logger.warning(
                    "Retrying %s in %.1fs (retry %d of %d): %s",
                    url,
                    delay,
                    attempt,
                    self._max_retries,
                    last_error,
                )
                if delay > 0:
                    await asyncio.sleep(delay)

            try:
                response = await self._http.get(url)
            except httpx.TransportError as e:
                last_error = e
                continue

            if response.status_code >= 500:
                last_error = _api_error(response)
                continue
            return response

        if last_error is None:
            raise RuntimeError(f"No attempt was made for {url}")
        raise RequestError(url, last_error)
