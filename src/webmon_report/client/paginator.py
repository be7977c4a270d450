"""Follow the API's ``links.next`` convention across result pages."""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from webmon_report.client.api import ApiClient, QueryValue
from webmon_report.errors import ParseError

logger = logging.getLogger(__name__)


def _unpack(url: str, body: Any) -> tuple[list[Any], str | None]:
    """Split a result page into its records and the next page link."""
    if not isinstance(body, dict):
        raise ParseError(url, f"expected a JSON object, got {type(body).__name__}")
    data = body.get("data") or []
    links = body.get("links") or {}
    if not isinstance(data, list):
        raise ParseError(url, f"expected \"data\" to be a list, got {type(data).__name__}")
    if not isinstance(links, dict):
        raise ParseError(url, f"expected \"links\" to be an object, got {type(links).__name__}")
    return data, links.get("next")


async def iter_pages(
    client: ApiClient,
    path: str,
    query: Mapping[str, QueryValue] | None = None,
    *,
    page_delay: float = 0.0,
) -> AsyncIterator[list[Any]]:
    """Yield the ``data`` list of each result page, in order.

    The next page is only requested after the current one has been received
    (and after ``page_delay`` seconds, when set). Errors propagate from the
    client as-is.

    Raises:
        ParseError: A result page is not an object with a ``data`` list.
    """
    url = path
    body = await client.fetch(path, query)
    page_number = 1
    while True:
        data, next_url = _unpack(url, body)
        yield data

        if not next_url:
            return

        if page_delay > 0:
            await asyncio.sleep(page_delay)
        page_number += 1
        logger.debug("Fetching page %d of %s", page_number, path)
        url = next_url
        body = await client.fetch(next_url)


async def fetch_all(
    client: ApiClient,
    path: str,
    query: Mapping[str, QueryValue] | None = None,
    *,
    page_delay: float = 0.0,
) -> list[Any]:
    """Fetch every result page of a query and concatenate the records."""
    records: list[Any] = []
    async for data in iter_pages(client, path, query, page_delay=page_delay):
        records.extend(data)
    logger.info("Fetched %d records from %s", len(records), path)
    return records
