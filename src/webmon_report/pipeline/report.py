"""Report pipeline: fetch, classify, merge and sort one time window."""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from webmon_report.aggregation import classify, merge_page, sort_rows
from webmon_report.client import ApiClient, fetch_all
from webmon_report.client.api import QueryValue
from webmon_report.data import Page, ReportResult, ReportRow, TimeWindow, Version
from webmon_report.errors import ApiError, FatalAggregationError, ParseError, RequestError
from webmon_report.run_logger import RunLogger

logger = logging.getLogger(__name__)

PAGES_PATH = "/api/v0/pages"
VERSIONS_PATH = "/api/v0/versions"

T = TypeVar("T")


def build_row(page: Page) -> ReportRow:
    """Summarize a classified page as a report row."""
    if page.latest is None:
        raise ValueError(f"Page {page.uuid} has not been classified")
    return ReportRow(page=page, version=page.latest, annotation=merge_page(page))


def _parse_records(path: str, records: list[Any], parse: Callable[[dict[str, Any]], T]) -> list[T]:
    try:
        return [parse(record) for record in records]
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError(path, f"malformed record ({e!r})") from e


class ReportPipeline:
    """Build the change report for a time window.

    Flow:
    1. Pages and versions of the window are fetched concurrently
    2. Versions are joined to pages and pages bucketed by tag group
    3. Each bucketed page's versions are merged into one row
    4. Rows are sorted per group

    The response cache is flushed and deleted when the run ends, whether it
    succeeded or not.

    Args:
        client: API client, carrying the run's response cache.
        group_prefixes: Ordered tag prefixes that make up group keys.
        source_type: Only include this capture source (None for any).
        chunk_size: Records per result page to request.
        page_delay: Seconds to wait between result pages.
        run_logger: Optional RunLogger for stage logging.
    """

    def __init__(
        self,
        client: ApiClient,
        *,
        group_prefixes: Sequence[str] = (),
        source_type: str | None = None,
        chunk_size: int = 1000,
        page_delay: float = 0.0,
        run_logger: RunLogger | None = None,
    ) -> None:
        self._client = client
        self._group_prefixes = list(group_prefixes)
        self._source_type = source_type
        self._chunk_size = chunk_size
        self._page_delay = page_delay
        self._run_logger = run_logger

    async def aclose(self) -> None:
        """Close the underlying API client."""
        await self._client.aclose()

    def pages_query(self, window: TimeWindow) -> dict[str, QueryValue]:
        return {
            "capture_time": window.to_query(),
            "source_type": self._source_type,
            "chunk_size": self._chunk_size,
            "active": True,
            "include_earliest": True,
        }

    def versions_query(self, window: TimeWindow) -> dict[str, QueryValue]:
        return {
            "capture_time": window.to_query(),
            "source_type": self._source_type,
            "chunk_size": self._chunk_size,
            "sort": "capture_time:desc",
            "different": True,
            "include_change_from_previous": True,
        }

    async def run(self, window: TimeWindow) -> ReportResult:
        """Execute the pipeline for ``window``.

        Raises:
            FatalAggregationError: A request, API or parse failure aborted the run.
        """
        if self._run_logger:
            self._run_logger.start_run(window)

        cache = self._client.cache
        cache.load()

        result: ReportResult | None = None
        error: BaseException | None = None
        try:
            result = await self._aggregate(window)
            return result
        except (RequestError, ApiError, ParseError) as e:
            error = e
            raise FatalAggregationError(f"Report for {window.to_query()} aborted: {e}") from e
        finally:
            try:
                await cache.flush()
            except OSError:
                logger.warning("Could not flush response cache %s", cache.path, exc_info=True)
            finally:
                await cache.delete()
            if self._run_logger:
                self._run_logger.finish_run(result, error)

    async def _aggregate(self, window: TimeWindow) -> ReportResult:
        started = time.monotonic()

        # Step 1: Fetch pages and versions in parallel
        t0 = time.monotonic()
        page_records, version_records = await self._fetch_both(window)
        pages = _parse_records(PAGES_PATH, page_records, Page.from_api)
        versions = _parse_records(VERSIONS_PATH, version_records, Version.from_api)
        self._log_stage(
            "fetch",
            {"pages": len(pages), "versions": len(versions)},
            time.monotonic() - t0,
        )

        # Step 2: Join and bucket
        t0 = time.monotonic()
        classification = classify(pages, versions, self._group_prefixes)
        self._log_stage(
            "classify",
            {
                "page_count": classification.page_count,
                "group_count": classification.group_count,
            },
            time.monotonic() - t0,
        )

        # Step 3: Merge each page and order the rows of every group
        t0 = time.monotonic()
        groups: dict[str, list[ReportRow]] = {}
        for key, bucket in classification.buckets.items():
            groups[key] = sort_rows(build_row(page) for page in bucket)
        self._log_stage(
            "merge_and_sort",
            {"rows": sum(len(rows) for rows in groups.values())},
            time.monotonic() - t0,
        )

        duration = time.monotonic() - started
        logger.info(
            "Built report for %d pages in %d groups in %.1fs",
            classification.page_count,
            classification.group_count,
            duration,
        )
        return ReportResult(
            groups=groups,
            page_count=classification.page_count,
            group_count=classification.group_count,
            duration_seconds=duration,
        )

    async def _fetch_both(self, window: TimeWindow) -> tuple[list[Any], list[Any]]:
        tasks = [
            asyncio.create_task(
                fetch_all(
                    self._client,
                    PAGES_PATH,
                    self.pages_query(window),
                    page_delay=self._page_delay,
                )
            ),
            asyncio.create_task(
                fetch_all(
                    self._client,
                    VERSIONS_PATH,
                    self.versions_query(window),
                    page_delay=self._page_delay,
                )
            ),
        ]
        try:
            page_records, version_records = await asyncio.gather(*tasks)
        except BaseException:
            # Stop the other query before the cache is torn down
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return page_records, version_records

    def _log_stage(self, stage: str, details: dict[str, Any], duration: float) -> None:
        if self._run_logger:
            self._run_logger.log_stage(stage, details, duration)
