"""HTTP access to the web-monitoring API."""

from webmon_report.client.api import ApiClient, retry_delay
from webmon_report.client.cache import ResponseCache
from webmon_report.client.paginator import fetch_all, iter_pages

__all__ = [
    "ApiClient",
    "ResponseCache",
    "fetch_all",
    "iter_pages",
    "retry_delay",
]
