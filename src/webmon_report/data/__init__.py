"""Data models for webmon-report."""

from webmon_report.data.models import (
    EMPTY_DIFF_HASHES,
    ERRORS_GROUP,
    PLACEHOLDER_HASH,
    Annotation,
    Change,
    Classification,
    GroupBuckets,
    Page,
    ReportResult,
    ReportRow,
    TimeWindow,
    Version,
    format_timestamp,
    is_meaningful_hash,
    parse_timestamp,
)

__all__ = [
    "EMPTY_DIFF_HASHES",
    "ERRORS_GROUP",
    "PLACEHOLDER_HASH",
    "Annotation",
    "Change",
    "Classification",
    "GroupBuckets",
    "Page",
    "ReportResult",
    "ReportRow",
    "TimeWindow",
    "Version",
    "format_timestamp",
    "is_meaningful_hash",
    "parse_timestamp",
]
