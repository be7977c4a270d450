"""webmon-report: weekly change reports for monitored web pages."""

from webmon_report.aggregation import (
    annotation_for_version,
    classify,
    group_key,
    merge,
    merge_page,
    sort_rows,
)
from webmon_report.client import ApiClient, ResponseCache, fetch_all, iter_pages
from webmon_report.config import WebmonReportConfig, create_from_config, load_config
from webmon_report.data import (
    Annotation,
    Change,
    Classification,
    GroupBuckets,
    Page,
    ReportResult,
    ReportRow,
    TimeWindow,
    Version,
)
from webmon_report.errors import (
    ApiError,
    DataIntegrityWarning,
    FatalAggregationError,
    ParseError,
    RequestError,
    WebmonReportError,
)
from webmon_report.pipeline import ReportPipeline, build_row
from webmon_report.run_logger import RunLogger

__all__ = [
    # Models
    "Annotation",
    "Change",
    "Classification",
    "GroupBuckets",
    "Page",
    "ReportResult",
    "ReportRow",
    "TimeWindow",
    "Version",
    # Client
    "ApiClient",
    "ResponseCache",
    "fetch_all",
    "iter_pages",
    # Aggregation
    "annotation_for_version",
    "build_row",
    "classify",
    "group_key",
    "merge",
    "merge_page",
    "sort_rows",
    # Errors
    "ApiError",
    "DataIntegrityWarning",
    "FatalAggregationError",
    "ParseError",
    "RequestError",
    "WebmonReportError",
    # Pipeline
    "ReportPipeline",
    # Logging
    "RunLogger",
    # Config
    "WebmonReportConfig",
    "create_from_config",
    "load_config",
]
