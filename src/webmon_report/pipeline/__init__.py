"""Report pipeline."""

from webmon_report.pipeline.report import PAGES_PATH, VERSIONS_PATH, ReportPipeline, build_row

__all__ = [
    "PAGES_PATH",
    "VERSIONS_PATH",
    "ReportPipeline",
    "build_row",
]
