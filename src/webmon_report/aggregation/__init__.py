"""Classification, merging and ordering of report data."""

from webmon_report.aggregation.classifier import GROUP_SEPARATOR, classify, group_key
from webmon_report.aggregation.merger import annotation_for_version, merge, merge_page
from webmon_report.aggregation.sorter import sort_rows

__all__ = [
    "GROUP_SEPARATOR",
    "annotation_for_version",
    "classify",
    "group_key",
    "merge",
    "merge_page",
    "sort_rows",
]
