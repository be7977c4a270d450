"""Deterministic ordering of report rows."""

from collections import defaultdict
from collections.abc import Iterable

from webmon_report.data import ReportRow


def _hash_key(value: str | None) -> str:
    return value or ""


def _priority(row: ReportRow) -> float:
    return row.annotation.priority or 0


def _row_key(row: ReportRow) -> tuple:
    return (
        _hash_key(row.annotation.source_diff_hash),
        -_priority(row),
        row.version.capture_time,
        row.page.url,
        row.page.uuid,
    )


def sort_rows(rows: Iterable[ReportRow]) -> list[ReportRow]:
    """Order rows so the same input always yields the same output.

    Rows sharing a text diff hash form a cluster (the same textual change
    found on several pages). Clusters are ordered by their highest priority,
    descending; rows within a cluster by source diff hash, then priority
    descending, then capture time of the representative version.

    Args:
        rows: Rows of one report group, in any order.

    Returns:
        The rows in report order.
    """
    clusters: dict[str, list[ReportRow]] = defaultdict(list)
    for row in rows:
        clusters[_hash_key(row.annotation.text_diff_hash)].append(row)

    ranked = sorted(
        clusters.items(),
        key=lambda item: (-max(_priority(row) for row in item[1]), item[0]),
    )

    ordered: list[ReportRow] = []
    for _, members in ranked:
        ordered.extend(sorted(members, key=_row_key))
    return ordered
