"""Join versions to their pages and bucket pages by tag group."""

import dataclasses
import logging
from collections.abc import Iterable, Sequence

from webmon_report.data import ERRORS_GROUP, Classification, GroupBuckets, Page, Version
from webmon_report.errors import DataIntegrityWarning

logger = logging.getLogger(__name__)

GROUP_SEPARATOR = "--"


def _integrity_warning(message: str, *args: object) -> None:
    logger.warning(message, *args, extra={"category": DataIntegrityWarning.__name__})


def group_key(tags: Sequence[str], prefixes: Sequence[str]) -> str:
    """Build a page's group key from its tags.

    Each prefix contributes the remainder of the first tag that starts with it
    (the whole tag when it equals the prefix), or ``""`` when no tag matches.

    Example:
        ``group_key(["site:epa"], ["site:"])`` is ``"epa"``.
    """
    segments: list[str] = []
    for prefix in prefixes:
        segment = ""
        for tag in tags:
            if tag.startswith(prefix):
                segment = tag if tag == prefix else tag[len(prefix) :]
                break
        segments.append(segment)
    return GROUP_SEPARATOR.join(segments)


def _first_healthy(versions: Sequence[Version]) -> int | None:
    for index, version in enumerate(versions):
        if not version.is_erroring:
            return index
    return None


def classify(
    pages: Iterable[Page],
    versions: Iterable[Version],
    group_prefixes: Sequence[str],
) -> Classification:
    """Attach versions to pages and sort the pages into group buckets.

    ``versions`` must arrive newest first; each page keeps that order. A page
    whose newest version is erroring lands in the ``"errors"`` bucket, and if
    an older version is healthy, a shallow copy of the page with that version
    as ``latest`` is also placed in its regular group. The copy keeps the full
    version chain.

    Args:
        pages: Pages of the report window.
        versions: Versions of the window, newest first.
        group_prefixes: Ordered tag prefixes that make up the group key.

    Returns:
        Classification with the buckets and page/group counts.
    """
    pages_by_id: dict[str, Page] = {}
    for page in pages:
        page.versions = []
        pages_by_id[page.uuid] = page

    for version in versions:
        owner = pages_by_id.get(version.page_uuid)
        if owner is None:
            _integrity_warning(
                "Version %s references unknown page %s; skipping it",
                version.uuid,
                version.page_uuid,
            )
            continue
        owner.versions.append(version)

    buckets = GroupBuckets()
    for page in pages_by_id.values():
        page.group = group_key(page.tags, group_prefixes)
        if page.earliest is None:
            page.earliest = page.versions[-1] if page.versions else Version.blank(page.uuid)

        if not page.versions:
            _integrity_warning("Page %s (%s) has no versions; skipping it", page.uuid, page.url)
            continue

        page.latest = page.versions[0]

        if not page.latest.is_erroring:
            buckets.add(page.group, page)
            continue

        buckets.add(ERRORS_GROUP, page)
        healthy = _first_healthy(page.versions[1:])
        if healthy is not None:
            buckets.add(
                page.group,
                dataclasses.replace(page, latest=page.versions[healthy + 1]),
            )

    logger.info("Classified %d pages into %d groups", len(pages_by_id), len(buckets))
    return Classification(
        buckets=buckets,
        page_count=len(pages_by_id),
        group_count=len(buckets),
    )
