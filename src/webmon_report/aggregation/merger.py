"""Collapse a page's chain of versions into one summary annotation.

Versions are merged oldest to newest. Lengths add up, the first meaningful
hash wins and priority takes the maximum.

When both ends of the window are healthy captures, any step into or out of an
error capture is left out, so an outage between two good snapshots does not
count as change. When either end is an error, every step is folded in.
"""

from collections.abc import Sequence

from webmon_report.data import PLACEHOLDER_HASH, Annotation, Page, Version, is_meaningful_hash


def annotation_for_version(version: Version) -> Annotation:
    """Read a version's diff metadata into an Annotation."""
    meta = version.source_metadata
    change = version.change_from_previous
    return Annotation(
        source_diff_length=meta.get("diff_length") or 0,
        source_diff_hash=meta.get("diff_hash") or PLACEHOLDER_HASH,
        text_diff_length=meta.get("diff_text_length") or 0,
        text_diff_hash=meta.get("diff_text_hash") or PLACEHOLDER_HASH,
        priority=change.priority if change else None,
    )


def merge(versions: Sequence[Version], annotations: Sequence[Annotation]) -> Annotation:
    """Merge parallel, newest-first sequences of versions and annotations.

    Args:
        versions: A page's versions, newest first.
        annotations: One annotation per version, in the same order.

    Returns:
        The merged annotation for the whole chain.

    Raises:
        ValueError: If the sequences are empty or differ in length.
    """
    if not versions:
        raise ValueError("Cannot merge an empty version chain")
    if len(versions) != len(annotations):
        raise ValueError(
            f"Got {len(versions)} versions but {len(annotations)} annotations to merge"
        )

    skip_errors = not versions[0].is_error and not versions[-1].is_error

    chronological = list(zip(reversed(versions), reversed(annotations), strict=True))
    first_version, first = chronological[0]

    source_diff_hash = first.source_diff_hash
    text_diff_hash = first.text_diff_hash
    source_diff_length = first.source_diff_length
    text_diff_length = first.text_diff_length
    priority = first.priority

    previous_error = first_version.is_error
    for version, annotation in chronological[1:]:
        current_error = version.is_error
        touches_error = current_error or previous_error
        previous_error = current_error
        if skip_errors and touches_error:
            continue

        if not is_meaningful_hash(source_diff_hash):
            source_diff_hash = annotation.source_diff_hash
        if not is_meaningful_hash(text_diff_hash):
            text_diff_hash = annotation.text_diff_hash

        source_diff_length += annotation.source_diff_length
        text_diff_length += annotation.text_diff_length

        if annotation.priority is not None:
            priority = max(priority or 0, annotation.priority)

    return Annotation(
        source_diff_length=source_diff_length,
        source_diff_hash=source_diff_hash,
        text_diff_length=text_diff_length,
        text_diff_hash=text_diff_hash,
        priority=priority,
    )


def merge_page(page: Page) -> Annotation:
    """Merge all of a page's versions into one annotation."""
    return merge(page.versions, [annotation_for_version(v) for v in page.versions])
