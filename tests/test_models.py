"""Tests for data models."""

import hashlib
from datetime import UTC, datetime

import pytest

from webmon_report.data import (
    EMPTY_DIFF_HASHES,
    GroupBuckets,
    Page,
    TimeWindow,
    Version,
    is_meaningful_hash,
    parse_timestamp,
)


def _version_data(**overrides) -> dict:
    data = {
        "uuid": "v-1",
        "page_uuid": "p-1",
        "capture_time": "2026-10-12T08:30:00Z",
        "source_metadata": {"diff_length": 12, "diff_hash": "abc"},
    }
    data.update(overrides)
    return data


def test_version_from_api() -> None:
    version = Version.from_api(
        _version_data(
            change_from_previous={"uuid_from": "v-0", "current_annotation": {"priority": 0.7}}
        )
    )
    assert version.uuid == "v-1"
    assert version.page_uuid == "p-1"
    assert version.capture_time == datetime(2026, 10, 12, 8, 30, tzinfo=UTC)
    assert version.source_metadata["diff_length"] == 12
    assert version.change_from_previous is not None
    assert version.change_from_previous.uuid_from == "v-0"
    assert version.change_from_previous.priority == 0.7


def test_version_without_change_or_annotation() -> None:
    version = Version.from_api(_version_data(change_from_previous={"uuid_from": "v-0"}))
    assert version.change_from_previous is not None
    assert version.change_from_previous.priority is None

    bare = Version.from_api(_version_data())
    assert bare.change_from_previous is None


def test_status_code_defaults_to_200() -> None:
    version = Version.from_api(_version_data())
    assert version.status_code == 200
    assert version.is_error is False


def test_status_code_prefers_top_level_status() -> None:
    version = Version.from_api(
        _version_data(status=404, source_metadata={"status_code": 200})
    )
    assert version.status_code == 404
    assert version.is_error is True


def test_status_code_from_metadata() -> None:
    version = Version.from_api(_version_data(source_metadata={"status_code": 302}))
    assert version.status_code == 302
    assert version.is_error is True


@pytest.mark.parametrize("field", ["error_code", "errorCode"])
def test_error_code_field_variants(field: str) -> None:
    version = Version.from_api(_version_data(source_metadata={field: "ERR_TIMEOUT"}))
    assert version.error_code == "ERR_TIMEOUT"
    assert version.is_erroring is True


def test_falsy_error_code_is_not_erroring() -> None:
    version = Version.from_api(_version_data(source_metadata={"error_code": ""}))
    assert version.is_erroring is False


def test_blank_version_sentinel() -> None:
    blank = Version.blank("p-9")
    assert blank.uuid == ""
    assert blank.page_uuid == "p-9"
    assert blank.capture_time.tzinfo is not None


def test_page_from_api_reads_tag_and_maintainer_names() -> None:
    page = Page.from_api(
        {
            "uuid": "p-1",
            "url": "https://www.epa.gov/",
            "title": "EPA Home",
            "tags": [{"name": "site:epa"}, {"name": "2l-team"}],
            "maintainers": [{"name": "EPA"}, "Other"],
            "earliest": _version_data(uuid="v-0"),
        }
    )
    assert page.tags == ["site:epa", "2l-team"]
    assert page.maintainers == ["EPA", "Other"]
    assert page.versions == []
    assert page.latest is None
    assert page.earliest is not None
    assert page.earliest.uuid == "v-0"


def test_page_from_api_minimal() -> None:
    page = Page.from_api({"uuid": "p-1", "url": "https://example.gov/", "title": None})
    assert page.title == ""
    assert page.tags == []
    assert page.earliest is None


def test_parse_timestamp_assumes_utc_for_naive_values() -> None:
    assert parse_timestamp("2026-10-12T08:30:00") == datetime(2026, 10, 12, 8, 30, tzinfo=UTC)


def test_time_window_to_query() -> None:
    window = TimeWindow(
        start=datetime(2026, 10, 5, tzinfo=UTC),
        end=datetime(2026, 10, 12, 6, 15, tzinfo=UTC),
    )
    assert window.to_query() == "2026-10-05T00:00:00Z..2026-10-12T06:15:00Z"


def test_time_window_rejects_reversed_range() -> None:
    with pytest.raises(ValueError, match="after its end"):
        TimeWindow(
            start=datetime(2026, 10, 12, tzinfo=UTC),
            end=datetime(2026, 10, 5, tzinfo=UTC),
        )


def test_empty_diff_hashes() -> None:
    assert hashlib.sha256(b"").hexdigest() in EMPTY_DIFF_HASHES
    assert hashlib.sha256(b"[]").hexdigest() in EMPTY_DIFF_HASHES


def test_is_meaningful_hash() -> None:
    assert is_meaningful_hash("abc123") is True
    assert is_meaningful_hash(None) is False
    assert is_meaningful_hash("?") is False
    for empty in EMPTY_DIFF_HASHES:
        assert is_meaningful_hash(empty) is False


def test_group_buckets_get_or_create() -> None:
    buckets = GroupBuckets()
    first = buckets.get_or_create("epa")
    assert buckets.get_or_create("epa") is first
    assert "epa" in buckets
    assert len(buckets) == 1


def test_group_buckets_hold_page_instances() -> None:
    buckets = GroupBuckets()
    page = Page(uuid="p-1", url="https://example.gov/")
    twin = Page(uuid="p-1", url="https://example.gov/")

    buckets.add("epa", page)
    buckets.add("epa", page)
    buckets.add("epa", twin)

    assert len(buckets["epa"]) == 2
    assert dict(buckets.items()).keys() == {"epa"}
