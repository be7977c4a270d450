"""Core data models for webmon-report."""

import hashlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Placeholder for a diff hash the source never computed.
PLACEHOLDER_HASH = "?"

# Hashes of an empty text diff and an empty change list. A diff carrying one of
# these did not change anything visible.
EMPTY_DIFF_HASHES: frozenset[str] = frozenset(
    {
        hashlib.sha256(b"").hexdigest(),
        hashlib.sha256(b"[]").hexdigest(),
    }
)

ERRORS_GROUP = "errors"


def is_meaningful_hash(value: str | None) -> bool:
    """Whether a diff hash describes a real, visible change."""
    return value is not None and value != PLACEHOLDER_HASH and value not in EMPTY_DIFF_HASHES


def parse_timestamp(value: str) -> datetime:
    """Parse an API timestamp into an aware datetime (naive values are UTC)."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way the API expects it in range queries."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class TimeWindow:
    """The capture-time range a report covers."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after its end {self.end}")

    def to_query(self) -> str:
        """Serialize as ``<start>..<end>`` for the ``capture_time`` parameter."""
        return f"{format_timestamp(self.start)}..{format_timestamp(self.end)}"


@dataclass(frozen=True)
class Change:
    """Link from a version to the previous distinct version of its page."""

    uuid_from: str | None = None
    priority: float | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Change":
        annotation = data.get("current_annotation") or {}
        return cls(uuid_from=data.get("uuid_from"), priority=annotation.get("priority"))


@dataclass(frozen=True)
class Version:
    """One captured snapshot of a page."""

    uuid: str
    page_uuid: str
    capture_time: datetime
    source_metadata: dict[str, Any] = field(default_factory=dict)
    status: int | None = None
    change_from_previous: Change | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Version":
        change = data.get("change_from_previous")
        return cls(
            uuid=data["uuid"],
            page_uuid=data["page_uuid"],
            capture_time=parse_timestamp(data["capture_time"]),
            source_metadata=data.get("source_metadata") or {},
            status=data.get("status"),
            change_from_previous=Change.from_api(change) if change else None,
        )

    @classmethod
    def blank(cls, page_uuid: str = "") -> "Version":
        """Sentinel standing in for a page's missing earliest version."""
        return cls(uuid="", page_uuid=page_uuid, capture_time=datetime.min.replace(tzinfo=UTC))

    @property
    def status_code(self) -> int:
        """HTTP status of the capture; absent means a healthy 200."""
        if self.status is not None:
            return self.status
        return self.source_metadata.get("status_code") or 200

    @property
    def is_error(self) -> bool:
        return self.status_code >= 300

    @property
    def error_code(self) -> Any:
        # Older captures used the camelCase field name.
        return self.source_metadata.get("error_code") or self.source_metadata.get("errorCode")

    @property
    def is_erroring(self) -> bool:
        return bool(self.error_code)


def _names(items: list[Any] | None) -> list[str]:
    """Tags and maintainers come back as ``{"name": ...}`` objects or plain strings."""
    names: list[str] = []
    for item in items or []:
        if isinstance(item, dict):
            names.append(item.get("name", ""))
        else:
            names.append(str(item))
    return names


@dataclass(eq=False)
class Page:
    """A monitored URL.

    ``versions``, ``group``, ``latest`` and ``earliest`` are filled in by the
    classifier. Pages hash by identity so a bucket holds each instance once.
    """

    uuid: str
    url: str
    title: str = ""
    tags: list[str] = field(default_factory=list)
    maintainers: list[str] = field(default_factory=list)
    versions: list[Version] = field(default_factory=list)
    group: str = ""
    latest: Version | None = None
    earliest: Version | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Page":
        earliest = data.get("earliest")
        return cls(
            uuid=data["uuid"],
            url=data.get("url", ""),
            title=data.get("title") or "",
            tags=_names(data.get("tags")),
            maintainers=_names(data.get("maintainers")),
            earliest=Version.from_api(earliest) if earliest else None,
        )


@dataclass(frozen=True)
class Annotation:
    """Summary of a diff: sizes, hashes and analyst priority."""

    source_diff_length: int = 0
    source_diff_hash: str | None = PLACEHOLDER_HASH
    text_diff_length: int = 0
    text_diff_hash: str | None = PLACEHOLDER_HASH
    priority: float | None = None


class GroupBuckets:
    """Group key -> set of pages, creating empty buckets on first access."""

    def __init__(self) -> None:
        self._buckets: dict[str, set[Page]] = {}

    def get_or_create(self, key: str) -> set[Page]:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = set()
        return bucket

    def add(self, key: str, page: Page) -> None:
        self.get_or_create(key).add(page)

    def __getitem__(self, key: str) -> set[Page]:
        return self._buckets[key]

    def __contains__(self, key: object) -> bool:
        return key in self._buckets

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def items(self) -> Iterator[tuple[str, set[Page]]]:
        return iter(self._buckets.items())


@dataclass(frozen=True)
class ReportRow:
    """A page's merged change summary for the window."""

    page: Page
    version: Version
    annotation: Annotation


@dataclass
class Classification:
    """Output of the join and classify step."""

    buckets: GroupBuckets
    page_count: int = 0
    group_count: int = 0


@dataclass
class ReportResult:
    """Sorted rows per group plus run counts, ready for formatting."""

    groups: dict[str, list[ReportRow]] = field(default_factory=dict)
    page_count: int = 0
    group_count: int = 0
    duration_seconds: float = 0.0
