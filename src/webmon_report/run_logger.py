"""Run logger for recording report pipeline stages to JSON files."""

import dataclasses
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from webmon_report.data import ReportResult, TimeWindow


class StageRecord(BaseModel):
    """Record of a single pipeline stage execution."""

    stage: str
    details: dict[str, Any] = {}
    timestamp: str = ""
    duration_seconds: float = 0.0


class RunRecord(BaseModel):
    """Record of a complete report run."""

    run_id: str
    window: dict[str, Any]
    started_at: str
    completed_at: str | None = None
    stages: list[StageRecord] = []
    page_count: int = 0
    group_count: int = 0
    row_counts: dict[str, int] = {}
    error: str | None = None


def _serialize(obj: Any) -> Any:
    """Serialize an object to JSON-compatible format.

    Handles time windows, datetimes, dataclasses, Pydantic models, lists,
    dicts, and primitives.
    """
    if obj is None:
        return None
    if isinstance(obj, TimeWindow):
        return {"start": obj.start.isoformat(), "end": obj.end.isoformat(), "query": obj.to_query()}
    if isinstance(obj, datetime):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _serialize(dataclasses.asdict(obj))
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if isinstance(obj, (list, tuple, set)):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, Path):
        return str(obj)
    return obj


class RunLogger:
    """Accumulates pipeline stage records and writes a JSON log file per run.

    When ``enabled=False``, all methods are no-ops.

    Args:
        log_dir: Directory to write JSON log files.
        enabled: If False, all methods become no-ops.
    """

    def __init__(self, log_dir: Path, *, enabled: bool = True) -> None:
        self._log_dir = log_dir
        self._enabled = enabled
        self._record: RunRecord | None = None
        self._last_log_path: Path | None = None

    @property
    def enabled(self) -> bool:
        """Whether logging is active."""
        return self._enabled

    @property
    def last_log_path(self) -> Path | None:
        """Path to the last written log file, or None."""
        return self._last_log_path

    def start_run(self, window: TimeWindow) -> None:
        """Initialize a new run record for the given report window."""
        if not self._enabled:
            return

        self._record = RunRecord(
            run_id=str(uuid.uuid4()),
            window=_serialize(window),
            started_at=datetime.now(tz=UTC).isoformat(),
        )

    def log_stage(self, stage: str, details: dict[str, Any], duration_seconds: float) -> None:
        """Append a stage record to the current run.

        Args:
            stage: Stage name (e.g. "fetch_pages", "classify").
            details: Counts or other small facts about the stage (serialized).
            duration_seconds: Wall-clock time for this stage.
        """
        if not self._enabled or self._record is None:
            return

        self._record.stages.append(
            StageRecord(
                stage=stage,
                details=_serialize(details),
                timestamp=datetime.now(tz=UTC).isoformat(),
                duration_seconds=round(duration_seconds, 4),
            )
        )

    def finish_run(
        self,
        result: ReportResult | None,
        error: BaseException | None = None,
    ) -> Path | None:
        """Write the run record to a JSON file.

        Args:
            result: Report produced by the run, or None if it failed.
            error: The exception that aborted the run, if any.

        Returns:
            Path to the written JSON file, or None if logging is disabled.
        """
        if not self._enabled or self._record is None:
            return None

        self._record.completed_at = datetime.now(tz=UTC).isoformat()
        if result is not None:
            self._record.page_count = result.page_count
            self._record.group_count = result.group_count
            self._record.row_counts = {key: len(rows) for key, rows in result.groups.items()}
        if error is not None:
            self._record.error = str(error)

        self._log_dir.mkdir(parents=True, exist_ok=True)

        # run_2026-02-12T14-30-00.json
        ts = self._record.started_at.replace(":", "-")
        ts = ts.split(".")[0].split("+")[0]
        filepath = self._log_dir / f"run_{ts}.json"

        filepath.write_text(self._record.model_dump_json(indent=2))
        self._last_log_path = filepath
        self._record = None
        return filepath
