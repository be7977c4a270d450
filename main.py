#!/usr/bin/env python
"""CLI for building a web-monitoring change report."""

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from webmon_report.config import create_from_config, get_default_config_path, load_config
from webmon_report.data import ReportResult, ReportRow, TimeWindow, parse_timestamp
from webmon_report.errors import FatalAggregationError

logger = logging.getLogger(__name__)


def _parse_moment(value: str, *, relative_to: datetime) -> datetime:
    """Read an ISO timestamp, or a number of hours before ``relative_to``."""
    try:
        hours = float(value)
    except ValueError:
        return parse_timestamp(value)
    return relative_to - timedelta(hours=hours)


class CLIArgs(BaseModel):
    """Validated CLI arguments."""

    after: datetime
    before: datetime
    config: Path
    log: bool = False
    log_dir: str = "logs"
    output: Path | None = None

    @field_validator("config")
    @classmethod
    def config_must_exist(cls, v: Path) -> Path:
        if not v.exists():
            raise ValueError(f"Config file not found: {v}")
        return v

    @model_validator(mode="after")
    def window_must_be_ordered(self) -> "CLIArgs":
        if self.after > self.before:
            raise ValueError(
                f"--after ({self.after}) must not be later than --before ({self.before})"
            )
        return self


def _row_record(row: ReportRow) -> dict[str, Any]:
    earliest = row.page.earliest
    return {
        "page_uuid": row.page.uuid,
        "url": row.page.url,
        "title": row.page.title,
        "maintainers": row.page.maintainers,
        "version_uuid": row.version.uuid,
        "capture_time": row.version.capture_time.isoformat(),
        "earliest_uuid": earliest.uuid if earliest else None,
        "source_diff_length": row.annotation.source_diff_length,
        "source_diff_hash": row.annotation.source_diff_hash,
        "text_diff_length": row.annotation.text_diff_length,
        "text_diff_hash": row.annotation.text_diff_hash,
        "priority": row.annotation.priority,
    }


def _write_output(path: Path, window: TimeWindow, result: ReportResult) -> None:
    payload = {
        "window": window.to_query(),
        "page_count": result.page_count,
        "group_count": result.group_count,
        "duration_seconds": round(result.duration_seconds, 3),
        "groups": {
            key: [_row_record(row) for row in rows] for key, rows in sorted(result.groups.items())
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2))


async def run(args: CLIArgs) -> None:
    """Build the report with the given configuration.

    Args:
        args: Validated CLI arguments.
    """
    config = load_config(args.config)
    pipeline, run_logger = create_from_config(
        config,
        log_override=args.log if args.log else None,
        log_dir_override=args.log_dir if args.log_dir != "logs" else None,
    )
    window = TimeWindow(start=args.after, end=args.before)

    logger.info(f"Building report for: {window.to_query()}")
    logger.info(f"Config: {args.config}")

    try:
        result = await pipeline.run(window)
    finally:
        await pipeline.aclose()

    logger.info("\n--- Report Summary ---")
    logger.info(f"Pages: {result.page_count}")
    logger.info(f"Groups: {result.group_count}")
    for key, rows in sorted(result.groups.items()):
        logger.info(f"  {key or '(ungrouped)'}: {len(rows)} rows")
    logger.info(f"Duration: {result.duration_seconds:.1f}s")

    if args.output:
        _write_output(args.output, window, result)
        logger.info(f"\nReport data written to: {args.output}")

    if run_logger and run_logger.last_log_path:
        logger.info(f"Run log written to: {run_logger.last_log_path}")


def main() -> None:
    """Entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Build a change report for monitored pages.")
    parser.add_argument(
        "--after",
        default="168",
        help="Window start: ISO timestamp or hours before --before (default: 168)",
    )
    parser.add_argument(
        "--before",
        default=None,
        help="Window end: ISO timestamp (default: now)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to YAML config file (default: $WEBMON_REPORT_CONFIG or configs/default.yaml)",
    )
    parser.add_argument(
        "--log",
        action="store_true",
        default=False,
        help="Enable per-run JSON logging",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default="logs",
        help="Directory for log files (default: logs/)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the sorted report rows as JSON to this file",
    )

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    ns = parser.parse_args()
    config_path: Path = ns.config if ns.config else get_default_config_path()

    try:
        before = parse_timestamp(ns.before) if ns.before else datetime.now(tz=UTC)
        args = CLIArgs(
            after=_parse_moment(ns.after, relative_to=before),
            before=before,
            config=config_path,
            log=ns.log,
            log_dir=ns.log_dir,
            output=ns.output,
        )
    except Exception as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        asyncio.run(run(args))
    except FatalAggregationError as e:
        logger.error(f"Report failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
