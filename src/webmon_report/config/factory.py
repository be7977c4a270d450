"""Factory functions to create components from configuration."""

from pathlib import Path

from webmon_report.client import ApiClient, ResponseCache
from webmon_report.config.models import ApiConfig, CacheConfig, WebmonReportConfig
from webmon_report.pipeline import ReportPipeline
from webmon_report.run_logger import RunLogger


def create_cache(config: CacheConfig) -> ResponseCache:
    """Create the run's response cache from config."""
    return ResponseCache(Path(config.path), flush_delay=config.flush_delay)


def create_client(config: ApiConfig, cache: ResponseCache) -> ApiClient:
    """Create an API client from config."""
    return ApiClient(
        cache,
        base_url=config.base_url,
        user=config.user,
        password=config.password,
        timeout=config.timeout,
        max_retries=config.max_retries,
        retry_base_delay=config.retry_base_delay,
    )


def create_from_config(
    config: WebmonReportConfig,
    *,
    log_override: bool | None = None,
    log_dir_override: str | None = None,
) -> tuple[ReportPipeline, RunLogger | None]:
    """Create a complete pipeline from root config.

    Args:
        config: Root configuration.
        log_override: Override the config's logging.enabled setting.
        log_dir_override: Override the config's logging.log_dir setting.

    Returns:
        Tuple of (pipeline, run_logger).
        run_logger is None if logging is disabled.
    """
    log_enabled = log_override if log_override is not None else config.logging.enabled
    log_dir = Path(log_dir_override if log_dir_override is not None else config.logging.log_dir)

    run_logger: RunLogger | None = None
    if log_enabled:
        run_logger = RunLogger(log_dir=log_dir, enabled=True)

    client = create_client(config.api, create_cache(config.cache))
    pipeline = ReportPipeline(
        client,
        group_prefixes=config.report.group_prefixes,
        source_type=config.report.source_type,
        chunk_size=config.api.chunk_size,
        page_delay=config.api.page_delay,
        run_logger=run_logger,
    )
    return (pipeline, run_logger)
