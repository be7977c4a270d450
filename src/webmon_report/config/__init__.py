"""Configuration module for webmon-report."""

from webmon_report.config.factory import create_cache, create_client, create_from_config
from webmon_report.config.loader import get_default_config_path, load_config
from webmon_report.config.models import (
    ApiConfig,
    CacheConfig,
    LoggingConfig,
    ReportConfig,
    WebmonReportConfig,
)

__all__ = [
    "ApiConfig",
    "CacheConfig",
    "LoggingConfig",
    "ReportConfig",
    "WebmonReportConfig",
    "create_cache",
    "create_client",
    "create_from_config",
    "get_default_config_path",
    "load_config",
]
