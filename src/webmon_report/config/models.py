"""Pydantic configuration models for webmon-report."""

from pydantic import BaseModel, Field

# ============================================================
# API Config
# ============================================================


class ApiConfig(BaseModel):
    """Connection and retry settings for the web-monitoring API."""

    base_url: str = "https://api.monitoring.envirodatagov.org"
    user: str | None = None
    password: str | None = None
    timeout: float = 30.0
    max_retries: int = Field(default=3, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0)
    page_delay: float = Field(default=0.0, ge=0)
    chunk_size: int = Field(default=1000, gt=0)

    model_config = {"frozen": True}


# ============================================================
# Cache Config
# ============================================================


class CacheConfig(BaseModel):
    """Settings for the run-scoped response cache."""

    path: str = ".webmon-cache.json"
    flush_delay: float = Field(default=5.0, ge=0)

    model_config = {"frozen": True}


# ============================================================
# Report Config
# ============================================================


class ReportConfig(BaseModel):
    """What goes into the report and how pages are grouped."""

    group_prefixes: list[str] = Field(default_factory=list)
    source_type: str | None = None

    model_config = {"frozen": True}


# ============================================================
# Logging Config
# ============================================================


class LoggingConfig(BaseModel):
    """Configuration for per-run JSON logging."""

    enabled: bool = False
    log_dir: str = "logs"

    model_config = {"frozen": True}


# ============================================================
# Root Config
# ============================================================


class WebmonReportConfig(BaseModel):
    """Root configuration for webmon-report."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}
