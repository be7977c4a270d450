"""Read report settings from a YAML file."""

import logging
import os
from pathlib import Path

import yaml

from webmon_report.config.models import WebmonReportConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "WEBMON_REPORT_CONFIG"

_BUNDLED_CONFIG = Path(__file__).parents[3] / "configs" / "default.yaml"


def load_config(path: Path | str) -> WebmonReportConfig:
    """Parse ``path`` and validate it as a WebmonReportConfig.

    An empty file gives the defaults of every section.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If the file is not YAML or its top level is not a mapping.
        pydantic.ValidationError: If a setting has the wrong type or range.
    """
    path = Path(path)
    with path.open() as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Config file {path} is not valid YAML: {e}") from e

    if raw is None:
        raw = {}
    elif not isinstance(raw, dict):
        raise ValueError(
            f"Config file {path} must hold a mapping of sections, got {type(raw).__name__}"
        )

    logger.debug("Loaded config sections %s from %s", sorted(raw), path)
    return WebmonReportConfig.model_validate(raw)


def get_default_config_path() -> Path:
    """Config named by ``$WEBMON_REPORT_CONFIG``, else the bundled default."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override)
    return _BUNDLED_CONFIG
