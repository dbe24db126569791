"""
capex_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  YAML loading is internal tooling.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ConfigError`` -- required keys missing or values invalid.

Every successful call emits a ``CAPEX_CONFIG_TRACE`` log entry carrying the
site, list names and checksum of the loaded file.
"""

from __future__ import annotations

from pathlib import Path

from capex_config.loader import load_config
from capex_config.schema import BudgetLineYear, CapexConfig, ListNames
from capex_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "BudgetLineYear",
    "CapexConfig",
    "ListNames",
    "get_active_config",
]


def get_active_config(config_path: Path | None = None) -> CapexConfig:
    """
    Load and return the active configuration.

    Args:
        config_path: Override path to a YAML file.  Defaults to
            ``capex_config/sets/default.yaml``.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    config = load_config(path)
    _logger.info(
        "CAPEX_CONFIG_TRACE",
        extra={
            "trace_type": "CAPEX_CONFIG_TRACE",
            "config_path": str(path),
            "site_url": config.site_url,
            "projects_list": config.lists.projects,
            "threshold": str(config.threshold),
            "budget_line_year": config.budget_line_year.value,
            "checksum": config.checksum,
        },
    )
    return config
