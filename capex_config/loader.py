"""
Configuration Loader (``capex_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``capex_config.schema.CapexConfig``.  Runtime callers go through
``capex_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``site_url`` or invalid values  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from capex_config.schema import BudgetLineYear, CapexConfig, ListNames
from capex_kernel.exceptions import ConfigError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed configuration."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_lists(data: dict[str, Any] | None) -> ListNames:
    """Parse list names; unspecified names keep the store defaults."""
    if not data:
        return ListNames()
    known = set(ListNames.__dataclass_fields__)
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown list keys: {sorted(unknown)}", key="lists")
    return ListNames(**{k: str(v) for k, v in data.items()})


def parse_threshold(value: Any) -> Decimal:
    try:
        threshold = Decimal(str(value))
    except InvalidOperation:
        raise ConfigError(f"Invalid threshold {value!r}", key="threshold") from None
    if not threshold.is_finite() or threshold <= 0:
        raise ConfigError(f"Threshold must be positive, got {value!r}", key="threshold")
    return threshold


def parse_config(data: dict[str, Any]) -> CapexConfig:
    """
    Parse a ``CapexConfig`` from a dict.

    Raises:
        ConfigError: if ``site_url`` is missing or a value is invalid.
    """
    site_url = data.get("site_url")
    if not site_url:
        raise ConfigError("site_url is required", key="site_url")

    try:
        line_year = BudgetLineYear(data.get("budget_line_year", BudgetLineYear.APPROVAL_YEAR.value))
    except ValueError:
        raise ConfigError(
            f"budget_line_year must be one of {[m.value for m in BudgetLineYear]}",
            key="budget_line_year",
        ) from None

    timeout = data.get("request_timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid request_timeout {timeout!r}", key="request_timeout") from None

    return CapexConfig(
        site_url=str(site_url),
        lists=parse_lists(data.get("lists")),
        threshold=parse_threshold(data.get("threshold", "1000000")),
        currency=str(data.get("currency", "BRL")),
        budget_line_year=line_year,
        request_timeout=timeout,
        fallback_form_digest=data.get("fallback_form_digest"),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> CapexConfig:
    return parse_config(load_yaml_file(path))
