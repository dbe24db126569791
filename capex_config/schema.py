"""
CapexConfig schema.

Typed, frozen view of the YAML configuration.  The loader parses YAML into
these types; nothing else in the system reads the YAML directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class BudgetLineYear(str, Enum):
    """Which year is written on each persisted budget line."""

    APPROVAL_YEAR = "approval_year"  # project approval year when present
    LINE_YEAR = "line_year"          # always the year line's own year


@dataclass(frozen=True)
class ListNames:
    """Names of the remote lists (collections)."""

    projects: str = "Projects"
    milestones: str = "milestones"
    activities: str = "activities"
    budget_lines: str = "peps"
    pep_catalog: str = "Peps"


@dataclass(frozen=True)
class CapexConfig:
    """Runtime configuration for the CAPEX forms."""

    site_url: str
    lists: ListNames = field(default_factory=ListNames)
    threshold: Decimal = Decimal("1000000")
    currency: str = "BRL"
    budget_line_year: BudgetLineYear = BudgetLineYear.APPROVAL_YEAR
    request_timeout: float | None = None
    fallback_form_digest: str | None = None
    checksum: str = ""
