"""
Derivation Engine -- Pure functions that keep the form consistent.

Responsibility:
    Derives (i) which form sections are visible/mandatory from the project
    budget and (ii) the per-fiscal-year budget lines of an activity from its
    date range.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O, no clock access.
    Consumed by the structure model, the validation engine and the form
    session.

Invariants enforced:
    - ``budget_tier(a) is AT_OR_ABOVE_THRESHOLD`` iff ``a >= threshold``.
    - ``years_in_range`` is ascending and covers ``start.year..end.year``.
    - ``reconcile_year_lines`` is idempotent and keeps amounts of years that
      remain in range.

Failure modes:
    - None.  Non-numeric budgets coerce to zero; incomplete or inverted date
      ranges derive no years.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from capex_kernel.domain.values import ZERO, format_brl, parse_brl

DEFAULT_THRESHOLD = Decimal("1000000")


class BudgetTier(str, Enum):
    """Regime selected by the project budget."""

    BELOW_THRESHOLD = "below_threshold"
    AT_OR_ABOVE_THRESHOLD = "at_or_above_threshold"


@dataclass(frozen=True)
class SectionVisibility:
    """Which optional form sections are shown for a given budget."""

    milestones: bool
    pep_selector: bool


@dataclass(frozen=True)
class YearLine:
    """Budget amount of an activity for one fiscal year."""

    year: int
    amount: Decimal = ZERO


@dataclass(frozen=True)
class YearFieldDescriptor:
    """Description of one generated per-year input, for the view layer."""

    field_id: str
    year: int
    label: str


def budget_tier(amount: Any, threshold: Decimal = DEFAULT_THRESHOLD) -> BudgetTier:
    """Classify a budget against the mandatory-milestone threshold."""
    value = parse_brl(amount)
    if value.is_finite() and value >= threshold:
        return BudgetTier.AT_OR_ABOVE_THRESHOLD
    return BudgetTier.BELOW_THRESHOLD


def section_visibility(
    amount: Any, threshold: Decimal = DEFAULT_THRESHOLD
) -> SectionVisibility:
    """
    Visibility of the milestones section and the project PEP selector.

    At or above the threshold the milestones are shown and the PEP selector
    hidden; a positive budget below it shows only the PEP selector; a zero
    budget shows neither.
    """
    if budget_tier(amount, threshold) is BudgetTier.AT_OR_ABOVE_THRESHOLD:
        return SectionVisibility(milestones=True, pep_selector=False)
    value = parse_brl(amount)
    if value.is_finite() and value > 0:
        return SectionVisibility(milestones=False, pep_selector=True)
    return SectionVisibility(milestones=False, pep_selector=False)


def budget_flag(amount: Any, threshold: Decimal = DEFAULT_THRESHOLD) -> str:
    """Hint shown next to the budget input; empty when no budget is typed."""
    value = parse_brl(amount)
    if not value:
        return ""
    if budget_tier(value, threshold) is BudgetTier.AT_OR_ABOVE_THRESHOLD:
        return (
            f"Project budget {format_brl(value)} >= {format_brl(threshold)}"
            " -- milestones required."
        )
    return (
        f"Project budget {format_brl(value)} < {format_brl(threshold)}"
        " -- milestones not required."
    )


def years_in_range(start: date | None, end: date | None) -> tuple[int, ...]:
    """Fiscal years covered by ``[start, end]``; empty if incomplete or inverted."""
    if start is None or end is None or end < start:
        return ()
    return tuple(range(start.year, end.year + 1))


def reconcile_year_lines(
    existing: Iterable[YearLine], required_years: Sequence[int]
) -> tuple[YearLine, ...]:
    """
    Rebuild the year lines of an activity for a new set of years.

    Lines of required years are reused, missing years get a zero line and
    lines outside ``required_years`` are dropped.  Output order follows
    ``required_years``.
    """
    by_year: dict[int, YearLine] = {}
    for line in existing:
        by_year.setdefault(line.year, line)
    return tuple(by_year.get(year, YearLine(year=year)) for year in required_years)


def year_field_id(activity_id: str, year: int) -> str:
    return f"act-capex-{activity_id}-{year}"


def year_field_descriptors(
    activity_id: str, years: Sequence[int]
) -> tuple[YearFieldDescriptor, ...]:
    """Inputs the view layer renders for an activity's year lines."""
    return tuple(
        YearFieldDescriptor(
            field_id=year_field_id(activity_id, year),
            year=year,
            label=f"Activity CAPEX amount (BRL) - {year}",
        )
        for year in years
    )
