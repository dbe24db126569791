"""
Structure Model -- In-memory milestone -> activity -> year-line tree.

Responsibility:
    Holds the project structure edited in a form session and applies every
    edit synchronously.  Year lines are never edited directly: they follow
    the activity's date range through ``reconcile_year_lines``.

Architecture position:
    Kernel > Domain -- zero I/O.  Owned by ``FormSession``; read (never
    mutated) by the persistence orchestrator, the validation engine and the
    Gantt projection.

Invariants enforced:
    - Milestone and activity order is list order, which is also the order
      used when persisting.
    - For an activity with both dates, the set of year-line years equals
      ``years_in_range(start, end)``.
    - Default names ("Milestone N") are renumbered after every add/remove;
      custom names are never overwritten.
    - ``revision`` increases on every mutation.

Failure modes:
    - None.  Operations are total: unknown ids are ignored and bad amounts
      are stored as given, to be reported by the validation engine.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from capex_kernel.domain.derivation import (
    YearLine,
    reconcile_year_lines,
    years_in_range,
)
from capex_kernel.domain.values import parse_brl

_DEFAULT_NAME = re.compile(r"^Milestone\s+\d+$", re.IGNORECASE)


def _new_id() -> str:
    return uuid4().hex


def node_field_id(kind: str, node_id: str) -> str:
    """Form field id of a milestone/activity input, e.g. ``act-title-<id>``."""
    return f"{kind}-{node_id}"


def is_default_milestone_name(name: str | None) -> bool:
    """True for blank names and names still following ``Milestone N``."""
    if not name or not name.strip():
        return True
    return bool(_DEFAULT_NAME.match(name.strip()))


@dataclass
class Activity:
    """A dated piece of work inside a milestone."""

    id: str = field(default_factory=_new_id)
    title: str = ""
    start: date | None = None
    end: date | None = None
    description: str = ""
    supplier: str = ""
    pep_code: str | None = None
    year_lines: tuple[YearLine, ...] = ()

    @property
    def total_amount(self) -> Decimal:
        return sum((line.amount for line in self.year_lines), Decimal("0"))

    def year_line(self, year: int) -> YearLine | None:
        for line in self.year_lines:
            if line.year == year:
                return line
        return None


@dataclass
class Milestone:
    """A named group of activities."""

    id: str = field(default_factory=_new_id)
    name: str = ""
    activities: list[Activity] = field(default_factory=list)


class ProjectStructure:
    """Ordered milestones of one project, with the edit operations of the form."""

    def __init__(self, milestones: list[Milestone] | None = None):
        self.milestones: list[Milestone] = list(milestones or [])
        self.revision = 0

    def __repr__(self) -> str:
        return (
            f"ProjectStructure(milestones={len(self.milestones)}, "
            f"activities={sum(1 for _ in self.iter_activities())}, "
            f"revision={self.revision})"
        )

    def __len__(self) -> int:
        return len(self.milestones)

    # -- lookups -------------------------------------------------------------

    def milestone(self, milestone_id: str) -> Milestone | None:
        for milestone in self.milestones:
            if milestone.id == milestone_id:
                return milestone
        return None

    def activity(self, activity_id: str) -> Activity | None:
        for _, activity in self.iter_activities():
            if activity.id == activity_id:
                return activity
        return None

    def iter_activities(self) -> Iterator[tuple[Milestone, Activity]]:
        for milestone in self.milestones:
            for activity in milestone.activities:
                yield milestone, activity

    def is_empty(self) -> bool:
        return not self.milestones

    # -- milestones ----------------------------------------------------------

    def add_milestone(self, name: str | None = None) -> Milestone:
        milestone = Milestone(name=(name or "").strip())
        self.milestones.append(milestone)
        self._renumber()
        self._touch()
        return milestone

    def remove_milestone(self, milestone_id: str) -> None:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return
        self.milestones.remove(milestone)
        self._renumber()
        self._touch()

    def rename_milestone(self, milestone_id: str, name: str) -> None:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return
        milestone.name = name
        self._touch()

    # -- activities ----------------------------------------------------------

    def add_activity(
        self,
        milestone_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> Activity | None:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return None
        activity = Activity(start=start, end=end)
        activity.year_lines = reconcile_year_lines((), years_in_range(start, end))
        milestone.activities.append(activity)
        self._touch()
        return activity

    def remove_activity(self, milestone_id: str, activity_id: str) -> None:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return
        for activity in milestone.activities:
            if activity.id == activity_id:
                milestone.activities.remove(activity)
                self._touch()
                return

    def set_activity_dates(
        self, activity_id: str, start: date | None, end: date | None
    ) -> None:
        """
        Change an activity's date range and re-derive its year lines.

        Year lines are left untouched while either date is missing, which is
        the state of a half-filled form; an inverted range derives no years.
        """
        activity = self.activity(activity_id)
        if activity is None:
            return
        activity.start = start
        activity.end = end
        if start is not None and end is not None:
            activity.year_lines = reconcile_year_lines(
                activity.year_lines, years_in_range(start, end)
            )
        self._touch()

    def set_activity_details(
        self,
        activity_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        supplier: str | None = None,
    ) -> None:
        activity = self.activity(activity_id)
        if activity is None:
            return
        if title is not None:
            activity.title = title
        if description is not None:
            activity.description = description
        if supplier is not None:
            activity.supplier = supplier
        self._touch()

    def set_activity_pep(self, activity_id: str, code: str | None) -> None:
        activity = self.activity(activity_id)
        if activity is None:
            return
        activity.pep_code = code or None
        self._touch()

    def set_year_amount(self, activity_id: str, year: int, amount: Any) -> None:
        """Set the amount of an existing year line; years out of range are ignored."""
        activity = self.activity(activity_id)
        if activity is None or activity.year_line(year) is None:
            return
        value = parse_brl(amount)
        activity.year_lines = tuple(
            YearLine(year=line.year, amount=value) if line.year == year else line
            for line in activity.year_lines
        )
        self._touch()

    def clear(self) -> None:
        if self.milestones:
            self.milestones.clear()
        self._touch()

    # -- internals -----------------------------------------------------------

    def _renumber(self) -> None:
        for idx, milestone in enumerate(self.milestones, start=1):
            if is_default_milestone_name(milestone.name):
                milestone.name = f"Milestone {idx}"

    def _touch(self) -> None:
        self.revision += 1
