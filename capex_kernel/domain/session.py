"""
Form Session -- explicit state of one project being edited.

Responsibility:
    Replaces free-floating form globals with one object that is created at
    session start, reset on "new project" and discarded at the end: the
    project record, its structure, the PEP catalog snapshot and whether the
    project may still be edited.

Architecture position:
    Kernel > Domain -- zero I/O.  ``ProjectService`` fills it on open and
    reads it on save/submit.

Invariants enforced:
    - Switching the budget tier clears the section that becomes hidden:
      the structure when milestones hide, the project PEP when the
      selector hides.
    - ``gantt_rows()`` always reflects the current structure revision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any
from uuid import uuid4

from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.derivation import (
    DEFAULT_THRESHOLD,
    SectionVisibility,
    budget_flag,
    section_visibility,
)
from capex_kernel.domain.gantt import GanttRow, project_gantt
from capex_kernel.domain.pep import PepCatalog
from capex_kernel.domain.project import Project, project_from_form
from capex_kernel.domain.structure import Milestone, ProjectStructure
from capex_kernel.domain.validation import ValidationReport, validate
from capex_kernel.domain.values import parse_brl


@dataclass
class FormSession:
    """State of the form for a single project."""

    project: Project = field(default_factory=Project)
    structure: ProjectStructure = field(default_factory=ProjectStructure)
    catalog: PepCatalog = field(default_factory=PepCatalog)
    threshold: Decimal = DEFAULT_THRESHOLD
    clock: Clock = field(default_factory=SystemClock)
    session_id: str = field(default_factory=lambda: uuid4().hex)
    visibility: SectionVisibility = field(
        default_factory=lambda: SectionVisibility(milestones=False, pep_selector=False)
    )
    _gantt_key: tuple[int, int] | None = field(default=None, init=False, repr=False)
    _gantt_rows: tuple[GanttRow, ...] = field(default=(), init=False, repr=False)

    def __post_init__(self) -> None:
        self.visibility = section_visibility(self.project.budget_amount, self.threshold)

    @property
    def project_id(self) -> int | None:
        return self.project.id

    @property
    def editable(self) -> bool:
        return self.project.is_editable

    @property
    def budget_flag(self) -> str:
        return budget_flag(self.project.budget_amount, self.threshold)

    # -- project fields ------------------------------------------------------

    def fill_project(self, values: dict[str, Any]) -> None:
        """Replace the project scalars from form values, keeping id and status."""
        project = project_from_form(values, project_id=self.project.id)
        self.project = project.replace(status=self.project.status)
        self.apply_budget(self.project.budget)

    def apply_budget(self, amount: Any) -> SectionVisibility:
        """Record a budget change and clear the section that is no longer shown."""
        value = None if amount is None or amount == "" else parse_brl(amount)
        visibility = section_visibility(value or 0, self.threshold)
        updates: dict[str, Any] = {"budget": value}
        if not visibility.pep_selector:
            updates["pep_code"] = None
        self.project = self.project.replace(**updates)
        if not visibility.milestones and not self.structure.is_empty():
            self.structure.clear()
        self.visibility = visibility
        return visibility

    def select_project_pep(self, code: str | None) -> None:
        if not self.visibility.pep_selector:
            return
        self.project = self.project.replace(pep_code=code or None)

    def bind_project_id(self, project_id: int) -> None:
        self.project = self.project.replace(id=project_id)

    # -- structure -----------------------------------------------------------

    def add_milestone(self, name: str | None = None) -> Milestone:
        """Add a milestone seeded with one activity dated today -> tomorrow."""
        milestone = self.structure.add_milestone(name)
        today = self.clock.today()
        self.structure.add_activity(milestone.id, start=today, end=today + timedelta(days=1))
        return milestone

    def gantt_rows(self) -> tuple[GanttRow, ...]:
        key = (id(self.structure), self.structure.revision)
        if self._gantt_key != key:
            self._gantt_rows = project_gantt(self.structure, clock=self.clock)
            self._gantt_key = key
        return self._gantt_rows

    # -- lifecycle -----------------------------------------------------------

    def validate(self) -> ValidationReport:
        return validate(
            self.project,
            self.structure,
            self.visibility,
            clock=self.clock,
            threshold=self.threshold,
            catalog=self.catalog if len(self.catalog) else None,
        )

    def reset(self) -> None:
        """Start a new, empty project (catalog snapshot is kept)."""
        self.project = Project()
        self.structure = ProjectStructure()
        self.visibility = section_visibility(0, self.threshold)
        self.session_id = uuid4().hex
        self._gantt_key = None
        self._gantt_rows = ()
