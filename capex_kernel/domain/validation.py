"""
Validation Engine -- full-form and full-tree gate before submission.

Responsibility:
    Checks the project record and its structure and returns every
    violation found, in a fixed order: project fields in declared order,
    then the tier rules, then milestones in tree order, then their
    activities in tree order, then year lines ascending.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Time comes from an injected Clock.
    Called by ``ProjectService.submit``; drafts never pass through here.

Invariants enforced:
    - Rules are never short-circuited; the report lists all violations.
    - The same inputs always produce the same report.

Failure modes:
    - None.  Violations are data (``ValidationReport``), the service layer
      turns a failed report into ``ValidationFailureError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.derivation import (
    DEFAULT_THRESHOLD,
    BudgetTier,
    SectionVisibility,
    budget_tier,
    section_visibility,
    year_field_id,
)
from capex_kernel.domain.pep import PepCatalog
from capex_kernel.domain.project import (
    REQUIRED_FIELDS,
    Project,
    ProjectField,
)
from capex_kernel.domain.structure import Activity, ProjectStructure, node_field_id
from capex_kernel.domain.values import format_brl
from capex_kernel.logging_config import get_logger

logger = get_logger("domain.validation")


@dataclass(frozen=True)
class Violation:
    """
    A single validation failure.

    ``field`` is the form field to focus; ``node`` the milestone or activity
    id the failure belongs to, when there is one.
    """

    code: str
    message: str
    field: str | None = None
    node: str | None = None


@dataclass(frozen=True)
class ValidationReport:
    """Aggregated validation outcome. ``bool(report)`` is ``report.ok``."""

    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def offending_fields(self) -> tuple[str, ...]:
        """Fields to highlight, first one is the one to scroll to."""
        seen: dict[str, None] = {}
        for violation in self.violations:
            if violation.field is not None:
                seen.setdefault(violation.field, None)
        return tuple(seen)

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(v.message for v in self.violations)

    def codes(self) -> tuple[str, ...]:
        return tuple(v.code for v in self.violations)

    def __bool__(self) -> bool:
        return self.ok


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _check_project_fields(project: Project) -> list[Violation]:
    out: list[Violation] = []
    for project_field in REQUIRED_FIELDS:
        value = getattr(project, project_field.attribute)
        if _is_blank(value):
            out.append(_required(project_field))
        elif project_field.is_numeric and (not Decimal(value).is_finite() or value < 0):
            out.append(
                Violation(
                    code="NEGATIVE_VALUE",
                    message=f"The field {project_field.label} must be a number >= 0.",
                    field=project_field.field_id,
                )
            )
    return out


def _required(project_field: ProjectField) -> Violation:
    return Violation(
        code="REQUIRED_FIELD",
        message=f"Fill in the field: {project_field.label}.",
        field=project_field.field_id,
    )


def _check_approval_year(project: Project, current_year: int) -> list[Violation]:
    if project.approval_year is None or project.approval_year > current_year:
        return [
            Violation(
                code="APPROVAL_YEAR_IN_FUTURE",
                message=f"The approval year must be less than or equal to {current_year}.",
                field="approvalYear",
            )
        ]
    return []


def _check_tier(
    project: Project,
    structure: ProjectStructure,
    visibility: SectionVisibility,
    threshold: Decimal,
) -> list[Violation]:
    tier = budget_tier(project.budget_amount, threshold)
    if tier is BudgetTier.AT_OR_ABOVE_THRESHOLD:
        if structure.is_empty():
            return [
                Violation(
                    code="MILESTONE_REQUIRED",
                    message=(
                        f"The project budget is at or above {format_brl(threshold)}"
                        " and requires at least 1 milestone."
                    ),
                    field="milestones",
                )
            ]
        return []
    if project.budget_amount > 0 and visibility.pep_selector and not project.pep_code:
        return [
            Violation(
                code="PEP_REQUIRED",
                message="The project budget is below the milestone threshold: select a PEP element.",
                field="projectPep",
            )
        ]
    return []


def _check_activity(
    activity: Activity,
    idx: int,
    jdx: int,
    catalog: PepCatalog | None,
) -> list[Violation]:
    prefix = f"Activity {jdx} of milestone {idx}"
    node = activity.id
    out: list[Violation] = []

    def add(code: str, message: str, kind: str) -> None:
        out.append(Violation(code=code, message=message, field=node_field_id(kind, node), node=node))

    if not activity.title.strip():
        add("ACTIVITY_TITLE_REQUIRED", f"{prefix}: enter the title.", "act-title")
    if activity.start is None:
        add("ACTIVITY_START_REQUIRED", f"{prefix}: enter the start date.", "act-start")
    if activity.end is None:
        add("ACTIVITY_END_REQUIRED", f"{prefix}: enter the end date.", "act-end")
    if activity.start is not None and activity.end is not None and activity.start > activity.end:
        add(
            "ACTIVITY_DATES_INVERTED",
            f"{prefix}: the start date cannot be after the end date.",
            "act-end",
        )
    if not activity.description.strip():
        add("ACTIVITY_DESCRIPTION_REQUIRED", f"{prefix}: enter the activity description.", "act-overview")
    if not activity.pep_code:
        add("ACTIVITY_PEP_REQUIRED", f"{prefix}: choose the activity PEP element.", "act-pep")
    elif catalog is not None and activity.pep_code not in catalog:
        add("ACTIVITY_PEP_UNKNOWN", f"{prefix}: PEP element {activity.pep_code} is not in the catalog.", "act-pep")
    if not activity.year_lines:
        add(
            "ACTIVITY_YEARS_MISSING",
            f"{prefix}: set valid start and end dates to generate the yearly fields.",
            "act-start",
        )

    for line in sorted(activity.year_lines, key=lambda l: l.year):
        amount = line.amount
        if not isinstance(amount, Decimal) or not amount.is_finite() or amount < 0:
            out.append(
                Violation(
                    code="YEAR_AMOUNT_INVALID",
                    message=f"{prefix}, year {line.year}: enter a valid CAPEX amount (BRL) (>= 0).",
                    field=year_field_id(node, line.year),
                    node=node,
                )
            )
    return out


def _check_structure(structure: ProjectStructure, catalog: PepCatalog | None) -> list[Violation]:
    out: list[Violation] = []
    for idx, milestone in enumerate(structure.milestones, start=1):
        if not milestone.name.strip():
            out.append(
                Violation(
                    code="MILESTONE_NAME_REQUIRED",
                    message=f"Enter the name of milestone {idx}.",
                    field=node_field_id("milestone-name", milestone.id),
                    node=milestone.id,
                )
            )
        if not milestone.activities:
            out.append(
                Violation(
                    code="MILESTONE_WITHOUT_ACTIVITY",
                    message=f"Milestone {idx} must have at least 1 activity.",
                    field=node_field_id("milestone-name", milestone.id),
                    node=milestone.id,
                )
            )
    for idx, milestone in enumerate(structure.milestones, start=1):
        for jdx, activity in enumerate(milestone.activities, start=1):
            out.extend(_check_activity(activity, idx, jdx, catalog))
    return out


def validate(
    project: Project,
    structure: ProjectStructure,
    visibility: SectionVisibility | None = None,
    *,
    clock: Clock | None = None,
    threshold: Decimal = DEFAULT_THRESHOLD,
    catalog: PepCatalog | None = None,
) -> ValidationReport:
    """
    Validate a project and its structure for submission.

    Args:
        visibility: sections as currently shown; derived from the budget
            when omitted.
        catalog: when given, activity PEP codes must exist in it.
    """
    clock = clock or SystemClock()
    if visibility is None:
        visibility = section_visibility(project.budget_amount, threshold)

    violations: list[Violation] = []
    violations.extend(_check_project_fields(project))
    violations.extend(_check_approval_year(project, clock.current_year()))
    violations.extend(_check_tier(project, structure, visibility, threshold))
    violations.extend(_check_structure(structure, catalog))

    report = ValidationReport(violations=tuple(violations))
    logger.debug("form_validated", extra={
        "project_id": project.id,
        "violation_count": len(report.violations),
    })
    return report
