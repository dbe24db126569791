"""
Pure domain layer.

Structure model, derivation, validation and Gantt projection of a CAPEX
proposal, with NO dependencies on:
- HTTP / the remote list store
- Configuration files
- The wall clock (injected through ``Clock``)
"""

from capex_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from capex_kernel.domain.derivation import (
    DEFAULT_THRESHOLD,
    BudgetTier,
    SectionVisibility,
    YearFieldDescriptor,
    YearLine,
    budget_flag,
    budget_tier,
    reconcile_year_lines,
    section_visibility,
    year_field_descriptors,
    years_in_range,
)
from capex_kernel.domain.gantt import GanttRow, as_dataset, chart_height, project_gantt
from capex_kernel.domain.pep import PepCatalog, PepElement
from capex_kernel.domain.project import (
    PROJECT_FIELDS,
    Project,
    ProjectStatus,
    ProjectSummary,
    project_from_form,
    project_from_record,
    project_to_form,
    project_to_payload,
)
from capex_kernel.domain.session import FormSession
from capex_kernel.domain.structure import Activity, Milestone, ProjectStructure
from capex_kernel.domain.validation import ValidationReport, Violation, validate
from capex_kernel.domain.values import format_brl, format_date, parse_brl, parse_date

__all__ = [
    "Activity",
    "BudgetTier",
    "Clock",
    "DEFAULT_THRESHOLD",
    "DeterministicClock",
    "FormSession",
    "GanttRow",
    "Milestone",
    "PROJECT_FIELDS",
    "PepCatalog",
    "PepElement",
    "Project",
    "ProjectStatus",
    "ProjectStructure",
    "ProjectSummary",
    "SectionVisibility",
    "SystemClock",
    "ValidationReport",
    "Violation",
    "YearFieldDescriptor",
    "YearLine",
    "as_dataset",
    "budget_flag",
    "budget_tier",
    "chart_height",
    "format_brl",
    "format_date",
    "parse_brl",
    "parse_date",
    "project_from_form",
    "project_from_record",
    "project_gantt",
    "project_to_form",
    "project_to_payload",
    "reconcile_year_lines",
    "section_visibility",
    "validate",
    "year_field_descriptors",
    "years_in_range",
]
