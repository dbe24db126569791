"""
Project record and form field map.

Responsibility:
    Defines the scalar project record, the stable form field identifiers
    and how each field maps to the columns of the ``Projects`` list.  Some
    values are written to two columns (older and newer column names of the
    same list) and read back with a fallback between them.

Architecture position:
    Kernel > Domain -- pure data definitions with ZERO I/O.

Invariants enforced:
    - Field identifiers and store column names are part of the store
      contract and must not be renamed.
    - Monetary and KPI values are ``Decimal``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from capex_kernel.domain.values import ZERO, iso_date, parse_brl, parse_date


class ProjectStatus(str, Enum):
    """Approval states, set by this system (draft, submit) or by approvers."""

    DRAFT = "Rascunho"
    IN_APPROVAL = "Em Aprovação"
    APPROVED = "Aprovado"
    REJECTED = "Recusado"
    RETURNED = "Reprovado para Revisão"

    @property
    def is_editable(self) -> bool:
        return self in EDITABLE_STATUSES


EDITABLE_STATUSES = frozenset({ProjectStatus.DRAFT, ProjectStatus.RETURNED})


def is_editable_status(status: str | None) -> bool:
    """Projects without a status are new drafts and therefore editable."""
    if not status:
        return True
    return status in {s.value for s in EDITABLE_STATUSES}


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    YEAR = "year"
    DATE = "date"


@dataclass(frozen=True)
class ProjectField:
    """One addressable form field and its store columns."""

    field_id: str
    attribute: str
    label: str
    columns: tuple[str, ...]
    kind: FieldKind = FieldKind.TEXT
    required: bool = True

    @property
    def is_numeric(self) -> bool:
        return self.kind in (FieldKind.NUMBER, FieldKind.YEAR)


# Declared order is the validation message order.
PROJECT_FIELDS: tuple[ProjectField, ...] = (
    ProjectField("projectName", "name", "Project name", ("Title",)),
    ProjectField("approvalYear", "approval_year", "Approval year", ("AnoAprovacao",), FieldKind.YEAR),
    ProjectField("projectBudget", "budget", "Project budget (BRL)", ("CapexBudgetBRL",), FieldKind.NUMBER),
    ProjectField("investmentLevel", "investment_level", "Investment level", ("NivelInvestimento",)),
    ProjectField("fundingSource", "funding_source", "Funding source", ("OrigemVerba",)),
    ProjectField("projectUser", "project_user", "Project user", ("ProjectUser",)),
    ProjectField("projectLeader", "project_leader", "Project leader", ("ProjectLeader",)),
    ProjectField("company", "company", "Company", ("Empresa",)),
    ProjectField("center", "center", "Center", ("Centro",)),
    ProjectField("unit", "unit", "Unit", ("Unidade",)),
    ProjectField("projectLocation", "location", "Implementation site", ("LocalImplantacao",)),
    ProjectField("depreciationCostCenter", "depreciation_cost_center", "Depreciation cost center", ("CCustoDepreciacao",)),
    ProjectField("category", "category", "Category", ("Categoria",)),
    ProjectField("investmentType", "investment_type", "Investment type", ("TipoInvestimento",)),
    ProjectField("assetType", "asset_type", "Asset type", ("TipoAtivo",)),
    ProjectField("projectFunction", "project_function", "Project function", ("FuncaoProjeto",)),
    ProjectField("startDate", "start_date", "Start date", ("DataInicio", "DataInicioProjeto"), FieldKind.DATE),
    ProjectField("endDate", "end_date", "End date", ("DataFim", "DataFimProjeto"), FieldKind.DATE),
    ProjectField("projectSummary", "summary", "Project summary", ("SumarioProjeto", "NecessidadeNegocio")),
    ProjectField("projectComment", "comment", "Comment", ("ComentarioProjeto", "SolucaoProposta")),
    ProjectField("kpiType", "kpi_type", "KPI type", ("TipoKPI", "KpiImpactado")),
    ProjectField("kpiName", "kpi_name", "KPI name", ("NomeKPI",)),
    ProjectField("kpiDescription", "kpi_description", "KPI description", ("KpiDescricao",)),
    ProjectField("kpiCurrent", "kpi_current", "Current KPI", ("KpiValorAtual",), FieldKind.NUMBER),
    ProjectField("kpiExpected", "kpi_expected", "Expected KPI", ("KpiValorEsperado",), FieldKind.NUMBER),
    ProjectField("projectPep", "pep_code", "PEP element", ("ElementoPEP",), required=False),
)

FIELDS_BY_ID: dict[str, ProjectField] = {f.field_id: f for f in PROJECT_FIELDS}
REQUIRED_FIELDS: tuple[ProjectField, ...] = tuple(f for f in PROJECT_FIELDS if f.required)

STATUS_COLUMN = "Status"
ID_COLUMN = "Id"
AUTHOR_COLUMN = "AuthorId"


@dataclass(frozen=True)
class Project:
    """
    Scalar data of a CAPEX proposal.

    Text fields hold the raw (stripped) form text.  ``budget``, ``kpi_*``
    are ``None`` when the input was left blank so that the required-field
    rule can tell "blank" from "zero".
    """

    id: int | None = None
    name: str = ""
    approval_year: int | None = None
    budget: Decimal | None = None
    investment_level: str = ""
    funding_source: str = ""
    project_user: str = ""
    project_leader: str = ""
    company: str = ""
    center: str = ""
    unit: str = ""
    location: str = ""
    depreciation_cost_center: str = ""
    category: str = ""
    investment_type: str = ""
    asset_type: str = ""
    project_function: str = ""
    start_date: date | None = None
    end_date: date | None = None
    summary: str = ""
    comment: str = ""
    kpi_type: str = ""
    kpi_name: str = ""
    kpi_description: str = ""
    kpi_current: Decimal | None = None
    kpi_expected: Decimal | None = None
    pep_code: str | None = None
    status: str | None = None

    @property
    def budget_amount(self) -> Decimal:
        return self.budget if self.budget is not None else ZERO

    @property
    def is_editable(self) -> bool:
        return is_editable_status(self.status)

    def replace(self, **changes: Any) -> Project:
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class ProjectSummary:
    """Row of the user's project list."""

    id: int
    title: str
    budget: Decimal
    status: str | None


def _parse_year(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parse_optional_amount(value: Any) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_brl(value)


def _coerce(project_field: ProjectField, value: Any) -> Any:
    if project_field.kind is FieldKind.YEAR:
        return _parse_year(value)
    if project_field.kind is FieldKind.NUMBER:
        return _parse_optional_amount(value)
    if project_field.kind is FieldKind.DATE:
        return parse_date(value)
    text = "" if value is None else str(value).strip()
    if project_field.attribute == "pep_code":
        return text or None
    return text


def project_from_form(values: dict[str, Any], project_id: int | None = None) -> Project:
    """Build a project from form values keyed by field identifier."""
    attrs = {
        project_field.attribute: _coerce(project_field, values.get(project_field.field_id))
        for project_field in PROJECT_FIELDS
    }
    return Project(id=project_id, **attrs)


def field_value(project: Project, field_id: str) -> Any:
    return getattr(project, FIELDS_BY_ID[field_id].attribute)


def project_to_form(project: Project) -> dict[str, str]:
    """Render a project into form values keyed by field identifier."""
    out: dict[str, str] = {}
    for project_field in PROJECT_FIELDS:
        value = getattr(project, project_field.attribute)
        if value is None:
            out[project_field.field_id] = ""
        elif project_field.kind is FieldKind.DATE:
            out[project_field.field_id] = value.isoformat()
        elif project_field.kind is FieldKind.NUMBER:
            # pt-BR decimal comma, read back by parse_brl
            out[project_field.field_id] = str(value).replace(".", ",")
        else:
            out[project_field.field_id] = str(value)
    return out


def _to_store(project_field: ProjectField, value: Any) -> Any:
    if project_field.kind is FieldKind.DATE:
        return iso_date(value)
    if project_field.kind is FieldKind.NUMBER:
        return float(value) if value is not None else None
    return value


def project_to_payload(project: Project, status: str | None = None) -> dict[str, Any]:
    """Columns written to the ``Projects`` list; mirrored columns get the same value."""
    payload: dict[str, Any] = {}
    for project_field in PROJECT_FIELDS:
        value = _to_store(project_field, getattr(project, project_field.attribute))
        for column in project_field.columns:
            payload[column] = value
    if status is not None:
        payload[STATUS_COLUMN] = status
    return payload


def project_from_record(record: dict[str, Any]) -> Project:
    """Read a ``Projects`` item, falling back to mirrored columns."""
    attrs: dict[str, Any] = {}
    for project_field in PROJECT_FIELDS:
        raw = None
        for column in project_field.columns:
            raw = record.get(column)
            if raw not in (None, ""):
                break
        attrs[project_field.attribute] = _coerce(project_field, raw)
    item_id = record.get(ID_COLUMN) or record.get("ID")
    return Project(
        id=int(item_id) if item_id is not None else None,
        status=record.get(STATUS_COLUMN),
        **attrs,
    )


def summary_from_record(record: dict[str, Any]) -> ProjectSummary:
    return ProjectSummary(
        id=int(record.get(ID_COLUMN) or record.get("ID")),
        title=record.get("Title") or "",
        budget=parse_brl(record.get("CapexBudgetBRL") or 0),
        status=record.get(STATUS_COLUMN),
    )
