"""
Pytest fixtures for the CAPEX forms test suite.

Provides:
- An in-memory ListClient that records every call
- Deterministic clock and default configuration
- Factories for complete, valid form sessions
- Structured log capture
"""

import json
import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Any

import pytest

from capex_config import get_active_config
from capex_config.schema import BudgetLineYear, CapexConfig, ListNames
from capex_kernel.domain.clock import DeterministicClock
from capex_kernel.domain.pep import PepCatalog, PepElement
from capex_kernel.domain.project import ProjectStatus
from capex_kernel.domain.session import FormSession
from capex_kernel.domain.structure import ProjectStructure
from capex_kernel.exceptions import InvalidIdentityError, RemoteUnavailableError
from capex_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from capex_services.project_service import ProjectService
from capex_services.structure_orchestrator import StructureOrchestrator

TEST_USER_ID = 7

_FILTER = re.compile(r"^(\w+) eq '?([^']*)'?$")


# =============================================================================
# In-memory list store
# =============================================================================


class FakeListClient:
    """
    ``ListClient`` over dicts.

    Ids are assigned per collection starting at 1, like SharePoint.  Every
    call is appended to ``calls`` as ``(operation, collection, item_id)``.
    ``fail_creates_in`` makes ``create`` raise ``InvalidIdentityError`` for
    the named collections after ``fail_after`` successful creates.
    """

    def __init__(self, user_id: int = TEST_USER_ID):
        self.user_id = user_id
        self.items: dict[str, dict[int, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str | None, Any]] = []
        self._next_id: dict[str, int] = {}
        self.fail_creates_in: set[str] = set()
        self.fail_after = 0
        self.unavailable = False

    def _check(self, operation: str, collection: str | None) -> None:
        if self.unavailable:
            raise RemoteUnavailableError(collection, operation, status_code=503)

    def create(self, collection: str, fields: dict[str, Any]) -> int:
        self._check("create", collection)
        if collection in self.fail_creates_in:
            if self.fail_after <= 0:
                raise InvalidIdentityError(collection, {"d": {}})
            self.fail_after -= 1
        item_id = self._next_id.get(collection, 1)
        self._next_id[collection] = item_id + 1
        record = {"AuthorId": self.user_id}
        record.update(fields)
        record["Id"] = item_id
        self.items.setdefault(collection, {})[item_id] = record
        self.calls.append(("create", collection, item_id))
        return item_id

    def update(self, collection: str, item_id: int, fields: dict[str, Any]) -> None:
        self._check("update", collection)
        record = self.items.get(collection, {}).get(item_id)
        if record is None:
            raise RemoteUnavailableError(collection, "update", status_code=404)
        record.update(fields)
        self.calls.append(("update", collection, item_id))

    def delete(self, collection: str, item_id: int) -> None:
        self._check("delete", collection)
        if self.items.get(collection, {}).pop(item_id, None) is None:
            raise RemoteUnavailableError(collection, "delete", status_code=404)
        self.calls.append(("delete", collection, item_id))

    def query(self, collection, select=None, filter=None, orderby=None):
        self._check("query", collection)
        self.calls.append(("query", collection, filter))
        records = list(self.items.get(collection, {}).values())
        if filter:
            match = _FILTER.match(filter)
            assert match is not None, f"unsupported filter {filter!r}"
            column, value = match.groups()
            records = [r for r in records if str(r.get(column)) == value]
        return [dict(r) for r in sorted(records, key=lambda r: r["Id"])]

    def get_by_id(self, collection: str, item_id: int) -> dict[str, Any]:
        self._check("get", collection)
        record = self.items.get(collection, {}).get(item_id)
        if record is None:
            raise RemoteUnavailableError(collection, "get", status_code=404)
        self.calls.append(("get", collection, item_id))
        return dict(record)

    def form_digest(self) -> str:
        return "0x-test-digest"

    def current_user_id(self) -> int:
        return self.user_id

    # -- helpers for assertions ----------------------------------------------

    def rows(self, collection: str) -> list[dict[str, Any]]:
        return [self.items[collection][k] for k in sorted(self.items.get(collection, {}))]

    def writes(self) -> list[tuple[str, str | None, Any]]:
        return [c for c in self.calls if c[0] in ("create", "update", "delete")]


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture capex logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.save(...)
            logs = captured_logs()
            assert any(r["message"] == "structure_rebuilt" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("capex")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def config() -> CapexConfig:
    return get_active_config()


@pytest.fixture
def line_year_config(config) -> CapexConfig:
    return CapexConfig(
        site_url=config.site_url,
        lists=config.lists,
        threshold=config.threshold,
        budget_line_year=BudgetLineYear.LINE_YEAR,
    )


@pytest.fixture
def list_names() -> ListNames:
    return ListNames()


@pytest.fixture
def fake_client() -> FakeListClient:
    return FakeListClient()


@pytest.fixture
def orchestrator(fake_client, list_names) -> StructureOrchestrator:
    return StructureOrchestrator(fake_client, list_names, BudgetLineYear.LINE_YEAR)


@pytest.fixture
def catalog() -> PepCatalog:
    return PepCatalog([
        PepElement("PEP-001", Decimal("500000")),
        PepElement("PEP-002", Decimal("1500000")),
        PepElement("PEP-003", Decimal("250000")),
    ])


@pytest.fixture
def project_service(fake_client, line_year_config, deterministic_clock) -> ProjectService:
    return ProjectService(fake_client, line_year_config, clock=deterministic_clock)


# =============================================================================
# Form factories
# =============================================================================


def valid_form_values(**overrides: Any) -> dict[str, str]:
    """Form values for every required project field."""
    values = {
        "projectName": "Packaging line 3 retrofit",
        "approvalYear": "2025",
        "projectBudget": "1.200.000,00",
        "investmentLevel": "Plant",
        "fundingSource": "Annual plan",
        "projectUser": "Operations",
        "projectLeader": "J. Silva",
        "company": "1000",
        "center": "BR01",
        "unit": "Campinas",
        "projectLocation": "Building B",
        "depreciationCostCenter": "CC-4410",
        "category": "Productivity",
        "investmentType": "Replacement",
        "assetType": "Machinery",
        "projectFunction": "Manufacturing",
        "startDate": "2025-01-10",
        "endDate": "2026-03-31",
        "projectSummary": "Replace the end-of-line packaging cell.",
        "projectComment": "Vendor quotes attached.",
        "kpiType": "OEE",
        "kpiName": "Line OEE",
        "kpiDescription": "Overall equipment effectiveness of line 3",
        "kpiCurrent": "61",
        "kpiExpected": "78",
        "projectPep": "",
    }
    values.update(overrides)
    return values


def fill_structure(
    structure: ProjectStructure,
    milestones: int = 2,
    activities: int = 2,
    start: date = date(2024, 3, 1),
    end: date = date(2025, 6, 30),
    pep_code: str = "PEP-001",
) -> ProjectStructure:
    """Complete milestones/activities with amounts on every year line."""
    for m in range(milestones):
        milestone = structure.add_milestone()
        for a in range(activities):
            activity = structure.add_activity(milestone.id, start=start, end=end)
            structure.set_activity_details(
                activity.id,
                title=f"Activity {m + 1}.{a + 1}",
                description=f"Work package {m + 1}.{a + 1}",
                supplier="ACME Automation",
            )
            structure.set_activity_pep(activity.id, pep_code)
            for line in activity.year_lines:
                structure.set_year_amount(activity.id, line.year, f"{(a + 1) * 1000},50")
    return structure


@pytest.fixture
def valid_session(deterministic_clock, catalog) -> FormSession:
    """A session above the threshold that passes validation."""
    session = FormSession(catalog=catalog, clock=deterministic_clock)
    session.fill_project(valid_form_values())
    fill_structure(session.structure)
    return session


@pytest.fixture
def stored_project(fake_client, list_names):
    """Factory storing a ``Projects`` item and returning its id."""

    def _create(status: ProjectStatus | None = ProjectStatus.DRAFT, **fields: Any) -> int:
        record = {"Title": "Stored project", "CapexBudgetBRL": 400000.0, "AnoAprovacao": 2025}
        if status is not None:
            record["Status"] = status.value
        record.update(fields)
        return fake_client.create(list_names.projects, record)

    return _create
