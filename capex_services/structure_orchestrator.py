"""
Structure Persistence Orchestrator (``capex_services.structure_orchestrator``).

Responsibility
--------------
Converts a ``ProjectStructure`` to the flattened, foreign-key-linked storage
shape and back:

    milestones  {Title, projectsId}
    activities  {Title, milestonesId, projectsId, DataInicio, DataFim,
                 DescricaoAtividade, ElementoPEP, FornecedorAtividade}
    peps        {activitiesId, projectsId, year, amountBrl, Title}

A save is destroy-then-recreate: every stored row of the project is deleted
leaf-to-root, then the tree is written root-to-leaf.

Architecture position
---------------------
**Services layer** -- reads the structure owned by the form session (never
mutates it) and writes through a ``ListClient``.

Invariants enforced
-------------------
* Deletion order: budget lines, then activities, then milestones.
* A child is created only after its parent's id is known.
* Rebuilt order is store-id ascending, which is creation order.
* At most one save per project is in flight.

Failure modes
-------------
* Second concurrent save for a project  -> ``SaveInProgressError``.
* Create without id  -> ``InvalidIdentityError``; the rebuild stops.
* Any failure after the destroy phase leaves a partial structure in the
  store.  It is logged as ``structure_rebuild_failed`` with the counts
  written so far and re-raised; the next successful save replaces it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from capex_config.schema import BudgetLineYear, CapexConfig, ListNames
from capex_kernel.domain.derivation import YearLine, reconcile_year_lines, years_in_range
from capex_kernel.domain.structure import Activity, Milestone, ProjectStructure
from capex_kernel.domain.values import iso_date, parse_brl, parse_date
from capex_kernel.exceptions import MalformedResponseError, SaveInProgressError
from capex_kernel.logging_config import LogContext, get_logger
from capex_services.list_client import ListClient

logger = get_logger("services.structure_orchestrator")


@dataclass
class StructureCounts:
    milestones: int = 0
    activities: int = 0
    budget_lines: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "milestones": self.milestones,
            "activities": self.activities,
            "budget_lines": self.budget_lines,
        }


@dataclass(frozen=True)
class StructureSaveResult:
    """Outcome of one ``save``."""

    project_id: int
    deleted: StructureCounts = field(default_factory=StructureCounts)
    created: StructureCounts = field(default_factory=StructureCounts)


def _item_id(record: dict[str, Any]) -> int:
    raw = record.get("Id") or record.get("ID")
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("remote_record_without_id", extra={"record_keys": sorted(record)})
        raise MalformedResponseError(None, "query", repr(record)) from None


def _by_id(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=_item_id)


class StructureOrchestrator:
    """
    Saves and loads the milestone/activity/budget-line tree of a project.

    Contract
    --------
    * ``save`` never mutates the structure it is given.
    * ``load(p)`` after ``save(s, p, ...)`` yields the same milestones and
      activities in the same order.  Amounts come back under the year that
      was written, see ``budget_line_year``.
    """

    def __init__(
        self,
        client: ListClient,
        lists: ListNames | None = None,
        budget_line_year: BudgetLineYear = BudgetLineYear.APPROVAL_YEAR,
    ):
        self._client = client
        self._lists = lists or ListNames()
        self._budget_line_year = budget_line_year
        self._lock = threading.Lock()
        self._in_flight: set[int] = set()

    @classmethod
    def from_config(cls, client: ListClient, config: CapexConfig) -> StructureOrchestrator:
        return cls(client, lists=config.lists, budget_line_year=config.budget_line_year)

    # =========================================================================
    # Save
    # =========================================================================

    def save(
        self,
        structure: ProjectStructure,
        project_id: int,
        approval_year: int | None,
    ) -> StructureSaveResult:
        """Replace the stored structure of ``project_id`` with ``structure``."""
        self._acquire(project_id)
        try:
            with LogContext.bind(project_id=project_id):
                deleted = self._destroy(project_id)
                logger.info("structure_destroyed", extra=deleted.as_dict())

                created = StructureCounts()
                try:
                    self._rebuild(structure, project_id, approval_year, created)
                except Exception:
                    logger.error("structure_rebuild_failed", extra=created.as_dict())
                    raise

                logger.info("structure_rebuilt", extra=created.as_dict())
                return StructureSaveResult(project_id=project_id, deleted=deleted, created=created)
        finally:
            self._release(project_id)

    def _acquire(self, project_id: int) -> None:
        with self._lock:
            if project_id in self._in_flight:
                logger.warning("structure_save_rejected", extra={"project_id": project_id})
                raise SaveInProgressError(project_id)
            self._in_flight.add(project_id)

    def _release(self, project_id: int) -> None:
        with self._lock:
            self._in_flight.discard(project_id)

    def _destroy(self, project_id: int) -> StructureCounts:
        lists = self._lists
        counts = StructureCounts()
        for milestone in self._milestone_records(project_id, select="Id"):
            milestone_id = _item_id(milestone)
            for activity in self._activity_records(milestone_id, select="Id"):
                activity_id = _item_id(activity)
                for line in self._budget_line_records(activity_id, select="Id"):
                    self._client.delete(lists.budget_lines, _item_id(line))
                    counts.budget_lines += 1
                self._client.delete(lists.activities, activity_id)
                counts.activities += 1
            self._client.delete(lists.milestones, milestone_id)
            counts.milestones += 1
        return counts

    def _rebuild(
        self,
        structure: ProjectStructure,
        project_id: int,
        approval_year: int | None,
        counts: StructureCounts,
    ) -> None:
        lists = self._lists
        for milestone in structure.milestones:
            milestone_id = self._client.create(lists.milestones, {
                "Title": milestone.name,
                "projectsId": project_id,
            })
            counts.milestones += 1
            for activity in milestone.activities:
                activity_id = self._client.create(
                    lists.activities, self._activity_fields(activity, milestone_id, project_id)
                )
                counts.activities += 1
                for line in activity.year_lines:
                    self._client.create(lists.budget_lines, {
                        "activitiesId": activity_id,
                        "projectsId": project_id,
                        "year": self._stored_year(line, approval_year),
                        "amountBrl": float(line.amount),
                        "Title": activity.pep_code or activity.title,
                    })
                    counts.budget_lines += 1

    @staticmethod
    def _activity_fields(activity: Activity, milestone_id: int, project_id: int) -> dict[str, Any]:
        return {
            "Title": activity.title,
            "milestonesId": milestone_id,
            "projectsId": project_id,
            "DataInicio": iso_date(activity.start),
            "DataFim": iso_date(activity.end),
            "DescricaoAtividade": activity.description,
            "ElementoPEP": activity.pep_code,
            "FornecedorAtividade": activity.supplier,
        }

    def _stored_year(self, line: YearLine, approval_year: int | None) -> int:
        if self._budget_line_year is BudgetLineYear.APPROVAL_YEAR and approval_year is not None:
            return approval_year
        return line.year

    # =========================================================================
    # Load
    # =========================================================================

    def load(self, project_id: int) -> ProjectStructure:
        """Rebuild the tree of ``project_id`` from the store, in id order."""
        milestones: list[Milestone] = []
        for record in self._milestone_records(project_id, select="Id,Title"):
            milestone = Milestone(name=record.get("Title") or "")
            for act_record in self._activity_records(_item_id(record)):
                milestone.activities.append(self._activity_from_record(act_record))
            milestones.append(milestone)

        structure = ProjectStructure(milestones)
        logger.debug("structure_loaded", extra={
            "project_id": project_id,
            "milestones": len(milestones),
            "activities": sum(1 for _ in structure.iter_activities()),
        })
        return structure

    def _activity_from_record(self, record: dict[str, Any]) -> Activity:
        start = parse_date(record.get("DataInicio"))
        end = parse_date(record.get("DataFim"))
        stored = tuple(
            YearLine(year=int(line["year"]), amount=parse_brl(line.get("amountBrl")))
            for line in self._budget_line_records(_item_id(record))
            if line.get("year") not in (None, "")
        )
        years = years_in_range(start, end)
        if years:
            year_lines = reconcile_year_lines(stored, years)
        else:
            year_lines = reconcile_year_lines(stored, sorted({line.year for line in stored}))
        return Activity(
            title=record.get("Title") or "",
            start=start,
            end=end,
            description=record.get("DescricaoAtividade") or "",
            supplier=record.get("FornecedorAtividade") or "",
            pep_code=record.get("ElementoPEP") or None,
            year_lines=year_lines,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def _milestone_records(self, project_id: int, select: str | None = None) -> list[dict[str, Any]]:
        return _by_id(self._client.query(
            self._lists.milestones,
            select=select,
            filter=f"projectsId eq {int(project_id)}",
            orderby="Id asc",
        ))

    def _activity_records(self, milestone_id: int, select: str | None = None) -> list[dict[str, Any]]:
        return _by_id(self._client.query(
            self._lists.activities,
            select=select,
            filter=f"milestonesId eq {int(milestone_id)}",
            orderby="Id asc",
        ))

    def _budget_line_records(self, activity_id: int, select: str | None = None) -> list[dict[str, Any]]:
        return _by_id(self._client.query(
            self._lists.budget_lines,
            select=select,
            filter=f"activitiesId eq {int(activity_id)}",
            orderby="Id asc",
        ))
