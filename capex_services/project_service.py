"""
Project Service (``capex_services.project_service``).

Responsibility
--------------
The operations behind the form's buttons: list the user's projects, open
one for editing, save a draft, submit for approval, change a status and
read the PEP catalog.  The project record goes to the ``Projects`` list;
the structure is handed to ``StructureOrchestrator``.

Architecture position
---------------------
**Services layer** -- sole public entry point used by the view layer.
Reads and writes ``FormSession`` objects from the kernel.

Invariants enforced
-------------------
* Submit validates before any remote write; a failing report sends
  nothing.
* Projects outside the editable statuses are never resubmitted.
* The project is created (or updated) before its structure is saved, so
  that children carry a valid ``projectsId``.

Failure modes
-------------
* Non-editable project on submit  -> ``ProjectNotEditableError``.
* Violations on submit  -> ``ValidationFailureError`` carrying the report.
* Store failures  -> ``RemoteError`` subclasses, re-raised after logging.
"""

from __future__ import annotations

from decimal import Decimal

from capex_config.schema import CapexConfig
from capex_kernel.domain.clock import Clock, SystemClock
from capex_kernel.domain.derivation import DEFAULT_THRESHOLD
from capex_kernel.domain.pep import PepCatalog
from capex_kernel.domain.project import (
    AUTHOR_COLUMN,
    STATUS_COLUMN,
    ProjectStatus,
    ProjectSummary,
    project_from_record,
    project_to_payload,
    summary_from_record,
)
from capex_kernel.domain.session import FormSession
from capex_kernel.exceptions import ProjectNotEditableError, ValidationFailureError
from capex_kernel.logging_config import LogContext, get_logger
from capex_services.list_client import ListClient
from capex_services.structure_orchestrator import (
    StructureOrchestrator,
    StructureSaveResult,
)

logger = get_logger("services.project")

SUMMARY_SELECT = "Id,Title,CapexBudgetBRL,Status"


class ProjectService:
    """
    Draft / submit / open / list operations for CAPEX proposals.

    Contract
    --------
    * ``save_draft`` and ``submit`` return the orchestrator's save result and
      leave the session bound to the stored project id and new status.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT approve or reject projects; approvers set those statuses
      outside this system (``update_status`` only writes the value).
    """

    def __init__(
        self,
        client: ListClient,
        config: CapexConfig,
        orchestrator: StructureOrchestrator | None = None,
        clock: Clock | None = None,
    ):
        self._client = client
        self._config = config
        self._lists = config.lists
        self._orchestrator = orchestrator or StructureOrchestrator.from_config(client, config)
        self._clock = clock or SystemClock()

    @property
    def threshold(self) -> Decimal:
        return self._config.threshold or DEFAULT_THRESHOLD

    def new_session(self, catalog: PepCatalog | None = None) -> FormSession:
        """Empty form for a new project."""
        return FormSession(
            catalog=catalog if catalog is not None else PepCatalog(),
            threshold=self.threshold,
            clock=self._clock,
        )

    # =========================================================================
    # Read
    # =========================================================================

    def list_user_projects(self, author_id: int | None = None) -> list[ProjectSummary]:
        """Projects authored by ``author_id`` (default: the current user)."""
        if author_id is None:
            author_id = self._client.current_user_id()
        records = self._client.query(
            self._lists.projects,
            select=SUMMARY_SELECT,
            filter=f"{AUTHOR_COLUMN} eq '{int(author_id)}'",
        )
        summaries = [summary_from_record(record) for record in records]
        logger.info("user_projects_listed", extra={
            "actor_id": str(author_id),
            "count": len(summaries),
        })
        return summaries

    def load_pep_catalog(self) -> PepCatalog:
        records = self._client.query(self._lists.pep_catalog, select="Title,amountBrl")
        catalog = PepCatalog.from_records(records)
        logger.info("pep_catalog_loaded", extra={"count": len(catalog)})
        return catalog

    def open_project(self, project_id: int, catalog: PepCatalog | None = None) -> FormSession:
        """Load a stored project and its structure into a new form session."""
        with LogContext.bind(project_id=project_id):
            record = self._client.get_by_id(self._lists.projects, project_id)
            project = project_from_record(record)
            if project.id is None:
                project = project.replace(id=project_id)
            structure = self._orchestrator.load(project_id)
            session = FormSession(
                project=project,
                catalog=catalog if catalog is not None else self.load_pep_catalog(),
                threshold=self.threshold,
                clock=self._clock,
            )
            # Assigned after construction: the budget tier must not clear it.
            session.structure = structure
            logger.info("project_opened", extra={
                "status": project.status,
                "editable": session.editable,
                "milestones": len(structure),
            })
            return session

    # =========================================================================
    # Write
    # =========================================================================

    def save_draft(self, session: FormSession) -> StructureSaveResult:
        """Persist the form as ``Rascunho`` without validation."""
        return self._persist(session, ProjectStatus.DRAFT)

    def submit(self, session: FormSession) -> StructureSaveResult:
        """Validate and persist the form as ``Em Aprovação``."""
        project = session.project
        if not session.editable:
            logger.warning("project_submit_refused", extra={
                "project_id": project.id,
                "status": project.status,
            })
            raise ProjectNotEditableError(project.id, project.status or "")

        report = session.validate()
        if not report.ok:
            logger.info("project_submit_invalid", extra={
                "project_id": project.id,
                "violations": list(report.codes()),
            })
            raise ValidationFailureError(report)

        return self._persist(session, ProjectStatus.IN_APPROVAL)

    def update_status(self, project_id: int, status: ProjectStatus | str) -> None:
        value = status.value if isinstance(status, ProjectStatus) else str(status)
        self._client.update(self._lists.projects, project_id, {STATUS_COLUMN: value})
        logger.info("project_status_updated", extra={
            "project_id": project_id,
            "status": value,
        })

    def _persist(self, session: FormSession, status: ProjectStatus) -> StructureSaveResult:
        project = session.project
        payload = project_to_payload(project, status=status.value)
        with LogContext.bind(session_id=session.session_id, project_id=project.id):
            try:
                if project.id is None:
                    project_id = self._client.create(self._lists.projects, payload)
                    session.bind_project_id(project_id)
                    logger.info("project_created", extra={"item_id": project_id, "status": status.value})
                else:
                    project_id = project.id
                    self._client.update(self._lists.projects, project_id, payload)
                    logger.info("project_updated", extra={"item_id": project_id, "status": status.value})

                session.project = session.project.replace(status=status.value)
                return self._orchestrator.save(
                    session.structure, project_id, session.project.approval_year
                )
            except Exception:
                logger.exception("project_persist_failed", extra={"status": status.value})
                raise
