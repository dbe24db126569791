"""
Tests for ProjectService: draft, submit, open, list, status, PEP catalog.
"""

import pytest

from capex_kernel.domain.project import ProjectStatus
from capex_kernel.exceptions import (
    ProjectNotEditableError,
    RemoteUnavailableError,
    ValidationFailureError,
)
from tests.conftest import TEST_USER_ID, valid_form_values


# =============================================================================
# Save draft
# =============================================================================


class TestSaveDraft:

    def test_new_draft_is_created_without_validation(self, project_service, fake_client):
        session = project_service.new_session()
        session.fill_project({"projectName": "Half-filled", "projectBudget": "2.000.000"})

        project_service.save_draft(session)

        [record] = fake_client.rows("Projects")
        assert record["Title"] == "Half-filled"
        assert record["Status"] == "Rascunho"
        assert record["CapexBudgetBRL"] == 2000000.0
        assert session.project_id == record["Id"]
        assert session.project.status == "Rascunho"

    def test_second_draft_updates_same_item(self, project_service, fake_client, valid_session):
        project_service.save_draft(valid_session)
        valid_session.fill_project(valid_form_values(projectName="Renamed"))

        project_service.save_draft(valid_session)

        [record] = fake_client.rows("Projects")
        assert record["Title"] == "Renamed"
        assert ("update", "Projects", record["Id"]) in fake_client.calls

    def test_draft_saves_structure(self, project_service, fake_client, valid_session):
        result = project_service.save_draft(valid_session)

        assert result.project_id == valid_session.project_id
        assert result.created.milestones == 2
        assert {m["projectsId"] for m in fake_client.rows("milestones")} == {valid_session.project_id}

    def test_remote_failure_is_logged_and_raised(
        self, project_service, fake_client, valid_session, captured_logs
    ):
        fake_client.unavailable = True

        with pytest.raises(RemoteUnavailableError):
            project_service.save_draft(valid_session)

        failed = [r for r in captured_logs() if r["message"] == "project_persist_failed"]
        assert failed[0]["exc_code"] == "REMOTE_UNAVAILABLE"
        assert valid_session.project_id is None


# =============================================================================
# Submit
# =============================================================================


class TestSubmit:

    def test_valid_form_is_sent_for_approval(self, project_service, fake_client, valid_session):
        project_service.submit(valid_session)

        [record] = fake_client.rows("Projects")
        assert record["Status"] == "Em Aprovação"
        assert len(fake_client.rows("activities")) == 4
        assert len(fake_client.rows("peps")) == 8
        assert valid_session.project.status == ProjectStatus.IN_APPROVAL.value
        assert not valid_session.editable

    def test_project_is_written_before_structure(self, project_service, fake_client, valid_session):
        project_service.submit(valid_session)
        writes = fake_client.writes()
        assert writes[0] == ("create", "Projects", valid_session.project_id)

    def test_invalid_form_sends_nothing(self, project_service, fake_client, valid_session):
        valid_session.fill_project(valid_form_values(projectName=""))

        with pytest.raises(ValidationFailureError) as exc_info:
            project_service.submit(valid_session)

        assert exc_info.value.report.codes() == ("REQUIRED_FIELD",)
        assert exc_info.value.report.offending_fields == ("projectName",)
        assert fake_client.writes() == []

    def test_above_threshold_without_milestones(self, project_service, fake_client):
        session = project_service.new_session()
        session.fill_project(valid_form_values())

        with pytest.raises(ValidationFailureError) as exc_info:
            project_service.submit(session)

        assert "requires at least 1 milestone" in exc_info.value.report.messages[0]
        assert fake_client.writes() == []

    @pytest.mark.parametrize("status", [
        ProjectStatus.IN_APPROVAL,
        ProjectStatus.APPROVED,
        ProjectStatus.REJECTED,
    ])
    def test_locked_statuses_refuse_submit(self, project_service, fake_client, valid_session, status):
        valid_session.project = valid_session.project.replace(id=5, status=status.value)

        with pytest.raises(ProjectNotEditableError) as exc_info:
            project_service.submit(valid_session)

        assert exc_info.value.status == status.value
        assert fake_client.writes() == []

    def test_returned_project_is_resubmitted_in_place(
        self, project_service, fake_client, stored_project, valid_session
    ):
        project_id = stored_project(ProjectStatus.RETURNED)
        valid_session.bind_project_id(project_id)
        valid_session.project = valid_session.project.replace(status=ProjectStatus.RETURNED.value)

        project_service.submit(valid_session)

        [record] = fake_client.rows("Projects")
        assert record["Id"] == project_id
        assert record["Status"] == "Em Aprovação"


# =============================================================================
# Open / list / status / catalog
# =============================================================================


class TestOpenProject:

    def test_open_restores_record_and_structure(self, project_service, fake_client, valid_session):
        project_service.save_draft(valid_session)
        fake_client.create("Peps", {"Title": "PEP-001", "amountBrl": 10.0})

        session = project_service.open_project(valid_session.project_id)

        assert session.project == valid_session.project
        assert [m.name for m in session.structure.milestones] == ["Milestone 1", "Milestone 2"]
        assert session.editable
        assert session.visibility.milestones
        assert session.catalog.codes() == ("PEP-001",)
        assert session.validate().ok

    def test_open_below_threshold_keeps_project_pep(self, project_service, stored_project, catalog):
        project_id = stored_project(ElementoPEP="PEP-003")

        session = project_service.open_project(project_id, catalog=catalog)

        assert session.project.pep_code == "PEP-003"
        assert session.visibility.pep_selector
        assert session.structure.is_empty()

    def test_open_approved_project_is_read_only(self, project_service, stored_project, catalog):
        project_id = stored_project(ProjectStatus.APPROVED)
        session = project_service.open_project(project_id, catalog=catalog)
        assert not session.editable

    def test_open_missing_project(self, project_service, catalog):
        with pytest.raises(RemoteUnavailableError):
            project_service.open_project(404, catalog=catalog)


class TestListAndStatus:

    def test_lists_projects_of_current_user(self, project_service, fake_client, stored_project):
        mine = stored_project(Title="Mine")
        stored_project(Title="Other", AuthorId=TEST_USER_ID + 1)

        summaries = project_service.list_user_projects()

        assert [(s.id, s.title, s.status) for s in summaries] == [(mine, "Mine", "Rascunho")]

    def test_lists_projects_of_given_author(self, project_service, stored_project):
        other = stored_project(Title="Other", AuthorId=42)
        assert [s.id for s in project_service.list_user_projects(author_id=42)] == [other]

    def test_update_status(self, project_service, fake_client, stored_project):
        project_id = stored_project(ProjectStatus.IN_APPROVAL)

        project_service.update_status(project_id, ProjectStatus.APPROVED)

        assert fake_client.rows("Projects")[0]["Status"] == "Aprovado"

    def test_load_pep_catalog(self, project_service, fake_client):
        fake_client.create("Peps", {"Title": "PEP-B", "amountBrl": 2.0})
        fake_client.create("Peps", {"Title": "PEP-A", "amountBrl": 1.0})
        fake_client.create("Peps", {"Title": "PEP-B", "amountBrl": 3.0})

        catalog = project_service.load_pep_catalog()

        assert catalog.codes() == ("PEP-A", "PEP-B")
        assert float(catalog.get("PEP-B").amount) == 2.0
