"""
Tests for API endpoints.
"""
import os
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.models.import_models import CsvImportJob, JobStatus
from app.routes.import_route import job_runner
from app.services.job_runner import JobRunner
from app.services.job_status_store import JobStatusStore
from csv_samples import make_csv, make_row


@pytest.fixture
def dispatch():
    """Replace Celery dispatch of the import task."""
    with patch("app.routes.import_route.process_csv_import_job") as task:
        task.delay.return_value = MagicMock(id="task-1")
        yield task


def upload(client, content, filename="parts.csv", content_type="text/csv", **form):
    return client.post(
        "/import/upload",
        files={"file": (filename, content, content_type)},
        data=form,
    )


class TestUploadEndpoint:
    """Test CSV upload."""

    def test_upload_queues_job(self, client, dispatch, isolated_db_session):
        response = upload(client, make_csv([make_row("A-1")]).encode())

        assert response.status_code == 202
        data = response.json()
        assert data["status"] == "queued"
        assert data["job_id"].startswith("csv_")
        dispatch.delay.assert_called_once_with(data["job_id"])

        job = isolated_db_session.get(CsvImportJob, data["job_id"])
        assert job.status == JobStatus.QUEUED
        assert job.file_name == "parts.csv"

    def test_upload_with_options(self, client, dispatch, isolated_db_session):
        response = upload(
            client,
            make_csv([make_row("A-1")]).encode(),
            validation_mode="flexible",
            skip_duplicates="true",
            batch_size="500",
            email_notification="true",
            notify_email="ops@example.com",
        )

        assert response.status_code == 202
        job = isolated_db_session.get(CsvImportJob, response.json()["job_id"])
        assert '"validation_mode":"flexible"' in job.options_json
        assert '"batch_size":500' in job.options_json
        assert job.notify_email == "ops@example.com"

    def test_rejects_wrong_extension(self, client, dispatch):
        response = upload(client, b"x", filename="parts.xlsx")
        assert response.status_code == 400
        dispatch.delay.assert_not_called()

    def test_rejects_wrong_content_type(self, client, dispatch):
        response = upload(client, b"a;b;c\n", content_type="application/pdf")
        assert response.status_code == 400

    def test_rejects_empty_file(self, client, dispatch):
        response = upload(client, b"")
        assert response.status_code == 400

    def test_rejects_invalid_options(self, client, dispatch):
        response = upload(client, b"a;b;c\n", validation_mode="lenient")
        assert response.status_code == 422

        response = upload(client, b"a;b;c\n", batch_size="50")
        assert response.status_code == 422

    def test_rejects_oversized_file(self, client, dispatch):
        with patch("app.routes.import_route.MAX_UPLOAD_BYTES", 10):
            response = upload(client, b"a;b;c\n1;2;3\n")
        assert response.status_code == 413

    def test_dispatch_failure_fails_job(self, client, dispatch):
        dispatch.delay.side_effect = ConnectionError("broker unreachable")

        with patch("app.routes.import_route.job_runner.fail_permanently") as fail:
            response = upload(client, make_csv([make_row("A-1")]).encode())

        assert response.status_code == 500
        fail.assert_called_once()

    def test_registration_failure_removes_upload(self, client, dispatch):
        service = job_runner.import_service
        db_down = OperationalError("INSERT INTO csv_import_jobs", {}, Exception("database is locked"))

        with patch.object(job_runner, "submit", side_effect=db_down), \
                patch.object(service, "cleanup_file", wraps=service.cleanup_file) as cleanup:
            response = upload(client, make_csv([make_row("A-1")]).encode())

        assert response.status_code == 500
        dispatch.delay.assert_not_called()
        cleanup.assert_called_once()
        saved_path = cleanup.call_args[0][0]
        assert saved_path.endswith("parts.csv")
        assert not os.path.exists(saved_path)


class TestJobEndpoints:
    """Test job listing and status."""

    def test_status_of_queued_job(self, client, dispatch):
        job_id = upload(client, make_csv([make_row("A-1")]).encode()).json()["job_id"]

        response = client.get(f"/import/jobs/{job_id}")

        assert response.status_code == 200
        assert response.json()["status"] == "queued"
        assert "results" not in response.json()

    def test_status_of_finished_job(self, client, dispatch, session_factory):
        job_id = upload(client, make_csv([make_row("A-1"), make_row("A-2")]).encode()).json()["job_id"]

        JobRunner(notifier=MagicMock(), session_factory=session_factory).execute(job_id)
        response = client.get(f"/import/jobs/{job_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["results"]["success"] is True
        assert data["results"]["processing_stats"]["inserted"] == 2

    def test_status_from_snapshot(self, client, isolated_db_session):
        JobStatusStore().put("csv_done", "failed", {"success": False, "error": "boom"}, isolated_db_session)

        response = client.get("/import/jobs/csv_done")

        assert response.status_code == 200
        assert response.json()["results"]["error"] == "boom"

    def test_unknown_job(self, client):
        assert client.get("/import/jobs/csv_missing").status_code == 404

    def test_list_jobs(self, client, dispatch):
        upload(client, make_csv([make_row("A-1")]).encode())
        upload(client, make_csv([make_row("A-2")]).encode())

        response = client.get("/import/jobs")

        assert response.status_code == 200
        assert response.json()["total"] == 2
        assert response.json()["jobs"][0]["status"] == "queued"
