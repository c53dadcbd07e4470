"""
Lifecycle of CSV import jobs: queued -> running -> completed | failed.
"""
import logging
import os
import uuid
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database.session import get_db_session
from app.models.import_models import CsvImportJob, JobStatus
from app.models.import_options import ProcessingOptions
from app.models.import_results import FileInfo
from app.services.config_service import config_service
from app.services.import_service import CsvImportService
from app.services.job_status_store import JobStatusStore
from app.services.notification_service import (
    ImportNotifier,
    build_failure_payload,
    build_success_payload,
)

logger = logging.getLogger("app.job_runner")


class JobInfrastructureError(Exception):
    """The job itself could not run (missing upload, storage failure)."""


class JobRunner:
    """
    Runs queued import jobs and records their outcome.

    A pipeline result, successful or not, completes the job. Only
    infrastructure errors fail an attempt; after the last attempt the job is
    failed permanently. Every terminal transition removes the uploaded file,
    stores a snapshot in the JobStatusStore and notifies when an address was
    given.
    """

    def __init__(self, import_service: CsvImportService = None, status_store: JobStatusStore = None,
                 notifier: ImportNotifier = None, session_factory: Optional[Callable[[], Session]] = None,
                 max_attempts: int = None):
        self.import_service = import_service or CsvImportService()
        self.status_store = status_store or JobStatusStore()
        self.notifier = notifier or ImportNotifier()
        self.session_factory = session_factory
        self.max_attempts = max_attempts or config_service.get_int("JOB_MAX_ATTEMPTS", 3)

    @staticmethod
    def new_job_id() -> str:
        return f"csv_{uuid.uuid4().hex[:16]}"

    def submit(self, db: Session, file_path: str, file_name: str, options: ProcessingOptions,
               file_size: int = 0, mime_type: str = None, submitted_by: str = None) -> CsvImportJob:
        """
        Register an uploaded file as a queued job.

        Returns:
            The queued job with its pre-generated id
        """
        job = CsvImportJob(
            job_id=self.new_job_id(),
            file_path=file_path,
            file_name=file_name,
            file_size=file_size,
            mime_type=mime_type,
            options_json=options.model_dump_json(),
            submitted_by=submitted_by,
            notify_email=options.notify_email if options.wants_notification else None,
            status=JobStatus.QUEUED,
            created_at=config_service.utcnow(),
        )
        db.add(job)
        db.commit()
        db.refresh(job)

        logger.info(f"Import job queued: {job.job_id} ({file_name}, {file_size} bytes)")
        return job

    def execute(self, job_id: str) -> Dict[str, Any]:
        """
        Run one attempt of a job.

        Returns:
            Result payload that was stored for the job

        Raises:
            JobInfrastructureError: the attempt could not run
        """
        try:
            with get_db_session(self.session_factory) as db:
                job = db.get(CsvImportJob, job_id)
                if job is None:
                    raise JobInfrastructureError(f"Import job not found: {job_id}")

                if job.status in JobStatus.TERMINAL:
                    logger.warning(f"Import job {job_id} already {job.status}, not running it again")
                    snapshot = self.status_store.get(job_id, db)
                    return snapshot["results"] if snapshot else {}

                job.status = JobStatus.RUNNING
                job.attempts += 1
                job.started_at = config_service.utcnow()
                db.commit()
                logger.info(f"Import job running: {job_id} (attempt {job.attempts})")

                if not os.path.exists(job.file_path):
                    raise JobInfrastructureError("Uploaded file no longer exists")

                options = ProcessingOptions.model_validate_json(job.options_json)
                file_info = FileInfo(
                    name=job.file_name,
                    size=job.file_size,
                    mime_type=job.mime_type,
                    uploaded_at=job.created_at.isoformat() if job.created_at else None,
                )

                result = self.import_service.run(job.file_path, options, db, file_info=file_info)
                payload = result.to_dict()
                self._complete(db, job, payload)
                return payload

        except (SQLAlchemyError, OSError) as e:
            raise JobInfrastructureError(str(e)) from e

    def record_failed_attempt(self, job_id: str, error: Exception, attempt: int) -> bool:
        """
        Book a failed attempt.

        A job that already reached a terminal state keeps it; the error
        happened after its outcome was committed.

        Returns:
            True if the job should be retried, False once it failed for good
        """
        with get_db_session(self.session_factory) as db:
            job = db.get(CsvImportJob, job_id)
            if job is not None and job.status in JobStatus.TERMINAL:
                logger.error(f"Import job {job_id} already {job.status}, not retrying after: {error}")
                return False

            if attempt < self.max_attempts:
                logger.warning(f"Import job {job_id} attempt {attempt}/{self.max_attempts} failed: {error}")
                if job is not None:
                    job.status = JobStatus.QUEUED
                    job.error_message = str(error)[:2000]
                return True

        self.fail_permanently(job_id, str(error))
        return False

    def fail_permanently(self, job_id: str, error_message: str) -> None:
        """Mark a job failed, remove its upload and report the failure."""
        logger.error(f"Import job failed permanently: {job_id} - {error_message}")

        with get_db_session(self.session_factory) as db:
            job = db.get(CsvImportJob, job_id)
            if job is None:
                logger.error(f"Cannot mark unknown import job as failed: {job_id}")
                return

            self.import_service.cleanup_file(job.file_path)

            job.status = JobStatus.FAILED
            job.error_message = error_message[:2000]
            job.completed_at = config_service.utcnow()
            db.commit()

            failure = build_failure_payload(job.file_name, error_message)
            self.status_store.put(
                job_id,
                JobStatus.FAILED,
                {"success": False, "error": error_message, "file_name": job.file_name, "failed_at": failure["failed_at"]},
                db,
                file_name=job.file_name,
            )

            if job.notify_email:
                try:
                    self.notifier.notify_failure(job.notify_email, failure)
                except Exception as e:
                    logger.warning(f"Failed to trigger import failure email for job {job_id}: {e}")

    def _complete(self, db: Session, job: CsvImportJob, payload: Dict[str, Any]) -> None:
        self.import_service.cleanup_file(job.file_path)

        job.status = JobStatus.COMPLETED
        job.error_message = None
        job.completed_at = config_service.utcnow()
        db.commit()

        self.status_store.put(job.job_id, JobStatus.COMPLETED, payload, db, file_name=job.file_name)
        logger.info(
            f"Import job completed: {job.job_id} - success={payload.get('success')} "
            f"{payload['processing_stats']['total_rows']} rows"
        )

        if job.notify_email:
            try:
                self.notifier.notify_success(
                    job.notify_email, build_success_payload(job.job_id, job.file_name, payload)
                )
            except Exception as e:
                logger.warning(f"Failed to trigger import completion email for job {job.job_id}: {e}")
