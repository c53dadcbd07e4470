"""
Celery tasks for CSV ingestion.
"""
import logging

from celery.exceptions import SoftTimeLimitExceeded

from app.services.config_service import config_service
from app.services.job_runner import JobInfrastructureError, JobRunner

from worker.celery_app import celery_app

logger = logging.getLogger("worker.tasks")

job_runner = JobRunner()


@celery_app.task(bind=True, name="worker.tasks.process_csv_import_job", max_retries=None)
def process_csv_import_job(self, job_id: str):
    """
    Process a queued CSV import job in the background.

    Args:
        job_id: Import job ID to process
    """
    attempt = self.request.retries + 1
    logger.info(f"Starting CSV import job processing: {job_id} (attempt {attempt})")

    try:
        results = job_runner.execute(job_id)
        return {"job_id": job_id, "status": "completed", "success": results.get("success", False)}

    except SoftTimeLimitExceeded:
        job_runner.fail_permanently(job_id, "Job exceeded its time limit")
        raise

    except JobInfrastructureError as e:
        if job_runner.record_failed_attempt(job_id, e, attempt):
            countdown = config_service.get_int("JOB_RETRY_COUNTDOWN", 60)
            raise self.retry(exc=e, countdown=countdown)
        raise
